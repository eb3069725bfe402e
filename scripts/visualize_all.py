"""
scripts/visualize_all.py
========================
Build every figure in sequence, from the simplest to the composite map:

    1. temperature_panels      one stacked panel per country
    2. temperature_overlay     all countries on one axes
    3. precipitation_polygons  layered precipitation areas
    4. climate_composite       map with all of the above as insets

Usage:
    python scripts/visualize_all.py                           # PDFs in output/
    python scripts/visualize_all.py --format png --width 8 --height 6
    python scripts/visualize_all.py --show                    # interactive windows

Requires data/cleaned/climate_merged.csv — run scripts/fetch_data.py first.
"""

import sys
import argparse
from pathlib import Path

import matplotlib
import matplotlib.pyplot as plt
import requests

from climate_canvas import DEFAULT_DPI
from climate_style import COUNTRIES, DEFAULT_COMPOSITE, OUTPUT_DIR, apply_style, country_codes
from prepare_data import build_country_index, load_cleaned
from visualize_composite import create_composite, load_world
from visualize_overlay import create_overlay_chart
from visualize_panels import create_stacked_panels
from visualize_precip import create_precip_chart


FORMATS = ("pdf", "svg", "png")


def main(
    output_dir: Path = OUTPUT_DIR,
    fmt: str = "pdf",
    width: float | None = None,
    height: float | None = None,
    show: bool = False,
    refresh_map: bool = False,
    dpi: int = DEFAULT_DPI,
) -> None:
    print("=" * 58)
    print("  Climate — All Figures")
    print("=" * 58)

    # Files only need the non-interactive backend
    if not show:
        matplotlib.use("Agg")
    apply_style()

    df = load_cleaned()
    index = build_country_index(df, country_codes(COUNTRIES))

    try:
        world = load_world(force_refresh=refresh_map)
    except requests.RequestException as e:
        print(f"\n[error] Could not download the base map: {e}")
        sys.exit(1)

    figures = [
        ("temperature_panels",     lambda: create_stacked_panels(df, index)),
        ("temperature_overlay",    lambda: create_overlay_chart(df, index)),
        ("precipitation_polygons", lambda: create_precip_chart(df, index)),
        ("climate_composite",      lambda: create_composite(df, index, world, config=DEFAULT_COMPOSITE)),
    ]

    for name, build in figures:
        print(f"\n▶ {name}")
        canvas = build()
        if show:
            continue
        canvas.save(Path(output_dir) / f"{name}.{fmt}", width=width, height=height, dpi=dpi)
        canvas.close()

    if show:
        plt.show()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Generate every climate figure.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR,
                        help="Directory for the image files (default: output/).")
    parser.add_argument("--format", choices=FORMATS, default="pdf",
                        help="File format; pdf and svg are vector (default: pdf).")
    parser.add_argument("--width", type=float, default=None,
                        help="Figure width in inches (default: each figure's own size).")
    parser.add_argument("--height", type=float, default=None,
                        help="Figure height in inches (default: each figure's own size).")
    parser.add_argument("--dpi", type=int, default=DEFAULT_DPI,
                        help="Resolution for png output.")
    parser.add_argument("--show", action="store_true",
                        help="Display the figures interactively instead of writing files.")
    parser.add_argument("--refresh-map", action="store_true",
                        help="Re-download the Natural Earth outlines.")
    args = parser.parse_args()
    main(
        output_dir=args.output_dir,
        fmt=args.format,
        width=args.width,
        height=args.height,
        show=args.show,
        refresh_map=args.refresh_map,
        dpi=args.dpi,
    )
