"""
scripts/visualize_composite.py
==============================
One figure that combines everything: a map of the four countries, each
filled in its palette colour, with the temperature panels and the
precipitation chart floating over the ocean as insets.

The figure is built as an explicit, ordered list of layers.  Each layer
draws on top of everything before it, so the order below is the stacking
order and must not change:

    1. base_map       land and sea, clipped to the map window
    2. country_fill   one per country, in palette colour
    3. occlusion      translucent box that quiets the map under the insets
    4. line_panel     one temperature inset per country, with peak marker
    5. polygon_panel  precipitation inset

Inset positions are literal figure-fraction rectangles from
climate_style.CompositeConfig; nothing is laid out automatically.

Usage:
    python scripts/visualize_composite.py
    python scripts/visualize_composite.py --refresh-map

Output:
    output/climate_composite.pdf
"""

import sys
import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import numpy as np
import pandas as pd
import geopandas as gpd
import matplotlib
import matplotlib.patches as mpatches
import requests

from climate_canvas import Canvas
from climate_style import (
    COUNTRIES, DEFAULT_COMPOSITE, NE_COUNTRIES_URL, OUTPUT_DIR, PAL, RAW_DIR,
    CompositeConfig, apply_style, country_codes,
)
from prepare_data import build_country_index, load_cleaned
from visualize_panels import draw_country_panel, panel_side
from visualize_precip import draw_precip_polygons


OUTPUT_FILE = OUTPUT_DIR / "climate_composite.pdf"
WORLD_ZIP   = RAW_DIR / "ne_110m_admin_0_countries.zip"

HEADERS = {"User-Agent": "Mozilla/5.0 (research; climate-panels/1.0; non-commercial)"}

# Natural Earth marks some countries' ISO_A3 as "-99"; ADM0_A3 is always set
ISO_COLUMNS = ["iso_a3", "adm0_a3"]


# =============================================================================
# Map data
# =============================================================================

def load_world(force_refresh: bool = False, path: Path = WORLD_ZIP) -> gpd.GeoDataFrame:
    """
    Natural Earth 1:110m country outlines, downloaded once into data/raw/.
    """
    if not path.exists() or force_refresh:
        print(f"[fetch] Downloading Natural Earth countries…")
        resp = requests.get(NE_COUNTRIES_URL, headers=HEADERS, timeout=120, stream=True)
        resp.raise_for_status()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as fh:
            for chunk in resp.iter_content(chunk_size=65_536):
                fh.write(chunk)
        print(f"[cache] Saved → {path.name}")
    else:
        print(f"[cache] Using cached map: {path.name}")

    return gpd.read_file(path)


def _iso_columns(columns) -> list[str]:
    """ISO-code columns present, in preference order, matched case-insensitively."""
    normalised = {str(c).lower(): c for c in columns}
    return [normalised[kw] for kw in ISO_COLUMNS if kw in normalised]


def country_shapes(world: gpd.GeoDataFrame, codes: list[str]) -> dict[str, gpd.GeoDataFrame]:
    """
    Outline of each configured country, keyed by ISO A3 code.

    Every code must be found in at least one of the ISO columns.
    """
    candidates = _iso_columns(world.columns)
    if not candidates:
        raise ValueError(f"No ISO A3 column in map data. Available: {list(world.columns)}")

    shapes = {}
    for code in codes:
        for col in candidates:
            match = world[world[col].astype(str) == code]
            if not match.empty:
                shapes[code] = match
                break
        else:
            raise ValueError(f"Country {code} not found in map data columns {candidates}")
    return shapes


# =============================================================================
# Layers
# =============================================================================

@dataclass(frozen=True)
class Layer:
    kind: str
    label: str
    draw: Callable[[Canvas], None]


def _base_map_layer(world, config: CompositeConfig) -> Layer:
    def draw(canvas: Canvas) -> None:
        ax = canvas.add_axes(config.map_region, "base_map", "map",
                             facecolor=PAL["ocean"])
        world.plot(ax=ax, color=PAL["land"], edgecolor=PAL["land_edge"], linewidth=0.4)
        _clip_to_window(ax, config.map_window)

        # No ticks or frame; the facecolor stays visible as the sea
        ax.set_xticks([])
        ax.set_yticks([])
        for spine in ax.spines.values():
            spine.set_visible(False)
    return Layer("base_map", "map", draw)


def _clip_to_window(ax, window) -> None:
    lon_min, lon_max, lat_min, lat_max = window
    ax.set_xlim(lon_min, lon_max)
    ax.set_ylim(lat_min, lat_max)
    # Fill the whole region instead of keeping equal-degree aspect
    ax.set_aspect("auto")


def _country_fill_layer(shape, style, config: CompositeConfig) -> Layer:
    def draw(canvas: Canvas) -> None:
        ax = canvas.axes["map"]
        shape.plot(ax=ax, color=style.color, edgecolor="white", linewidth=0.5, zorder=2)
        # geopandas resets limits and aspect on every plot call
        _clip_to_window(ax, config.map_window)
        canvas.record("country_fill", style.code)
    return Layer("country_fill", style.code, draw)


def _occlusion_layer(config: CompositeConfig) -> Layer:
    def draw(canvas: Canvas) -> None:
        ax = canvas.axes["map"]
        lon_min, lon_max, lat_min, lat_max = config.occlusion
        ax.add_patch(mpatches.Rectangle(
            (lon_min, lat_min), lon_max - lon_min, lat_max - lat_min,
            facecolor=PAL["occlusion"], edgecolor="none",
            alpha=config.occlusion_alpha, zorder=5,
        ))
        canvas.record("occlusion", "occlusion")
    return Layer("occlusion", "occlusion", draw)


def _line_panel_layer(df, rows, style, position: int, config: CompositeConfig) -> Layer:
    region = config.panel_regions[position - 1]

    def draw(canvas: Canvas) -> None:
        ax = canvas.add_axes(region, "line_panel", style.code,
                             facecolor=config.insets_background)
        draw_country_panel(
            ax, df, rows, style,
            side=panel_side(position),
            show_xaxis=True,
            peak_color=config.peak_color,
            fontsize=7.0,
        )
        ax.patch.set_alpha(0.85)
    return Layer("line_panel", style.code, draw)


def _polygon_panel_layer(df, index, countries, config: CompositeConfig) -> Layer:
    def draw(canvas: Canvas) -> None:
        ax = canvas.add_axes(config.precip_region, "polygon_panel", "precipitation",
                             facecolor=config.insets_background)
        draw_precip_polygons(ax, df, index, countries, compact=True)
        ax.set_title("Precipitation (mm)", fontsize=7.5, color=PAL["subtext"],
                     loc="left", pad=3)
        ax.patch.set_alpha(0.85)
    return Layer("polygon_panel", "precipitation", draw)


def build_layers(
    df: pd.DataFrame,
    index: dict[str, np.ndarray],
    world: gpd.GeoDataFrame,
    countries=COUNTRIES,
    config: CompositeConfig = DEFAULT_COMPOSITE,
) -> list[Layer]:
    """Ordered drawing passes of the composite figure."""
    shapes = country_shapes(world, country_codes(countries))

    layers = [_base_map_layer(world, config)]
    layers += [_country_fill_layer(shapes[s.code], s, config) for s in countries]
    layers.append(_occlusion_layer(config))
    layers += [
        _line_panel_layer(df, index[s.code], s, position, config)
        for position, s in enumerate(countries, start=1)
    ]
    layers.append(_polygon_panel_layer(df, index, countries, config))
    return layers


def render_layers(canvas: Canvas, layers: list[Layer]) -> Canvas:
    """Run each layer in order; the first failure aborts the figure."""
    for layer in layers:
        print(f"[draw]  {layer.kind:<14} {layer.label}")
        layer.draw(canvas)
    return canvas


def create_composite(
    df: pd.DataFrame,
    index: dict[str, np.ndarray],
    world: gpd.GeoDataFrame,
    countries=COUNTRIES,
    config: CompositeConfig = DEFAULT_COMPOSITE,
) -> Canvas:
    """Validate the layout, then assemble the composite figure."""
    config.validate(len(countries))
    layers = build_layers(df, index, world, countries, config)

    canvas = Canvas(figsize=config.figsize)
    render_layers(canvas, layers)

    canvas.fig.text(
        0.98, 0.965,
        "Temperature and precipitation, " + ", ".join(s.name for s in countries),
        fontsize=12, fontweight="bold", color=PAL["text"], ha="right", va="top",
    )
    canvas.fig.text(
        0.98, 0.935,
        "Insets: annual mean temperature with LOWESS trend; hottest year marked.",
        fontsize=8, color=PAL["subtext"], ha="right", va="top",
    )
    return canvas


# =============================================================================
# MAIN
# =============================================================================

def main(refresh_map: bool = False) -> None:
    print("=" * 58)
    print("  Climate — Composite Map")
    print("=" * 58)

    matplotlib.use("Agg")
    apply_style()

    df = load_cleaned()
    index = build_country_index(df, country_codes(COUNTRIES))

    try:
        world = load_world(force_refresh=refresh_map)
    except requests.RequestException as e:
        print(f"\n[error] Could not download the base map: {e}")
        sys.exit(1)

    canvas = create_composite(df, index, world)
    canvas.save(OUTPUT_FILE)
    canvas.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Draw the composite climate map.")
    parser.add_argument(
        "--refresh-map",
        action="store_true",
        help="Re-download the Natural Earth outlines even if cached in data/raw/.",
    )
    args = parser.parse_args()
    main(refresh_map=args.refresh_map)
