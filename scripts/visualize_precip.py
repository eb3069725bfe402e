"""
scripts/visualize_precip.py
===========================
Annual precipitation as filled, layered polygons — one per country.

Countries are drawn from the wettest mean to the driest, so every shorter
polygon lands on top of the taller ones behind it and nothing is hidden.
Each country's mean is written just past the right edge of the axes, at
the height of that mean.

The same routine draws the standalone chart and the small inset of the
composite map; `compact=True` thins the axes to three labels each.

Usage:
    python scripts/visualize_precip.py

Output:
    output/precipitation_polygons.pdf
"""

import numpy as np
import pandas as pd
import matplotlib
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
from matplotlib.transforms import blended_transform_factory

from climate_canvas import Canvas
from climate_style import COUNTRIES, OUTPUT_DIR, PAL, LayoutRegion, apply_style, country_codes, style_for
from prepare_data import build_country_index, load_cleaned, mean_precip_order, polygon_shape


OUTPUT_FILE = OUTPUT_DIR / "precipitation_polygons.pdf"

PLOT_REGION = LayoutRegion(0.10, 0.12, 0.76, 0.72)


def draw_precip_polygons(
    ax: plt.Axes,
    df: pd.DataFrame,
    index: dict[str, np.ndarray],
    countries=COUNTRIES,
    compact: bool = False,
    border: str = PAL["border"],
) -> list[str]:
    """
    Fill one polygon per country and annotate the means.

    Returns the country codes in the order they were drawn.
    """
    codes = country_codes(countries)
    order = mean_precip_order(df, codes)
    fontsize = 6.5 if compact else 8.5

    # Right-margin labels: x in axes fraction, y in data units
    margin = blended_transform_factory(ax.transAxes, ax.transData)

    for zorder, code in enumerate(order, start=2):
        style  = style_for(code, countries)
        subset = df.iloc[index[code]]
        x, y   = polygon_shape(subset)
        ax.fill(x, y, facecolor=style.color, edgecolor=border,
                linewidth=0.5 if compact else 0.8, zorder=zorder)

        mean = subset["precipitation"].mean()
        ax.text(
            1.01, mean, f"{mean:.1f}",
            transform=margin, color=style.color,
            fontsize=fontsize, fontweight="bold",
            ha="left", va="center", clip_on=False,
        )

    # ── Axes ─────────────────────────────────────────────────────────────────
    years = np.sort(df["year"].unique())
    p_max = df["precipitation"].max()
    ax.set_xlim(years.min(), years.max())
    ax.set_ylim(0, p_max * 1.05)

    if compact:
        ax.set_xticks([years[0], years[len(years) // 2], years[-1]])
        ax.yaxis.set_major_locator(mticker.LinearLocator(3))
        ax.yaxis.set_major_formatter(mticker.FormatStrFormatter("%.0f"))
    else:
        ax.xaxis.set_major_locator(mticker.MultipleLocator(10))
        ax.yaxis.set_major_locator(mticker.MaxNLocator(nbins=8))
        ax.grid(axis="y", color=PAL["grid"], linewidth=0.6, linestyle="--", zorder=0)

    ax.xaxis.set_major_formatter(mticker.FormatStrFormatter("%d"))
    ax.tick_params(axis="both", labelsize=fontsize - 0.5, colors=PAL["subtext"])
    ax.spines["right"].set_visible(False)
    return order


def create_precip_chart(
    df: pd.DataFrame,
    index: dict[str, np.ndarray],
    countries=COUNTRIES,
    figsize=(10.0, 6.5),
) -> Canvas:
    """Standalone precipitation chart with a dense axis."""
    canvas = Canvas(figsize=figsize)
    ax = canvas.add_axes(PLOT_REGION, "polygon_panel", "precipitation")
    draw_precip_polygons(ax, df, index, countries)

    ax.set_xlabel("Year", color=PAL["subtext"], fontsize=9)
    ax.set_ylabel("Precipitation (mm)", color=PAL["subtext"], fontsize=9, labelpad=7)
    ax.text(1.01, 1.02, "mean", transform=ax.transAxes,
            fontsize=8, color=PAL["subtext"], ha="left", va="bottom")

    canvas.fig.text(
        0.10, 0.93,
        "Annual precipitation, wettest country at the back",
        fontsize=14, fontweight="bold", color=PAL["text"], ha="left",
    )
    canvas.fig.text(
        0.10, 0.885,
        "Right margin: mean annual precipitation (mm).  Source: World Bank Climate Data API (CRU).",
        fontsize=9, color=PAL["subtext"], ha="left",
    )
    return canvas


# ─────────────────────────────────────────────────────────────────────────────
# MAIN
# ─────────────────────────────────────────────────────────────────────────────

def main() -> None:
    print("=" * 58)
    print("  Climate — Precipitation Polygons")
    print("=" * 58)

    matplotlib.use("Agg")
    apply_style()

    df = load_cleaned()
    index = build_country_index(df, country_codes(COUNTRIES))

    canvas = create_precip_chart(df, index)
    canvas.save(OUTPUT_FILE)
    canvas.close()


if __name__ == "__main__":
    main()
