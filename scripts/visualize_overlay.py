"""
scripts/visualize_overlay.py
============================
All four temperature series on one pair of axes.

The axis ranges are fixed once from the whole merged table, then each
country is drawn into that shared space (line + LOWESS trend).  Countries
are labelled directly instead of with a legend; the label heights live in
the palette (CountryStyle.overlay_label_y) and were tuned by eye so the
names never collide.

Usage:
    python scripts/visualize_overlay.py

Output:
    output/temperature_overlay.pdf
"""

import numpy as np
import pandas as pd
import matplotlib
import matplotlib.ticker as mticker

from climate_canvas import Canvas
from climate_style import COUNTRIES, OUTPUT_DIR, PAL, LayoutRegion, apply_style, country_codes
from prepare_data import build_country_index, load_cleaned, lowess_trend, value_ranges


OUTPUT_FILE = OUTPUT_DIR / "temperature_overlay.pdf"

LABEL_YEAR  = 1905
PLOT_REGION = LayoutRegion(0.10, 0.12, 0.84, 0.72)


def create_overlay_chart(
    df: pd.DataFrame,
    index: dict[str, np.ndarray],
    countries=COUNTRIES,
    label_year: float = LABEL_YEAR,
    figsize=(10.0, 6.5),
) -> Canvas:
    """Overlay every country's temperature line and trend in one axes."""
    canvas = Canvas(figsize=figsize)
    ax = canvas.add_axes(PLOT_REGION, "axes", "overlay")

    # ── Shared coordinate space from the full table ──────────────────────────
    t_min, t_max = value_ranges(df)["temperature"]
    pad = 0.05 * (t_max - t_min)
    ax.set_xlim(df["year"].min(), df["year"].max())
    ax.set_ylim(t_min - pad, t_max + pad)

    # ── Incremental draws ────────────────────────────────────────────────────
    for style in countries:
        subset = df.iloc[index[style.code]]
        years  = subset["year"].to_numpy(dtype=float)
        temps  = subset["temperature"].to_numpy(dtype=float)

        ax.plot(years, temps, color=style.color, linewidth=1.2, alpha=0.85, zorder=3)
        trend_x, trend_y = lowess_trend(years, temps)
        ax.plot(trend_x, trend_y, color=style.color, linewidth=2.4,
                solid_capstyle="round", zorder=4)

        ax.text(
            label_year, style.overlay_label_y, style.name,
            color=style.color, fontsize=9.5, fontweight="bold",
            ha="left", va="center", zorder=6,
        )
        canvas.record("line", style.code)

    # ── Axes formatting ──────────────────────────────────────────────────────
    ax.xaxis.set_major_locator(mticker.MultipleLocator(10))
    ax.xaxis.set_major_formatter(mticker.FormatStrFormatter("%d"))
    ax.tick_params(axis="both", labelsize=9, colors=PAL["subtext"])
    ax.grid(axis="y", color=PAL["grid"], linewidth=0.6, linestyle="--", zorder=0)
    ax.spines["right"].set_visible(False)
    ax.set_xlabel("Year", color=PAL["subtext"], fontsize=9)
    ax.set_ylabel("Temperature (°C)", color=PAL["subtext"], fontsize=9, labelpad=7)

    canvas.fig.text(
        0.10, 0.93,
        "Annual mean temperature, four countries",
        fontsize=14, fontweight="bold", color=PAL["text"], ha="left",
    )
    canvas.fig.text(
        0.10, 0.885,
        "Thin lines: annual values.  Thick lines: LOWESS trend.",
        fontsize=9, color=PAL["subtext"], ha="left",
    )
    return canvas


# ─────────────────────────────────────────────────────────────────────────────
# MAIN
# ─────────────────────────────────────────────────────────────────────────────

def main() -> None:
    print("=" * 58)
    print("  Climate — Overlaid Temperature Chart")
    print("=" * 58)

    matplotlib.use("Agg")
    apply_style()

    df = load_cleaned()
    index = build_country_index(df, country_codes(COUNTRIES))

    canvas = create_overlay_chart(df, index)
    canvas.save(OUTPUT_FILE)
    canvas.close()


if __name__ == "__main__":
    main()
