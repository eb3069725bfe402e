"""
scripts/visualize_panels.py
===========================
One temperature panel per country, stacked vertically on a shared year
axis.

Each panel shows the annual mean temperature, a LOWESS trend curve and the
country name floating just above the series mean.  Panels alternate their
y-axis between the left and right edge so neighbouring tick labels never
sit on top of each other:

    ┌──────────────────────────┐
  ° │ United States   ~~~~~~~  │
    ├──────────────────────────┤
    │ Canada          ~~~~~~~  │ °
    ├──────────────────────────┤
  ° │ Mexico          ~~~~~~~  │
    ├──────────────────────────┤
    │ Guatemala       ~~~~~~~  │ °
    └──────────────────────────┘
      1901   1931   1961   1991

draw_country_panel() is also used for the insets of the composite map.

Usage:
    python scripts/visualize_panels.py

Output:
    output/temperature_panels.pdf
"""

import numpy as np
import pandas as pd
import matplotlib
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

from climate_canvas import Canvas
from climate_style import COUNTRIES, OUTPUT_DIR, PAL, CountryStyle, apply_style, country_codes
from prepare_data import build_country_index, load_cleaned, lowess_trend, peak_temperature


OUTPUT_FILE = OUTPUT_DIR / "temperature_panels.pdf"

# The name label starts this many years after the first data point
LABEL_X_OFFSET = 2


def panel_side(position: int) -> str:
    """Odd (1-based) positions put their y-axis on the left, even on the right."""
    if position < 1:
        raise ValueError(f"Panel positions start at 1, got {position}")
    return "left" if position % 2 == 1 else "right"


def draw_country_panel(
    ax: plt.Axes,
    df: pd.DataFrame,
    rows,
    style: CountryStyle,
    side: str = "left",
    show_xaxis: bool = False,
    peak_color: str | None = None,
    fontsize: float = 8.5,
) -> plt.Axes:
    """
    Draw one country's temperature series, trend and label into `ax`.

    With `peak_color` set, the hottest year is marked with a dot and its
    value in that colour.
    """
    subset = df.iloc[rows]
    years  = subset["year"].to_numpy(dtype=float)
    temps  = subset["temperature"].to_numpy(dtype=float)

    ax.plot(years, temps, color=style.color, linewidth=1.3,
            solid_joinstyle="round", zorder=3)

    trend_x, trend_y = lowess_trend(years, temps)
    ax.plot(trend_x, trend_y, color=PAL["trend"], linewidth=1.1,
            linestyle="--", alpha=0.8, zorder=4)

    mean = temps.mean()
    ax.text(
        years.min() + LABEL_X_OFFSET, mean + style.label_offset,
        style.name,
        color=style.color, fontsize=fontsize, fontweight="bold",
        ha="left", va="bottom", zorder=6,
    )

    if peak_color is not None:
        peak_year, peak_val = peak_temperature(df, rows)
        ax.scatter(peak_year, peak_val, color=peak_color, s=22, zorder=7,
                   edgecolors="white", linewidths=0.8, clip_on=False)
        ax.annotate(
            f"{peak_val:.1f}°C ({peak_year})",
            xy=(peak_year, peak_val),
            xytext=(0, 5), textcoords="offset points",
            color=peak_color, fontsize=fontsize - 1.5,
            ha="center", va="bottom", zorder=8,
        )

    # ── y-axis placement ─────────────────────────────────────────────────────
    if side == "right":
        ax.yaxis.tick_right()
        ax.yaxis.set_label_position("right")
        ax.spines["right"].set_visible(True)
        ax.spines["left"].set_visible(False)
    elif side == "left":
        ax.yaxis.tick_left()
        ax.yaxis.set_label_position("left")
        ax.spines["right"].set_visible(False)
        ax.spines["left"].set_visible(True)
    else:
        raise ValueError(f"side must be 'left' or 'right', got {side!r}")

    ax.yaxis.set_major_locator(mticker.MaxNLocator(nbins=3))
    ax.yaxis.set_major_formatter(mticker.FormatStrFormatter("%.0f°"))
    ax.tick_params(axis="y", labelsize=fontsize - 1, colors=PAL["subtext"])
    ax.tick_params(axis="x", labelbottom=show_xaxis, labelsize=fontsize - 1)
    return ax


def create_stacked_panels(
    df: pd.DataFrame,
    index: dict[str, np.ndarray],
    countries=COUNTRIES,
    figsize=(8.0, 10.0),
) -> Canvas:
    """
    Stack one panel per country with a single, shared x-axis at the bottom.
    """
    canvas = Canvas(figsize=figsize)
    axes = canvas.fig.subplots(len(countries), 1, sharex=True,
                               gridspec_kw={"hspace": 0.0})
    axes = np.atleast_1d(axes)

    for position, (style, ax) in enumerate(zip(countries, axes), start=1):
        draw_country_panel(ax, df, index[style.code], style, side=panel_side(position))
        ax.spines["bottom"].set_visible(position == len(countries))
        canvas.axes[style.code] = ax
        canvas.record("line_panel", style.code)

    bottom = axes[-1]
    bottom.tick_params(axis="x", labelbottom=True, labelsize=8.5, labelrotation=45)
    bottom.set_xlabel("Year", color=PAL["subtext"], fontsize=9)

    canvas.fig.suptitle(
        "Annual mean temperature by country",
        x=0.12, ha="left", fontsize=13, fontweight="bold", color=PAL["text"],
    )
    canvas.fig.text(
        0.12, 0.925,
        "Dashed curves: LOWESS trend.  Source: World Bank Climate Data API (CRU).",
        fontsize=8.5, color=PAL["subtext"], ha="left",
    )
    return canvas


# ─────────────────────────────────────────────────────────────────────────────
# MAIN
# ─────────────────────────────────────────────────────────────────────────────

def main() -> None:
    print("=" * 58)
    print("  Climate — Stacked Temperature Panels")
    print("=" * 58)

    matplotlib.use("Agg")
    apply_style()

    df = load_cleaned()
    index = build_country_index(df, country_codes(COUNTRIES))

    canvas = create_stacked_panels(df, index)
    canvas.save(OUTPUT_FILE)
    canvas.close()


if __name__ == "__main__":
    main()
