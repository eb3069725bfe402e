"""
scripts/climate_style.py
========================
Shared design system and layout configuration for every climate figure.

All the literal constants the figures depend on live here as explicit,
immutable records: the country palette, the inset rectangles of the
composite map, and the project paths.  Renderers receive them as
arguments instead of reading module globals, so each figure can be built
against synthetic data and a synthetic map in tests.

Layout coordinates
------------------
Inset rectangles use figure-normalised coordinates, the same convention as
``fig.add_axes([left, bottom, width, height])``:

    (0, 1) ┌──────────────┐ (1, 1)
           │              │
           │    figure    │
           │              │
    (0, 0) └──────────────┘ (1, 0)
"""

from dataclasses import dataclass
from pathlib import Path

import matplotlib.pyplot as plt


# ─────────────────────────────────────────────────────────────────────────────
# Paths
# ─────────────────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
RAW_DIR      = PROJECT_ROOT / "data" / "raw"
CLEANED_DIR  = PROJECT_ROOT / "data" / "cleaned"
OUTPUT_DIR   = PROJECT_ROOT / "output"
CLEANED_CSV  = CLEANED_DIR / "climate_merged.csv"

# ─────────────────────────────────────────────────────────────────────────────
# Data source
# ─────────────────────────────────────────────────────────────────────────────
# World Bank Climate Data API, CRU historical series.
#   {API_BASE}/cru/pr/year/USA.json   → [{"year": 1901, "data": 735.4}, ...]
API_BASE    = "http://climatedataapi.worldbank.org/climateweb/rest/v1/country"
TIME_SCALES = ("year", "decade")

# Natural Earth 1:110m admin-0 countries (zipped shapefile)
NE_COUNTRIES_URL = "https://naturalearth.s3.amazonaws.com/110m_cultural/ne_110m_admin_0_countries.zip"

# ─────────────────────────────────────────────────────────────────────────────
# Design system
# ─────────────────────────────────────────────────────────────────────────────
PAL = {
    # Backgrounds
    "bg":          "#F4F1EC",   # warm parchment
    "ocean":       "#DCE6EC",   # pale sea
    "land":        "#E4DED5",   # neutral land mass
    "land_edge":   "#C5BFB8",
    # Structural
    "grid":        "#D5CFC8",
    "spine":       "#C5BFB8",
    "text":        "#1E2832",
    "subtext":     "#5E6E7E",
    # Data ink shared by all countries
    "trend":       "#1E2832",   # LOWESS curve
    "border":      "#3B3B3B",   # polygon outline
    "peak":        "#D1495B",   # peak-temperature marker
    # Inset panels
    "inset_bg":    "#FBFAF7",
    "occlusion":   "#FFFFFF",
}


@dataclass(frozen=True)
class CountryStyle:
    """
    One entry of the country palette.

    label_offset     vertical offset (°C) of the name label from the
                     series mean in the single-country panels
    overlay_label_y  absolute y position (°C) of the name label in the
                     overlaid chart; tuned by eye so labels do not collide
    """
    code: str
    name: str
    color: str
    label_offset: float = 1.0
    overlay_label_y: float = 0.0


# The palette is one tuple so that code, name, colour and row index always
# travel together in the same order.
COUNTRIES = (
    CountryStyle("USA", "United States", "#2D6A4F", label_offset=0.9, overlay_label_y=11.0),
    CountryStyle("CAN", "Canada",        "#2C5282", label_offset=1.2, overlay_label_y=-1.5),
    CountryStyle("MEX", "Mexico",        "#9E3B2C", label_offset=0.7, overlay_label_y=18.5),
    CountryStyle("GTM", "Guatemala",     "#B5886E", label_offset=0.6, overlay_label_y=26.0),
)


def country_codes(countries=COUNTRIES) -> list[str]:
    return [c.code for c in countries]


def style_for(code: str, countries=COUNTRIES) -> CountryStyle:
    for style in countries:
        if style.code == code:
            return style
    raise KeyError(f"No style configured for country code {code!r}")


# ─────────────────────────────────────────────────────────────────────────────
# Layout
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LayoutRegion:
    """
    A literal rectangle in figure-normalised coordinates.

    Construction fails for rectangles that leave the unit square or have
    no area; there is no layout solver behind these, so a typo in a
    constant should fail loudly rather than draw off-canvas.
    """
    left: float
    bottom: float
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"LayoutRegion needs a positive size, got {self}")
        if self.left < 0 or self.bottom < 0:
            raise ValueError(f"LayoutRegion starts outside the figure: {self}")
        # small tolerance for float sums such as 0.7 + 0.3
        if self.right > 1 + 1e-9 or self.top > 1 + 1e-9:
            raise ValueError(f"LayoutRegion extends past the figure: {self}")

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def top(self) -> float:
        return self.bottom + self.height

    @property
    def rect(self) -> list[float]:
        """[left, bottom, width, height] for fig.add_axes()."""
        return [self.left, self.bottom, self.width, self.height]

    def overlaps(self, other: "LayoutRegion") -> bool:
        # Touching edges do not count as overlap
        return (
            self.left < other.right and other.left < self.right
            and self.bottom < other.top and other.bottom < self.top
        )


@dataclass(frozen=True)
class CompositeConfig:
    """
    Everything the composite map needs besides the data.

    map_window and occlusion are (lon_min, lon_max, lat_min, lat_max) in
    degrees.  panel_regions holds one inset per country, in palette order.
    """
    figsize: tuple[float, float] = (12.0, 9.0)
    map_window: tuple[float, float, float, float] = (-170.0, -45.0, 5.0, 75.0)
    map_region: LayoutRegion = LayoutRegion(0.0, 0.0, 1.0, 1.0)
    occlusion: tuple[float, float, float, float] = (-172.0, -127.0, 3.0, 64.0)
    occlusion_alpha: float = 0.65
    panel_regions: tuple[LayoutRegion, ...] = (
        LayoutRegion(0.05, 0.68, 0.27, 0.14),
        LayoutRegion(0.05, 0.50, 0.27, 0.14),
        LayoutRegion(0.05, 0.32, 0.27, 0.14),
        LayoutRegion(0.05, 0.14, 0.27, 0.14),
    )
    precip_region: LayoutRegion = LayoutRegion(0.66, 0.07, 0.27, 0.20)
    peak_color: str = PAL["peak"]
    insets_background: str = PAL["inset_bg"]

    def inset_regions(self) -> list[LayoutRegion]:
        return [*self.panel_regions, self.precip_region]

    def validate(self, n_countries: int) -> None:
        """Check one panel per country and that no two insets overlap."""
        if len(self.panel_regions) != n_countries:
            raise ValueError(
                f"{n_countries} countries configured but "
                f"{len(self.panel_regions)} panel regions given"
            )
        lon_min, lon_max, lat_min, lat_max = self.map_window
        if lon_min >= lon_max or lat_min >= lat_max:
            raise ValueError(f"Degenerate map window: {self.map_window}")
        regions = self.inset_regions()
        for i, a in enumerate(regions):
            for b in regions[i + 1:]:
                if a.overlaps(b):
                    raise ValueError(f"Inset regions overlap: {a} and {b}")


DEFAULT_COMPOSITE = CompositeConfig()


# ─────────────────────────────────────────────────────────────────────────────
# Global matplotlib style
# ─────────────────────────────────────────────────────────────────────────────

def apply_style() -> None:
    """Set the shared rcParams used by every figure in this project."""
    plt.rcParams.update({
        "font.family":            "sans-serif",
        # First available font wins: Helvetica on macOS, Liberation/DejaVu on Linux
        "font.sans-serif":        ["Helvetica Neue", "Helvetica", "Arial",
                                   "Liberation Sans", "DejaVu Sans"],
        "figure.facecolor":       PAL["bg"],
        "axes.facecolor":         PAL["bg"],
        "axes.edgecolor":         PAL["spine"],
        "axes.grid":              False,
        "grid.color":             PAL["grid"],
        "grid.linewidth":         0.6,
        "grid.linestyle":         "--",
        "xtick.color":            PAL["subtext"],
        "ytick.color":            PAL["subtext"],
        "text.color":             PAL["text"],
        "axes.spines.top":        False,
    })
