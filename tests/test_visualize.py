"""
Tests for the three standalone figures: stacked panels, overlay, polygons.
"""

import matplotlib.pyplot as plt
import numpy as np
import pytest
from matplotlib.collections import PathCollection
from matplotlib.colors import to_rgb
from matplotlib.patches import Polygon

from climate_style import COUNTRIES, PAL, country_codes
from visualize_overlay import create_overlay_chart
from visualize_panels import create_stacked_panels, draw_country_panel, panel_side
from visualize_precip import create_precip_chart, draw_precip_polygons


CODES = country_codes(COUNTRIES)


# ============================================================================
# Stacked panels
# ============================================================================

class TestPanelSide:

    @pytest.mark.parametrize("position, side", [
        (1, "left"), (2, "right"), (3, "left"), (4, "right"), (7, "left"),
    ])
    def test_parity(self, position, side):
        assert panel_side(position) == side

    def test_positions_start_at_one(self):
        with pytest.raises(ValueError):
            panel_side(0)


class TestDrawCountryPanel:

    def test_line_trend_and_label(self, merged, index):
        fig, ax = plt.subplots()
        style = COUNTRIES[0]
        draw_country_panel(ax, merged, index[style.code], style)

        assert len(ax.lines) == 2   # series + LOWESS trend
        np.testing.assert_array_equal(ax.lines[0].get_ydata(), [8.1, 8.4, 9.2, 8.7, 8.9])
        labels = [t for t in ax.texts if t.get_text() == style.name]
        assert len(labels) == 1
        mean = np.mean([8.1, 8.4, 9.2, 8.7, 8.9])
        assert labels[0].get_position()[1] == pytest.approx(mean + style.label_offset)

    def test_right_side_axis(self, merged, index):
        fig, ax = plt.subplots()
        draw_country_panel(ax, merged, index["CAN"], COUNTRIES[1], side="right")
        assert ax.yaxis.get_label_position() == "right"
        assert ax.yaxis.get_ticks_position() == "right"

    def test_bad_side(self, merged, index):
        fig, ax = plt.subplots()
        with pytest.raises(ValueError, match="side"):
            draw_country_panel(ax, merged, index["CAN"], COUNTRIES[1], side="top")

    def test_peak_marker(self, merged, index):
        fig, ax = plt.subplots()
        draw_country_panel(ax, merged, index["GTM"], COUNTRIES[3], peak_color=PAL["peak"])

        markers = [c for c in ax.collections if isinstance(c, PathCollection)]
        assert len(markers) == 1
        np.testing.assert_array_equal(markers[0].get_offsets()[0], [2001, 23.9])
        assert any("23.9°C (2001)" == t.get_text() for t in ax.texts)

    def test_no_peak_marker_by_default(self, merged, index):
        fig, ax = plt.subplots()
        draw_country_panel(ax, merged, index["GTM"], COUNTRIES[3])
        assert not [c for c in ax.collections if isinstance(c, PathCollection)]


class TestStackedPanels:

    def test_one_panel_per_country(self, merged, index):
        canvas = create_stacked_panels(merged, index)
        assert canvas.count("line_panel") == len(COUNTRIES)
        assert [op.label for op in canvas.ops] == CODES

    def test_axis_sides_alternate(self, merged, index):
        canvas = create_stacked_panels(merged, index)
        sides = [canvas.axes[code].yaxis.get_label_position() for code in CODES]
        assert sides == ["left", "right", "left", "right"]

    def test_only_bottom_panel_shows_years(self, merged, index):
        canvas = create_stacked_panels(merged, index)
        axes = [canvas.axes[code] for code in CODES]
        assert axes[-1].get_xlabel() == "Year"
        assert all(ax.get_xlabel() == "" for ax in axes[:-1])
        # shared x-axis
        assert all(ax.get_xlim() == axes[-1].get_xlim() for ax in axes)


# ============================================================================
# Overlay
# ============================================================================

class TestOverlayChart:

    def test_limits_from_full_table(self, merged, index):
        canvas = create_overlay_chart(merged, index)
        ax = canvas.axes["overlay"]
        assert ax.get_xlim() == (2000, 2004)
        lo, hi = ax.get_ylim()
        assert lo < -5.2 and hi > 23.9

    def test_two_lines_per_country(self, merged, index):
        canvas = create_overlay_chart(merged, index)
        ax = canvas.axes["overlay"]
        assert len(ax.lines) == 2 * len(COUNTRIES)
        assert canvas.count("line") == len(COUNTRIES)

    def test_labels_at_fixed_positions(self, merged, index):
        canvas = create_overlay_chart(merged, index, label_year=2001)
        ax = canvas.axes["overlay"]
        positions = {t.get_text(): t.get_position() for t in ax.texts}
        for style in COUNTRIES:
            assert positions[style.name] == (2001, style.overlay_label_y)

    def test_unit_labelled_axis(self, merged, index):
        canvas = create_overlay_chart(merged, index)
        assert canvas.axes["overlay"].get_ylabel() == "Temperature (°C)"


# ============================================================================
# Precipitation polygons
# ============================================================================

def polygons(ax):
    return [p for p in ax.patches if isinstance(p, Polygon)]


class TestPrecipPolygons:

    def test_draw_order_is_descending_mean(self, merged, index):
        fig, ax = plt.subplots()
        order = draw_precip_polygons(ax, merged, index)
        assert order == ["MEX", "USA", "GTM", "CAN"]

        means = merged.groupby("country_code")["precipitation"].mean()
        assert [means[c] for c in order] == sorted(means, reverse=True)

    def test_polygons_stack_in_draw_order(self, merged, index):
        fig, ax = plt.subplots()
        order = draw_precip_polygons(ax, merged, index)
        polys = polygons(ax)
        assert len(polys) == 4

        colors = {s.code: s.color for s in COUNTRIES}
        for code, poly in zip(order, polys):
            assert poly.get_facecolor()[:3] == pytest.approx(to_rgb(colors[code]))
        zorders = [p.get_zorder() for p in polys]
        assert zorders == sorted(zorders)

    def test_shared_border_colour(self, merged, index):
        fig, ax = plt.subplots()
        draw_precip_polygons(ax, merged, index, border="#000000")
        assert {tuple(p.get_edgecolor()) for p in polygons(ax)} == {(0.0, 0.0, 0.0, 1.0)}

    def test_mean_annotations(self, merged, index):
        fig, ax = plt.subplots()
        draw_precip_polygons(ax, merged, index)
        texts = {t.get_text(): t.get_position() for t in ax.texts}
        assert set(texts) == {"780.0", "710.0", "605.0", "520.0"}
        assert texts["605.0"] == (1.01, 605.0)

    def test_axis_starts_at_zero(self, merged, index):
        fig, ax = plt.subplots()
        draw_precip_polygons(ax, merged, index)
        assert ax.get_ylim()[0] == 0

    def test_compact_axis_has_three_labels(self, merged, index):
        fig, ax = plt.subplots()
        draw_precip_polygons(ax, merged, index, compact=True)
        assert list(ax.get_xticks()) == [2000, 2002, 2004]
        assert len(ax.get_yticks()) == 3

    def test_standalone_chart(self, merged, index):
        canvas = create_precip_chart(merged, index)
        assert canvas.count("polygon_panel") == 1
        ax = canvas.axes["precipitation"]
        assert ax.get_ylabel() == "Precipitation (mm)"
        assert len(polygons(ax)) == 4
