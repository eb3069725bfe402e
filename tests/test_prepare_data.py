"""
Tests for the table helpers in prepare_data.py
"""

import numpy as np
import pandas as pd
import pytest

from climate_style import COUNTRIES, country_codes
from prepare_data import (
    MERGED_COLUMNS,
    AlignmentError,
    build_country_index,
    load_cleaned,
    lowess_trend,
    mean_precip_order,
    merge_tables,
    peak_temperature,
    polygon_shape,
    value_ranges,
)
from conftest import PRECIPITATION, TEMPERATURE, YEARS


CODES = country_codes(COUNTRIES)


# ============================================================================
# merge_tables
# ============================================================================

class TestMergeTables:

    def test_columns_and_row_count(self, merged, precip_table, temp_table):
        assert list(merged.columns) == MERGED_COLUMNS
        assert len(merged) == len(precip_table) == len(temp_table)

    def test_keys_match_both_inputs(self, merged, precip_table, temp_table):
        for source in (precip_table, temp_table):
            assert (merged["year"].to_numpy() == source["year"].to_numpy()).all()
            assert (merged["country_code"].to_numpy() == source["country_code"].to_numpy()).all()

    def test_values_land_in_the_right_columns(self, merged):
        row = merged[(merged["country_code"] == "MEX") & (merged["year"] == 2004)].iloc[0]
        assert row["precipitation"] == 800.0
        assert row["temperature"] == 21.8

    def test_row_count_mismatch_raises(self, precip_table, temp_table):
        with pytest.raises(AlignmentError, match="Row counts differ"):
            merge_tables(precip_table, temp_table.iloc[:-1])

    def test_reordered_rows_raise(self, precip_table, temp_table):
        shuffled = temp_table.iloc[::-1].reset_index(drop=True)
        with pytest.raises(AlignmentError, match="Row 0 differs"):
            merge_tables(precip_table, shuffled)

    def test_country_mismatch_reports_position(self, precip_table, temp_table):
        bad = temp_table.copy()
        bad.loc[7, "country_code"] = "XXX"
        with pytest.raises(AlignmentError, match="Row 7"):
            merge_tables(precip_table, bad)

    def test_missing_year_on_both_sides_still_aligns(self, precip_table, temp_table):
        precip = precip_table.astype({"year": "Int64"})
        temp = temp_table.astype({"year": "Int64"})
        precip.loc[1, "year"] = pd.NA
        temp.loc[1, "year"] = pd.NA

        merged = merge_tables(precip, temp)
        assert merged["year"].isna().tolist() == [i == 1 for i in range(len(merged))]
        assert merged.loc[2, "year"] == 2002

    def test_missing_year_on_one_side_raises(self, precip_table, temp_table):
        temp = temp_table.astype({"year": "Int64"})
        temp.loc[1, "year"] = pd.NA
        with pytest.raises(AlignmentError, match="Row 1 differs"):
            merge_tables(precip_table, temp)

    def test_alignment_error_is_a_value_error(self):
        assert issubclass(AlignmentError, ValueError)


# ============================================================================
# build_country_index / value_ranges
# ============================================================================

class TestCountryIndex:

    def test_subsets_partition_the_rows(self, merged, index):
        seen = np.concatenate(list(index.values()))
        assert len(seen) == len(merged)
        assert set(seen.tolist()) == set(range(len(merged)))
        for i, a in enumerate(CODES):
            for b in CODES[i + 1:]:
                assert not set(index[a]) & set(index[b])

    def test_rows_belong_to_their_country(self, merged, index):
        for code, rows in index.items():
            assert (merged.iloc[rows]["country_code"] == code).all()
            assert merged.iloc[rows]["year"].tolist() == YEARS

    def test_unknown_code_raises(self, merged):
        with pytest.raises(ValueError, match="unconfigured"):
            build_country_index(merged, CODES[:3])

    def test_duplicate_codes_raise(self, merged):
        with pytest.raises(ValueError, match="more than once: \\['USA'\\]"):
            build_country_index(merged, CODES + ["USA"])

    def test_value_ranges(self, merged):
        ranges = value_ranges(merged)
        assert ranges["temperature"] == (-5.2, 23.9)
        assert ranges["precipitation"] == (510.0, 800.0)


# ============================================================================
# Derived shapes and statistics
# ============================================================================

class TestPolygonShape:

    @pytest.mark.parametrize("code", CODES)
    def test_lengths_and_mirror(self, merged, index, code):
        subset = merged.iloc[index[code]]
        n = len(subset)
        x, y = polygon_shape(subset)

        assert len(x) == len(y) == 2 * n
        np.testing.assert_array_equal(x[:n], x[n:][::-1])
        np.testing.assert_array_equal(y[:n], PRECIPITATION[code])
        assert (y[n:] == 0).all()

    def test_single_year(self):
        subset = pd.DataFrame({"year": [1990], "precipitation": [12.5]})
        x, y = polygon_shape(subset)
        np.testing.assert_array_equal(x, [1990, 1990])
        np.testing.assert_array_equal(y, [12.5, 0.0])


class TestMeanPrecipOrder:

    def test_descending_means(self, merged):
        assert mean_precip_order(merged, CODES) == ["MEX", "USA", "GTM", "CAN"]

    def test_matches_recomputed_grouped_means(self, merged):
        order = mean_precip_order(merged, CODES)
        means = merged.groupby("country_code")["precipitation"].mean()
        assert [means[c] for c in order] == sorted(means.values, reverse=True)

    def test_ties_keep_configured_order(self):
        df = pd.DataFrame({
            "year":          [2000, 2000, 2000],
            "country_code":  ["A", "B", "C"],
            "precipitation": [5.0, 9.0, 5.0],
        })
        assert mean_precip_order(df, ["C", "A", "B"]) == ["B", "C", "A"]


class TestPeakTemperature:

    @pytest.mark.parametrize("code, expected", [
        ("USA", (2002, 9.2)),
        ("CAN", (2003, -3.9)),
        ("MEX", (2004, 21.8)),
        ("GTM", (2001, 23.9)),
    ])
    def test_unique_maximum(self, merged, index, code, expected):
        assert peak_temperature(merged, index[code]) == expected

    def test_tie_goes_to_earliest_year(self):
        df = pd.DataFrame({
            "year":        [2003, 2001, 2002],
            "temperature": [15.0, 15.0, 11.0],
        })
        assert peak_temperature(df, [0, 1, 2]) == (2001, 15.0)

    def test_empty_subset_raises(self, merged):
        with pytest.raises(ValueError):
            peak_temperature(merged, [])


class TestLowessTrend:

    def test_sorted_output_of_same_length(self):
        x = np.array([2004, 2000, 2002, 2001, 2003], dtype=float)
        y = np.array([5.0, 1.0, 3.5, 2.2, 4.1])
        tx, ty = lowess_trend(x, y)
        assert len(tx) == len(ty) == 5
        assert (np.diff(tx) >= 0).all()

    def test_recovers_a_straight_line(self):
        x = np.arange(1901, 1931, dtype=float)
        y = 0.02 * (x - 1901) + 10.0
        tx, ty = lowess_trend(x, y, it=0)
        np.testing.assert_allclose(ty, 0.02 * (tx - 1901) + 10.0, atol=1e-6)


# ============================================================================
# load_cleaned
# ============================================================================

class TestLoadCleaned:

    def test_round_trip(self, merged, tmp_path):
        path = tmp_path / "climate_merged.csv"
        merged.to_csv(path, index=False)
        loaded = load_cleaned(path)
        pd.testing.assert_frame_equal(loaded, merged, check_dtype=False)

    def test_missing_file_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            load_cleaned(tmp_path / "nope.csv")
        assert exc.value.code == 1

    def test_missing_column_exits(self, merged, tmp_path):
        path = tmp_path / "climate_merged.csv"
        merged.drop(columns="temperature").to_csv(path, index=False)
        with pytest.raises(SystemExit):
            load_cleaned(path)

    def test_temperature_values_survive(self, merged, tmp_path):
        path = tmp_path / "climate_merged.csv"
        merged.to_csv(path, index=False)
        loaded = load_cleaned(path)
        assert loaded[loaded["country_code"] == "CAN"]["temperature"].tolist() == TEMPERATURE["CAN"]
