"""
scripts/prepare_data.py
=======================
Table-level helpers shared by the fetch step and every figure.

  merge_tables()        precipitation + temperature → one table, after an
                        explicit row-by-row alignment check
  build_country_index() row positions of each country, computed once
  value_ranges()        global min/max, candidate axis bounds
  polygon_shape()       closed area outline for one country's precipitation
  mean_precip_order()   countries by descending mean precipitation
  peak_temperature()    hottest year within one country's rows
  lowess_trend()        local regression smoothing of a series
  load_cleaned()        read data/cleaned/climate_merged.csv for the figures

Merged table layout (one row per country-year):

    year | country_code | precipitation | temperature
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
from statsmodels.nonparametric.smoothers_lowess import lowess

from climate_style import CLEANED_CSV


KEY_COLUMNS    = ["year", "country_code"]
MERGED_COLUMNS = ["year", "country_code", "precipitation", "temperature"]


class AlignmentError(ValueError):
    """The two fetched tables do not share the same (year, country_code) rows."""


# ─────────────────────────────────────────────────────────────────────────────
# Reconciliation
# ─────────────────────────────────────────────────────────────────────────────

def merge_tables(precip: pd.DataFrame, temp: pd.DataFrame) -> pd.DataFrame:
    """
    Combine the precipitation and temperature tables column-wise.

    Both inputs are long tables with columns year, country_code, value.
    The merge is positional, so it is only correct when row i of each
    table describes the same country-year; anything else raises
    AlignmentError instead of silently pairing the wrong values.
    """
    if len(precip) != len(temp):
        raise AlignmentError(
            f"Row counts differ: precipitation has {len(precip)}, "
            f"temperature has {len(temp)}"
        )

    p_keys = precip[KEY_COLUMNS].reset_index(drop=True)
    t_keys = temp[KEY_COLUMNS].reset_index(drop=True)
    # A missing year on both sides still lines up; validate() reports it
    p_year = p_keys["year"].astype("Float64")
    t_year = t_keys["year"].astype("Float64")
    same_year = p_year.eq(t_year).fillna(False) | (p_year.isna() & t_year.isna())
    same_code = p_keys["country_code"].astype(str).eq(t_keys["country_code"].astype(str))
    same = (same_year & same_code).to_numpy(dtype=bool)
    if not same.all():
        pos = int(np.flatnonzero(~same)[0])
        raise AlignmentError(
            f"Row {pos} differs: precipitation has "
            f"({p_keys.at[pos, 'year']}, {p_keys.at[pos, 'country_code']}), "
            f"temperature has ({t_keys.at[pos, 'year']}, {t_keys.at[pos, 'country_code']})"
        )

    years = p_keys["year"]
    years = years.astype(int) if years.notna().all() else years.astype("Int64")
    merged = pd.DataFrame({
        "year":          years,
        "country_code":  p_keys["country_code"].astype(str).to_numpy(),
        "precipitation": precip["value"].to_numpy(dtype=float),
        "temperature":   temp["value"].to_numpy(dtype=float),
    })
    return merged[MERGED_COLUMNS]


# ─────────────────────────────────────────────────────────────────────────────
# Indexing
# ─────────────────────────────────────────────────────────────────────────────

def build_country_index(df: pd.DataFrame, codes: list[str]) -> dict[str, np.ndarray]:
    """
    Map each country code to the positions of its rows, in table order.

    The subsets must partition the table: a row whose code is not in
    `codes` would be dropped from every figure, so it raises instead.
    """
    duplicates = sorted({c for c in codes if list(codes).count(c) > 1})
    if duplicates:
        raise ValueError(f"Country codes configured more than once: {duplicates}")

    code_arr = df["country_code"].astype(str).to_numpy()
    index = {code: np.flatnonzero(code_arr == code) for code in codes}

    covered = sum(len(rows) for rows in index.values())
    if covered != len(df):
        unknown = sorted(set(code_arr) - set(codes))
        raise ValueError(
            f"{len(df) - covered} rows carry unconfigured country codes: {unknown}"
        )
    return index


def value_ranges(df: pd.DataFrame) -> dict[str, tuple[float, float]]:
    """Global (min, max) of temperature and precipitation."""
    return {
        col: (float(df[col].min()), float(df[col].max()))
        for col in ("temperature", "precipitation")
    }


# ─────────────────────────────────────────────────────────────────────────────
# Derived shapes and statistics
# ─────────────────────────────────────────────────────────────────────────────

def polygon_shape(subset: pd.DataFrame) -> tuple[np.ndarray, np.ndarray]:
    """
    Outline of the area under one country's precipitation series.

    Walk forward along the data, then back along the x-axis:

        x = y1 y2 … yn  yn … y2 y1
        y = p1 p2 … pn  0  …  0  0

    so ax.fill(x, y) closes the shape on the zero baseline.
    """
    years  = subset["year"].to_numpy(dtype=float)
    precip = subset["precipitation"].to_numpy(dtype=float)
    x = np.concatenate([years, years[::-1]])
    y = np.concatenate([precip, np.zeros(len(precip))])
    return x, y


def mean_precip_order(df: pd.DataFrame, codes: list[str]) -> list[str]:
    """
    Country codes sorted by descending mean precipitation.

    Drawing in this order puts the tallest polygon at the back.  Equal
    means keep their configured order (stable sort).
    """
    means = (
        df[df["country_code"].isin(codes)]
        .groupby("country_code")["precipitation"]
        .mean()
        .reindex(codes)
    )
    return means.sort_values(ascending=False, kind="stable").index.tolist()


def peak_temperature(df: pd.DataFrame, rows) -> tuple[int, float]:
    """
    (year, temperature) of the hottest row among `rows`.

    Ties go to the earliest year.
    """
    subset = df.iloc[rows]
    if subset.empty:
        raise ValueError("Cannot find a peak in an empty subset")
    hottest = subset[subset["temperature"] == subset["temperature"].max()]
    row = hottest.sort_values("year", kind="stable").iloc[0]
    return int(row["year"]), float(row["temperature"])


def lowess_trend(x, y, frac: float = 2 / 3, it: int = 3) -> tuple[np.ndarray, np.ndarray]:
    """
    Locally weighted regression of y on x.

    frac and it are the usual LOWESS defaults (two thirds of the points per
    local fit, three robustifying iterations).  Returns the fitted curve
    sorted by x.
    """
    fitted = lowess(np.asarray(y, dtype=float), np.asarray(x, dtype=float),
                    frac=frac, it=it, return_sorted=True)
    return fitted[:, 0], fitted[:, 1]


# ─────────────────────────────────────────────────────────────────────────────
# Loading the cleaned table
# ─────────────────────────────────────────────────────────────────────────────

def load_cleaned(path: Path = CLEANED_CSV) -> pd.DataFrame:
    """
    Read the merged table written by fetch_data.py, or exit with a hint.
    """
    if not path.exists():
        print(
            f"\n[error] Cleaned data not found at:\n"
            f"        {path}\n\n"
            f"        Run 'python scripts/fetch_data.py' first."
        )
        sys.exit(1)

    df = pd.read_csv(path)
    print(f"[data]  Loaded {len(df)} rows from {path.name}")

    for col in MERGED_COLUMNS:
        if col not in df.columns:
            print(f"[error] Required column '{col}' missing. Re-run fetch_data.py.")
            sys.exit(1)

    df["year"] = df["year"].astype(int)
    df["country_code"] = df["country_code"].astype(str)
    return df[MERGED_COLUMNS]
