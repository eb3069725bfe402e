"""
scripts/fetch_data.py
=====================
Acquire, reconcile and clean historical temperature and precipitation for
the four configured countries.

Source: World Bank Climate Data API, CRU historical series — one request
per (variable, country):

    {API_BASE}/cru/pr/year/USA.json    precipitation, mm
    {API_BASE}/cru/tas/year/USA.json   temperature, °C

Each response is a JSON list like [{"year": 1901, "data": 12.3}, ...].
Per variable the countries are stacked into one long table:

    year | country_code | value

The two tables are then merged side by side (see prepare_data.merge_tables)
into data/cleaned/climate_merged.csv, which every visualize_*.py reads.

Raw tables are cached in data/raw/ so subsequent runs are instant.  Use
--refresh to force a re-download.  There is no retry: any failed request
stops the run before anything is plotted.

Usage:
    python scripts/fetch_data.py                      # uses cache when available
    python scripts/fetch_data.py --refresh            # forces re-download
    python scripts/fetch_data.py --time-scale decade
"""

import sys
import argparse
from pathlib import Path

import requests
import pandas as pd

from climate_style import (
    API_BASE, CLEANED_CSV, COUNTRIES, RAW_DIR, TIME_SCALES, country_codes,
)
from prepare_data import build_country_index, merge_tables


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────
# Merged-table column → API variable code
VARIABLES = {
    "precipitation": "pr",
    "temperature":   "tas",
}

# Polite HTTP headers; always identify your client
HEADERS = {"User-Agent": "Mozilla/5.0 (research; climate-panels/1.0; non-commercial)"}
TIMEOUT = 30


class FetchError(RuntimeError):
    """The API answered, but not with a usable series."""


# =============================================================================
# Remote queries
# =============================================================================

def series_url(variable: str, time_scale: str, code: str) -> str:
    if variable not in VARIABLES:
        raise ValueError(f"Unknown variable {variable!r}; expected one of {list(VARIABLES)}")
    if time_scale not in TIME_SCALES:
        raise ValueError(f"Unknown time scale {time_scale!r}; expected one of {TIME_SCALES}")
    return f"{API_BASE}/cru/{VARIABLES[variable]}/{time_scale}/{code}.json"


def parse_series(payload, code: str) -> pd.DataFrame:
    """
    Turn one API response into long rows for a single country.

    A year that cannot be parsed is a FetchError: without it the row has
    no key to align on.  Values that cannot be parsed become NaN here;
    validate() rejects them later so the problem is reported with the
    rest of the data.
    """
    if not isinstance(payload, list) or not payload:
        raise FetchError(f"Empty or malformed series for {code}: {str(payload)[:80]!r}")

    raw = pd.DataFrame(payload)
    for col in ("year", "data"):
        if col not in raw.columns:
            raise FetchError(f"Series for {code} has no '{col}' field. Got: {list(raw.columns)}")

    years = pd.to_numeric(raw["year"], errors="coerce")
    if years.isna().any():
        bad = raw.loc[years.isna(), "year"].tolist()
        raise FetchError(f"Series for {code} has unparseable years: {bad[:5]!r}")

    out = pd.DataFrame({
        "year":         years.astype("Int64"),
        "country_code": code,
        "value":        pd.to_numeric(raw["data"], errors="coerce"),
    })
    return out.sort_values("year").reset_index(drop=True)


def fetch_country_series(variable: str, time_scale: str, code: str) -> pd.DataFrame:
    """
    GET one (variable, country) series.

    requests errors (connection problems, 4xx/5xx via raise_for_status)
    propagate unchanged; a body that is not JSON becomes a FetchError.
    """
    url = series_url(variable, time_scale, code)
    print(f"[fetch] {variable:<13} {code}  ←  {url}")
    resp = requests.get(url, headers=HEADERS, timeout=TIMEOUT)
    resp.raise_for_status()
    try:
        payload = resp.json()
    except ValueError as e:
        raise FetchError(f"Response for {code} is not JSON: {e}") from e
    return parse_series(payload, code)


# =============================================================================
# Cache
# =============================================================================

def cache_path(variable: str, time_scale: str, codes: list[str], raw_dir: Path | None = None) -> Path:
    raw_dir = RAW_DIR if raw_dir is None else raw_dir
    # The code list is part of the name so a different country set never
    # reuses a stale file
    return raw_dir / f"wb_{VARIABLES[variable]}_{time_scale}_{'-'.join(codes)}.csv"


def fetch_variable(
    variable: str,
    codes: list[str],
    time_scale: str = "year",
    force_refresh: bool = False,
    raw_dir: Path | None = None,
) -> pd.DataFrame:
    """
    Long table of one variable for all countries, stacked in `codes` order.
    """
    raw_dir = RAW_DIR if raw_dir is None else raw_dir
    path = cache_path(variable, time_scale, codes, raw_dir)
    if path.exists() and not force_refresh:
        print(f"[cache] Using cached {variable} data: {path.name}")
        df = pd.read_csv(path)
        df["country_code"] = df["country_code"].astype(str)
        return df

    frames = [fetch_country_series(variable, time_scale, code) for code in codes]
    df = pd.concat(frames, ignore_index=True)

    raw_dir.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    print(f"[cache] Saved raw {variable} → {path.name}")
    return df


# =============================================================================
# Validation
# =============================================================================

def validate(df: pd.DataFrame, codes: list[str]) -> None:
    """
    Run sanity checks on the merged table and print a summary report.

    Any failed check raises AssertionError and stops the run.
    """
    print("\n[validate] ── Quality Checks ─────────────────────────────────────")
    print(f"  Shape:          {df.shape[0]} rows × {df.shape[1]} cols")
    print(f"  Year range:     {int(df['year'].min())} – {int(df['year'].max())}")
    print(f"  Temperature:    {df['temperature'].min():.2f} – {df['temperature'].max():.2f} °C")
    print(f"  Precipitation:  {df['precipitation'].min():.1f} – {df['precipitation'].max():.1f} mm")
    print(f"\n  Null counts per column:")
    for col, n in df.isnull().sum().items():
        status = "✓" if n == 0 else f"⚠  {n} nulls"
        print(f"    {col:<15} {status}")

    assert df["year"].notna().all(),            "Found null year values — check raw data!"
    assert df["temperature"].notna().all(),     "Found null temperatures — check raw data!"
    assert df["precipitation"].notna().all(),   "Found null precipitation — check raw data!"
    assert (df["precipitation"] >= 0).all(),    "Found negative precipitation"
    assert df["country_code"].isin(codes).all(), "Found an unconfigured country code"
    assert not df.duplicated(["year", "country_code"]).any(), \
        "Found duplicate (year, country_code) rows"

    print("\n[validate] All checks passed ✓")


# =============================================================================
# MAIN
# =============================================================================

def main(force_refresh: bool = False, time_scale: str = "year") -> None:
    print("=" * 62)
    print("  Historical Climate — Data Acquisition & Cleaning")
    print("=" * 62)

    codes = country_codes(COUNTRIES)

    try:
        precip = fetch_variable("precipitation", codes, time_scale, force_refresh)
        temp   = fetch_variable("temperature",   codes, time_scale, force_refresh)
    except (requests.RequestException, FetchError) as e:
        print(
            f"\n[error] Data acquisition failed: {e}\n"
            f"        Check your internet connection and the API at\n"
            f"        {API_BASE}"
        )
        sys.exit(1)

    print(f"\n[info]  Precipitation rows: {len(precip)}  |  Temperature rows: {len(temp)}")

    try:
        df = merge_tables(precip, temp)
        index = build_country_index(df, codes)
    except ValueError as e:
        # AlignmentError is a ValueError
        print(
            f"\n[error] The fetched tables cannot be combined: {e}\n"
            f"        Re-run with --refresh to discard cached files in data/raw/."
        )
        sys.exit(1)

    for code, rows in index.items():
        print(f"[info]  {code}: {len(rows)} rows")

    print("\n[info]  ── DataFrame Overview ──────────────────────────────────")
    print(df.head().to_string(index=False))
    print()
    print(df.groupby("country_code")[["temperature", "precipitation"]].mean().round(2).to_string())

    validate(df, codes)

    CLEANED_CSV.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(CLEANED_CSV, index=False)
    print(f"\n[done]  Cleaned data saved → {CLEANED_CSV}")
    print(f"        Run 'python scripts/visualize_all.py' to generate the figures.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Fetch and merge historical climate data for the configured countries.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Force re-download even if cached files exist in data/raw/.",
    )
    parser.add_argument(
        "--time-scale",
        choices=TIME_SCALES,
        default="year",
        help="Aggregation of the historical series (default: year).",
    )
    args = parser.parse_args()
    main(force_refresh=args.refresh, time_scale=args.time_scale)
