"""
Shared fixtures: a small synthetic merged table and a synthetic map.

Four countries × five years, with values chosen so that
  - every country has a unique hottest year,
  - mean precipitation ranks MEX > USA > GTM > CAN (not palette order).
"""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
import geopandas as gpd
from shapely.geometry import box

from climate_style import COUNTRIES, country_codes


YEARS = [2000, 2001, 2002, 2003, 2004]

TEMPERATURE = {
    "USA": [8.1, 8.4, 9.2, 8.7, 8.9],
    "CAN": [-5.2, -4.8, -5.0, -3.9, -4.4],
    "MEX": [20.9, 21.3, 21.1, 21.0, 21.8],
    "GTM": [23.2, 23.9, 23.4, 23.6, 23.5],
}

PRECIPITATION = {
    "USA": [700.0, 720.0, 690.0, 710.0, 730.0],
    "CAN": [520.0, 510.0, 530.0, 515.0, 525.0],
    "MEX": [760.0, 790.0, 770.0, 780.0, 800.0],
    "GTM": [600.0, 610.0, 590.0, 620.0, 605.0],
}


def long_table(values: dict) -> pd.DataFrame:
    """Stack a {code: [v, ...]} dict into year | country_code | value rows."""
    rows = [
        {"year": year, "country_code": code, "value": v}
        for code in country_codes(COUNTRIES)
        for year, v in zip(YEARS, values[code])
    ]
    return pd.DataFrame(rows)


@pytest.fixture
def precip_table():
    return long_table(PRECIPITATION)


@pytest.fixture
def temp_table():
    return long_table(TEMPERATURE)


@pytest.fixture
def merged(precip_table, temp_table):
    from prepare_data import merge_tables
    return merge_tables(precip_table, temp_table)


@pytest.fixture
def index(merged):
    from prepare_data import build_country_index
    return build_country_index(merged, country_codes(COUNTRIES))


@pytest.fixture
def world():
    """Boxes standing in for the four countries plus one unrelated country."""
    return gpd.GeoDataFrame(
        {
            "ADMIN":   ["United States", "Canada", "Mexico", "Guatemala", "Iceland"],
            "ISO_A3":  ["USA", "CAN", "MEX", "-99", "ISL"],
            "ADM0_A3": ["USA", "CAN", "MEX", "GTM", "ISL"],
        },
        geometry=[
            box(-125, 25, -67, 49),
            box(-140, 49, -55, 70),
            box(-117, 15, -87, 32),
            box(-92, 13.5, -88, 18),
            box(-24, 63, -13, 67),
        ],
        crs="EPSG:4326",
    )


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")
