"""
Pytest configuration and shared fixtures.

The fixtures describe three Brooklyn/Manhattan/Bronx tracts (A, B, C) laid
out as adjacent 1,000 ft squares in NY State Plane. Demographics cover A
and B, cameras cover B and C, and stops fall in A and B only.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
import pandas as pd
import numpy as np
import geopandas as gpd
from shapely.geometry import box


TRACT_A = "36047000100"
TRACT_B = "36061000200"
TRACT_C = "36005000300"

X0, Y0 = 1_000_000, 200_000


def square(i: int):
    """The i-th 1,000 ft square, left to right."""
    return box(X0 + 1000 * i, Y0, X0 + 1000 * (i + 1), Y0 + 1000)


def inside(i: int) -> tuple[float, float]:
    """A point in the middle of square i."""
    return X0 + 1000 * i + 500, Y0 + 500


@pytest.fixture
def sample_acs_long():
    """Long ACS rows for tracts A and B."""
    values = {
        TRACT_A: ("Census Tract 1; Kings County; New York",
                  {"total_pop": 1000, "white": 100, "black": 600, "latino": 200,
                   "asian": 50, "median_income": 45000}),
        TRACT_B: ("Census Tract 2, New York County, New York",
                  {"total_pop": 2000, "white": 900, "black": 300, "latino": 500,
                   "asian": 200, "median_income": -666666666}),
    }
    rows = []
    for tract_id, (name, estimates) in values.items():
        for variable, estimate in estimates.items():
            rows.append({
                "tract_id": tract_id,
                "tract_name": name,
                "variable": variable,
                "estimate": float(estimate),
                "moe": 10.0,
            })
    return pd.DataFrame(rows)


@pytest.fixture
def sample_tracts():
    """Tract geometry for A, B and C in EPSG:2263."""
    return gpd.GeoDataFrame(
        {
            "tract_id": [TRACT_A, TRACT_B, TRACT_C],
            "tract_name": ["Census Tract 1", "Census Tract 2", "Census Tract 3"],
        },
        geometry=[square(0), square(1), square(2)],
        crs="EPSG:2263",
    )


@pytest.fixture
def sample_cameras():
    """Camera counts for B and C, keyed by numeric GEOIDs as in the source CSV."""
    return pd.DataFrame({
        "tract_id": [int(TRACT_B), int(TRACT_C)],
        "cameras": [20.0, 8.0],
        "cameras_200m": [30.0, 12.0],
        "eff_cameras": [8.0, 4.0],
        "eff_cameras_200m": [10.0, 5.0],
    })


@pytest.fixture
def sample_stops():
    """Stops: three in A, one in B, one with no tract."""
    ax, ay = inside(0)
    bx, by = inside(1)
    return pd.DataFrame({
        "tract_id": [TRACT_A, TRACT_A, TRACT_A, TRACT_B, None],
        "race_raw": ["BLACK", "BLACK HISPANIC", "WHITE", "BLACK", "(null)"],
        "year": [2019, 2020, 2019, 2020, 2020],
        "x": [ax, ax, ax, bx, np.nan],
        "y": [ay, ay, ay, by, np.nan],
    })


@pytest.fixture
def sample_params():
    """Pipeline parameters matching configs/params.yml defaults."""
    return {
        "stops": {"crs": "EPSG:2263", "years": []},
        "rates": {"population_threshold": 250, "per": 1000, "top_k": 50},
        "figures": {"dpi": 50},
    }


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "smoke: mark test as smoke test (quick sanity checks)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow (may take > 10 seconds)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (end-to-end over synthetic files)"
    )
