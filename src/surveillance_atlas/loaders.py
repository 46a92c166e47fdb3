"""
Readers for the four pipeline inputs.

Each reader renames source columns to the canonical names used across
the package, coerces types, and validates the result against its schema.
Column mappings come from configs/params.yml.
"""

import logging
from pathlib import Path

import geopandas as gpd
import pandas as pd

from surveillance_atlas.joins import normalize_tract_id
from surveillance_atlas.logging_utils import log_event
from surveillance_atlas.schemas import validate_schema, validate_geodataframe


ACS_COLUMN_MAP = {"GEOID": "tract_id", "NAME": "tract_name"}

DEFAULT_STOP_COLUMNS = {
    "tract_id": "GEOID",
    "race_raw": "SUSPECT_RACE_DESCRIPTION",
    "year": "YEAR2",
    "x": "STOP_LOCATION_X",
    "y": "STOP_LOCATION_Y",
}

DEFAULT_CAMERA_COLUMNS = {
    "tract_id": "GEOID",
    "cameras": "cameras",
    "cameras_200m": "cameras_200m",
    "eff_cameras": "eff_cameras",
    "eff_cameras_200m": "eff_cameras_200m",
}


def _require_file(path: Path | str, label: str) -> Path:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{label} file not found: {path}")
    return path


def _log_loaded(logger, label: str, path: Path, rows: int) -> None:
    if logger:
        log_event(logger, logging.INFO, f"Loaded {label}: {rows:,} rows from {path.name}",
                  "input_loaded", source=label, path=str(path), rows=rows)


def _select_columns(df: pd.DataFrame, columns: dict[str, str], label: str) -> pd.DataFrame:
    """Rename source columns to canonical names, keeping only mapped columns."""
    present = {}
    for canon, src in columns.items():
        if src in df.columns:
            present[src] = canon
        elif canon in df.columns:
            present[canon] = canon
    if not present:
        raise KeyError(f"{label} has none of the expected columns: {sorted(columns.values())}")
    return df[list(present)].rename(columns=present)


def read_acs_long(path: Path | str, logger: logging.Logger | None = None) -> pd.DataFrame:
    """
    Read long-format ACS estimates (GEOID, NAME, variable, estimate, moe).
    """
    path = _require_file(path, "ACS")
    df = pd.read_csv(path, dtype={"GEOID": str, "tract_id": str})
    df = df.rename(columns=ACS_COLUMN_MAP)

    df["tract_id"] = normalize_tract_id(df["tract_id"])
    df["estimate"] = pd.to_numeric(df["estimate"], errors="coerce")
    if "moe" in df.columns:
        df["moe"] = pd.to_numeric(df["moe"], errors="coerce")

    validate_schema(df, "acs_long")
    _log_loaded(logger, "acs", path, len(df))
    return df


def read_stops(
    path: Path | str,
    columns: dict[str, str] | None = None,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Read stop-and-frisk records.

    A missing tract id column is allowed (tracts are then assigned from
    coordinates). Unparseable coordinates, such as the "(null)" markers in
    NYPD exports, become NaN. So do blank or unparseable years.
    """
    columns = columns or DEFAULT_STOP_COLUMNS
    path = _require_file(path, "Stops")

    df = pd.read_csv(path, dtype=str, low_memory=False)
    df = _select_columns(df, columns, "Stops")

    if "tract_id" in df.columns:
        df["tract_id"] = normalize_tract_id(df["tract_id"])
    else:
        df["tract_id"] = None
    for col in ("x", "y"):
        df[col] = pd.to_numeric(df[col], errors="coerce") if col in df.columns else float("nan")
    df["year"] = pd.to_numeric(df["year"], errors="coerce")

    validate_schema(df, "stop_incidents")
    _log_loaded(logger, "stops", path, len(df))
    return df


def read_cameras(
    path: Path | str,
    columns: dict[str, str] | None = None,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """Read per-tract camera counts. Tract ids may be numeric in the source."""
    columns = columns or DEFAULT_CAMERA_COLUMNS
    path = _require_file(path, "Cameras")

    df = _select_columns(pd.read_csv(path), columns, "Cameras")
    df["tract_id"] = normalize_tract_id(df["tract_id"])
    for col in ("cameras", "cameras_200m", "eff_cameras", "eff_cameras_200m"):
        df[col] = pd.to_numeric(df[col], errors="coerce")

    validate_schema(df, "cameras")
    _log_loaded(logger, "cameras", path, len(df))
    return df


def read_tract_geometry(
    path: Path | str,
    id_column: str = "GEOID",
    name_column: str | None = "NAMELSAD",
    logger: logging.Logger | None = None,
) -> gpd.GeoDataFrame:
    """Read tract polygons from any format geopandas can open."""
    path = _require_file(path, "Tract geometry")
    gdf = gpd.read_file(path)

    gdf = gdf.rename(columns={id_column: "tract_id"})
    if name_column and name_column in gdf.columns:
        gdf = gdf.rename(columns={name_column: "tract_name"})
    else:
        gdf["tract_name"] = None
    gdf = gdf[["tract_id", "tract_name", "geometry"]].copy()
    gdf["tract_id"] = normalize_tract_id(gdf["tract_id"])

    validate_geodataframe(gdf, "tract_geometry")
    _log_loaded(logger, "tracts", path, len(gdf))
    return gdf
