"""
Tract-keyed joins.

The tract geometry table is the primary table and every other source is
left-joined onto it, so the output has exactly one row per geometry tract.
Secondary sources must be unique on tract_id. A duplicated key would
multiply primary rows, so it fails loudly instead.

Stops that arrive with coordinates but no tract id are placed with a
point-in-polygon join.
"""

import logging

import geopandas as gpd
import pandas as pd
from pandas.api import types as ptypes

from surveillance_atlas.logging_utils import log_step_start, log_step_end, log_event


STOP_STATUS_RECORDED = "recorded"
STOP_STATUS_NONE = "no_recorded_stops"


class JoinKeyError(ValueError):
    """Raised when join keys are not unique or a join changes the row count."""
    pass


def normalize_tract_id(values: pd.Series) -> pd.Series:
    """
    Coerce tract ids to canonical text.

    Numeric ids (36047000100 or 36047000100.0) and textual ids
    ("36047000100", " 36047000100.0 ") all become "36047000100".
    Nulls stay null.
    """
    if ptypes.is_float_dtype(values):
        text = values.astype("Int64").astype("string")
    elif ptypes.is_integer_dtype(values):
        text = values.astype("string")
    else:
        text = (
            values.astype("string")
            .str.strip()
            .str.replace(r"\.0$", "", regex=True)
        )
        text = text.mask(text.fillna("").eq(""))
    return text.astype(object).where(text.notna(), None)


def _require_unique(df: pd.DataFrame, source: str) -> None:
    dupes = df["tract_id"].dropna().duplicated(keep=False)
    if dupes.any():
        sample = df["tract_id"].dropna()[dupes].unique()[:5].tolist()
        raise JoinKeyError(
            f"{source} has {int(dupes.sum())} rows sharing a tract_id; sample: {sample}"
        )


def left_join_on_tract(
    primary: pd.DataFrame,
    secondary: pd.DataFrame,
    source: str,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Left-join `secondary` onto `primary` by normalized tract_id.

    Raises:
        JoinKeyError: If `secondary` is not unique on tract_id or the join
            changes the primary row count.
    """
    secondary = secondary.copy()
    secondary["tract_id"] = normalize_tract_id(secondary["tract_id"])
    _require_unique(secondary, source)

    joined = primary.merge(secondary, on="tract_id", how="left")

    if len(joined) != len(primary):
        raise JoinKeyError(
            f"Joining {source} changed row count from {len(primary)} to {len(joined)}"
        )

    if logger:
        matched = int(primary["tract_id"].isin(secondary["tract_id"]).sum())
        log_event(logger, logging.INFO,
                  f"Joined {source}: {matched:,}/{len(primary):,} tracts matched",
                  "join", source=source, matched=matched, unmatched=len(primary) - matched,
                  secondary_rows=len(secondary))

    return joined


def join_tract_table(
    tracts: gpd.GeoDataFrame,
    demographics: pd.DataFrame,
    cameras: pd.DataFrame,
    stop_counts: pd.DataFrame | None = None,
    logger: logging.Logger | None = None,
) -> gpd.GeoDataFrame:
    """
    Build the joined tract table: geometry, then demographics, cameras and stops.

    Every geometry tract appears exactly once. Fields from a source with no
    row for a tract are null. `stop_data_status` separates tracts with
    recorded stops from tracts with none, whose stop counts stay null.

    Raises:
        JoinKeyError: If any input is not unique on tract_id.
    """
    if logger:
        log_step_start(logger, "join_tract_table", tracts=len(tracts))

    table = tracts.copy()
    table["tract_id"] = normalize_tract_id(table["tract_id"])
    _require_unique(table, "tract geometry")

    demographics = demographics.rename(columns={"tract_name": "acs_name"})
    table = left_join_on_tract(table, demographics, "demographics", logger)
    table = left_join_on_tract(table, cameras, "cameras", logger)

    if stop_counts is not None:
        table = left_join_on_tract(table, stop_counts, "stop counts", logger)
        table["stop_data_status"] = table["stop_count"].notna().map(
            {True: STOP_STATUS_RECORDED, False: STOP_STATUS_NONE}
        )

    if not isinstance(table, gpd.GeoDataFrame):
        table = gpd.GeoDataFrame(table, geometry="geometry", crs=tracts.crs)

    if logger:
        log_step_end(logger, "join_tract_table", rows=len(table))

    return table


def assign_stop_tracts(
    stops: pd.DataFrame,
    tracts: gpd.GeoDataFrame,
    crs: str = "EPSG:2263",
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Place stops into tracts from their x/y coordinates.

    Points are built in `crs` and joined `within` the tract polygons after
    reprojecting the tracts to the same CRS. Stops without coordinates, or
    outside every tract, get a null tract_id. A point on a shared boundary
    takes the first matching tract.

    Raises:
        ValueError: If the tract geometry has no CRS.
    """
    if tracts.crs is None:
        raise ValueError("Tract geometry has no CRS; cannot place stops")

    stops = stops.reset_index(drop=True)
    has_xy = stops["x"].notna() & stops["y"].notna()

    points = gpd.GeoDataFrame(
        index=stops.index[has_xy],
        geometry=gpd.points_from_xy(stops.loc[has_xy, "x"], stops.loc[has_xy, "y"]),
        crs=crs,
    )
    polygons = tracts[["tract_id", "geometry"]].to_crs(crs)

    joined = gpd.sjoin(points, polygons, how="left", predicate="within")
    joined = joined[~joined.index.duplicated(keep="first")]

    stops = stops.copy()
    stops["tract_id"] = normalize_tract_id(joined["tract_id"].reindex(stops.index))

    if logger:
        placed = int(stops["tract_id"].notna().sum())
        log_event(logger, logging.INFO,
                  f"Placed {placed:,}/{len(stops):,} stops into tracts",
                  "stops_placed", placed=placed, no_coordinates=int((~has_xy).sum()),
                  outside_tracts=int(has_xy.sum()) - placed)

    return stops
