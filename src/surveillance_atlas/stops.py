"""
Stop-and-frisk race normalization and per-tract aggregation.
"""

import logging
from typing import Iterable

import pandas as pd

from surveillance_atlas.logging_utils import log_step_start, log_step_end, log_event


# NYPD SUSPECT_RACE_DESCRIPTION -> atlas race category
STOP_RACE_MAP = {
    "WHITE": "White",
    "BLACK": "Black",
    "BLACK HISPANIC": "Latino",
    "WHITE HISPANIC": "Latino",
    "ASIAN / PACIFIC ISLANDER": "Asian",
}

OTHER_RACE_LABEL = "Other"


def normalize_race(value) -> str:
    """
    Map a raw stop race description to one of Black, White, Latino, Asian, Other.

    Total: unknown, blank and null inputs all map to Other.
    """
    if not isinstance(value, str):
        return OTHER_RACE_LABEL
    return STOP_RACE_MAP.get(value.strip().upper(), OTHER_RACE_LABEL)


def normalize_stop_races(stops: pd.DataFrame, source_column: str = "race_raw") -> pd.DataFrame:
    """Return a copy of `stops` with a normalized `race` column."""
    stops = stops.copy()
    stops["race"] = stops[source_column].map(normalize_race).astype(object)
    return stops


def aggregate_stops(
    stops: pd.DataFrame,
    years: Iterable[int] | None = None,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Count stops per tract.

    Emits `stop_count`, one `stop_count_<year>` column per year and
    `stop_count_black`. Only tracts with at least one stop appear; nothing
    is zero-filled for tracts without stops. Stops with no year count toward
    `stop_count` and `stop_count_black` but toward no year column.

    Args:
        stops: Stop incidents with `tract_id`, `year` and normalized `race`.
        years: Years to break out. Defaults to every year present.
        logger: Optional logger.
    """
    if logger:
        log_step_start(logger, "aggregate_stops", incidents=len(stops))

    unplaced = stops["tract_id"].isna()
    if logger and unplaced.any():
        log_event(logger, logging.WARNING,
                  f"{int(unplaced.sum()):,} stops have no tract and are excluded from tract counts",
                  "stops_unplaced", unplaced=int(unplaced.sum()), total=len(stops))

    placed = stops.loc[~unplaced]

    undated = placed["year"].isna()
    if logger and undated.any():
        log_event(logger, logging.WARNING,
                  f"{int(undated.sum()):,} placed stops have no year and are left out of year counts",
                  "stops_undated", undated=int(undated.sum()))

    if not years:
        years = sorted(int(y) for y in placed["year"].dropna().unique())

    by_tract = placed.groupby("tract_id")
    counts = by_tract.size().rename("stop_count").to_frame()

    for year in years:
        in_year = placed[placed["year"] == year].groupby("tract_id").size()
        counts[f"stop_count_{int(year)}"] = in_year.reindex(counts.index, fill_value=0)

    black = placed[placed["race"] == "Black"].groupby("tract_id").size()
    counts["stop_count_black"] = black.reindex(counts.index, fill_value=0)

    counts = counts.astype("int64").reset_index()

    if logger:
        log_step_end(logger, "aggregate_stops", tracts_with_stops=len(counts),
                     years=[int(y) for y in years])

    return counts
