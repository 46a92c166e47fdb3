"""
Demographic reshaping for ACS tract estimates.

Turns the long ACS table (one row per tract x variable) into one row per
tract and derives the residual race count, the borough and the plurality
race used throughout the atlas.
"""

import logging

import numpy as np
import pandas as pd

from surveillance_atlas.logging_utils import log_step_start, log_step_end, log_event
from surveillance_atlas.schemas import validate_schema


# Census API placeholders for suppressed or unavailable estimates
CENSUS_NA_VALUES = [-666666666, -999999999, -888888888, -555555555, -222222222]

SOURCED_RACE_COLUMNS = ["white", "black", "latino", "asian"]

# Checked in this order; the first pattern found in the tract name wins
BOROUGH_PATTERNS = [
    ("Bronx", "Bronx"),
    ("Kings", "Brooklyn"),
    ("Queens", "Queens"),
    ("New York County", "Manhattan"),
    ("Richmond", "Staten Island"),
]

# Tie priority for plurality_race: earlier entries win
PLURALITY_ORDER = [
    ("black", "Black"),
    ("white", "White"),
    ("latino", "Latino"),
    ("asian", "Asian"),
    ("other_race", "Other"),
]

RACE_LABELS = [label for _, label in PLURALITY_ORDER]


class DuplicateVariableError(ValueError):
    """Raised when a (tract, variable) pair appears more than once in ACS input."""
    pass


class BoroughMatchError(ValueError):
    """Raised when a tract name matches none of the NYC county patterns."""
    pass


def reshape_acs(
    acs_long: pd.DataFrame,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Pivot long ACS rows to one row per tract with one column per variable.

    Values come from `estimate`; `moe` is dropped. The tract name is carried
    through (first name seen per tract).

    Raises:
        DuplicateVariableError: If any (tract_id, variable) pair repeats.
    """
    dupes = acs_long.duplicated(subset=["tract_id", "variable"], keep=False)
    if dupes.any():
        sample = (
            acs_long.loc[dupes, ["tract_id", "variable"]]
            .drop_duplicates()
            .head(5)
            .to_dict("records")
        )
        raise DuplicateVariableError(
            f"{int(dupes.sum())} ACS rows repeat a (tract_id, variable) pair; "
            f"sample: {sample}"
        )

    wide = acs_long.pivot(index="tract_id", columns="variable", values="estimate")
    wide.columns.name = None

    names = acs_long.groupby("tract_id", sort=False)["tract_name"].first()
    wide.insert(0, "tract_name", names.reindex(wide.index))
    wide = wide.reset_index()

    if logger:
        log_event(logger, logging.INFO,
                  f"Reshaped {len(acs_long):,} ACS rows to {len(wide):,} tracts",
                  "acs_reshaped", rows_in=len(acs_long), tracts=len(wide),
                  variables=sorted(acs_long["variable"].unique().tolist()))

    return wide


def clean_census_values(df: pd.DataFrame, columns: list[str] | None = None) -> pd.DataFrame:
    """Replace Census API sentinel values with NaN in the numeric columns."""
    df = df.copy()
    if columns is None:
        columns = df.select_dtypes(include="number").columns.tolist()
    for col in columns:
        df[col] = df[col].replace(CENSUS_NA_VALUES, np.nan)
    return df


def derive_other_race(df: pd.DataFrame) -> pd.DataFrame:
    """other_race = total_pop - (white + black + latino + asian)."""
    df = df.copy()
    df["other_race"] = df["total_pop"] - df[SOURCED_RACE_COLUMNS].sum(axis=1, min_count=4)
    return df


def _match_borough(name) -> str | None:
    if isinstance(name, str):
        for pattern, borough in BOROUGH_PATTERNS:
            if pattern in name:
                return borough
    return None


def derive_borough(df: pd.DataFrame, name_column: str = "tract_name") -> pd.DataFrame:
    """
    Add a `borough` column from substring matches against the tract name.

    "Census Tract 1, Kings County, New York" gives Brooklyn. A missing
    name matches nothing.

    Raises:
        BoroughMatchError: Listing every tract whose name matched no pattern.
    """
    df = df.copy()
    borough = df[name_column].map(_match_borough)

    unmatched = borough.isna()
    if unmatched.any():
        sample = df.loc[unmatched, ["tract_id", name_column]].head(5).to_dict("records")
        raise BoroughMatchError(
            f"{int(unmatched.sum())} tracts have names matching no borough pattern; "
            f"sample: {sample}"
        )

    df["borough"] = borough
    return df


def derive_plurality_race(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add `plurality_race`: the race category with the row's maximum count.

    Ties go to the earliest category in PLURALITY_ORDER. Rows where all
    five counts are null get a null label.
    """
    df = df.copy()
    columns = [col for col, _ in PLURALITY_ORDER]
    row_max = df[columns].max(axis=1)

    plurality = pd.Series(None, index=df.index, dtype=object)
    for col, label in PLURALITY_ORDER:
        hit = plurality.isna() & df[col].eq(row_max) & row_max.notna()
        plurality[hit] = label

    df["plurality_race"] = plurality
    return df


def build_demographics(
    acs_long: pd.DataFrame,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Reshape ACS estimates and derive other_race, borough and plurality_race.

    Raises:
        KeyError: If total_pop or a sourced race variable is absent.
        SchemaValidationError: If the result drifts from the
            tract_demographics schema.
    """
    if logger:
        log_step_start(logger, "build_demographics")

    wide = reshape_acs(acs_long, logger)

    missing = [c for c in ["total_pop", *SOURCED_RACE_COLUMNS] if c not in wide.columns]
    if missing:
        raise KeyError(f"ACS input lacks required variables: {missing}")

    value_columns = [c for c in wide.columns if c not in ("tract_id", "tract_name")]
    wide = clean_census_values(wide, value_columns)
    wide = derive_other_race(wide)
    wide = derive_borough(wide)
    wide = derive_plurality_race(wide)

    validate_schema(wide, "tract_demographics")

    if logger:
        log_step_end(logger, "build_demographics", tracts=len(wide),
                     boroughs=wide["borough"].value_counts().to_dict(),
                     plurality=wide["plurality_race"].value_counts().to_dict())

    return wide
