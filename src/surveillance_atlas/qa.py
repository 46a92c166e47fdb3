"""
Quality assurance checks for the tract pipeline.

Each check returns a QAResult and, given a logger, records a qa_check
event. run_tract_table_qa bundles the checks run before the tract table
is written.
"""

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from surveillance_atlas.demographics import PLURALITY_ORDER, SOURCED_RACE_COLUMNS
from surveillance_atlas.logging_utils import log_qa_check


@dataclass
class QAResult:
    """Result of a QA check."""
    check_name: str
    passed: bool
    message: str
    details: dict[str, Any] | None = None

    def __bool__(self) -> bool:
        return self.passed


def _finish(result: QAResult, logger: logging.Logger | None) -> QAResult:
    if logger:
        log_qa_check(logger, result.check_name, result.passed, result.message,
                     **(result.details or {}))
    return result


def check_crs(gdf: pd.DataFrame, logger: logging.Logger | None = None) -> QAResult:
    """Check that a GeoDataFrame has a CRS defined."""
    import geopandas as gpd

    if not isinstance(gdf, gpd.GeoDataFrame):
        result = QAResult("crs_defined", False, "Input is not a GeoDataFrame",
                          {"type": type(gdf).__name__})
    elif gdf.crs is None:
        result = QAResult("crs_defined", False, "GeoDataFrame has no CRS defined")
    else:
        result = QAResult("crs_defined", True, f"CRS is {gdf.crs.to_string()}",
                          {"crs": gdf.crs.to_string()})
    return _finish(result, logger)


def check_unique_ids(
    df: pd.DataFrame,
    id_column: str = "tract_id",
    logger: logging.Logger | None = None,
) -> QAResult:
    """Check that the ID column has unique values."""
    check_name = "unique_ids"

    if id_column not in df.columns:
        result = QAResult(check_name, False, f"ID column '{id_column}' not found",
                          {"columns": list(df.columns)})
    else:
        total = len(df)
        unique = df[id_column].nunique()
        if total == unique:
            result = QAResult(check_name, True, f"All {total} IDs are unique",
                              {"total": total, "column": id_column})
        else:
            counts = df[id_column].value_counts()
            result = QAResult(
                check_name, False, f"Found {total - unique} duplicate IDs",
                {"total": total, "unique": unique,
                 "sample_duplicates": counts[counts > 1].head(5).to_dict(),
                 "column": id_column}
            )
    return _finish(result, logger)


def check_no_empty_geoms(gdf: pd.DataFrame, logger: logging.Logger | None = None) -> QAResult:
    """Check that there are no empty or null geometries."""
    empty_count = int(gdf.geometry.is_empty.sum())
    null_count = int(gdf.geometry.isna().sum())

    if empty_count == 0 and null_count == 0:
        result = QAResult("no_empty_geoms", True, f"All {len(gdf)} geometries present",
                          {"total": len(gdf)})
    else:
        result = QAResult("no_empty_geoms", False,
                          f"Found {empty_count} empty and {null_count} null geometries",
                          {"total": len(gdf), "empty": empty_count, "null": null_count})
    return _finish(result, logger)


def check_row_count(
    df: pd.DataFrame,
    expected: int,
    logger: logging.Logger | None = None,
) -> QAResult:
    """Check that a table still has the primary table's row count."""
    passed = len(df) == expected
    result = QAResult(
        "row_count_preserved", passed,
        f"{len(df)} rows (expected {expected})",
        {"rows": len(df), "expected": expected}
    )
    return _finish(result, logger)


def check_race_sum(
    df: pd.DataFrame,
    tolerance: float = 1e-6,
    logger: logging.Logger | None = None,
) -> QAResult:
    """Check white + black + latino + asian + other_race == total_pop where all are present."""
    columns = [*SOURCED_RACE_COLUMNS, "other_race"]
    complete = df[[*columns, "total_pop"]].notna().all(axis=1)
    diff = (df.loc[complete, columns].sum(axis=1) - df.loc[complete, "total_pop"]).abs()
    bad = int((diff > tolerance).sum())

    result = QAResult(
        "race_sum", bad == 0,
        "Race counts sum to total_pop" if bad == 0 else f"{bad} tracts where race counts != total_pop",
        {"checked": int(complete.sum()), "mismatched": bad}
    )
    return _finish(result, logger)


def check_plurality(df: pd.DataFrame, logger: logging.Logger | None = None) -> QAResult:
    """Check plurality_race names a category holding the row maximum."""
    columns = [col for col, _ in PLURALITY_ORDER]
    label_to_col = {label: col for col, label in PLURALITY_ORDER}
    labelled = df["plurality_race"].notna()
    rows = df.loc[labelled]

    chosen = np.array([rows.at[i, label_to_col[label]] for i, label in rows["plurality_race"].items()],
                      dtype=float)
    bad = int((chosen != rows[columns].max(axis=1).to_numpy(dtype=float)).sum())

    result = QAResult(
        "plurality_race", bad == 0,
        "Plurality labels match row maxima" if bad == 0 else f"{bad} tracts with inconsistent plurality",
        {"checked": int(labelled.sum()), "mismatched": bad}
    )
    return _finish(result, logger)


def run_tract_table_qa(
    table: pd.DataFrame,
    expected_rows: int,
    logger: logging.Logger | None = None,
    fail_on_error: bool = True,
) -> list[QAResult]:
    """
    Run the standard checks on the joined tract table.

    Raises:
        ValueError: If fail_on_error and any check fails.
    """
    results = [
        check_crs(table, logger),
        check_unique_ids(table, "tract_id", logger),
        check_no_empty_geoms(table, logger),
        check_row_count(table, expected_rows, logger),
        check_race_sum(table, logger=logger),
        check_plurality(table, logger),
    ]

    if fail_on_error:
        failed = [r for r in results if not r.passed]
        if failed:
            raise ValueError("QA checks failed:\n" + "\n".join(
                f"{r.check_name}: {r.message}" for r in failed
            ))

    return results
