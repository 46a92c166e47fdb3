"""
End-to-end tract table build.

build_tract_table composes the pure steps (reshape demographics, place and
aggregate stops, join onto tract geometry, derive rates). run_pipeline and
run_figures add the file I/O, QA and output writing used by the scripts.
"""

import logging
from pathlib import Path
from typing import Any

import geopandas as gpd
import pandas as pd

from surveillance_atlas.demographics import build_demographics
from surveillance_atlas.hashing import write_metadata_sidecar
from surveillance_atlas.io_utils import (
    atomic_write_csv, atomic_write_geoparquet, read_geoparquet, read_yaml
)
from surveillance_atlas.joins import assign_stop_tracts, join_tract_table
from surveillance_atlas.loaders import (
    read_acs_long, read_cameras, read_stops, read_tract_geometry
)
from surveillance_atlas.logging_utils import (
    get_run_id, log_output_written, log_step_end, log_step_start
)
from surveillance_atlas.paths import paths, resolve_path
from surveillance_atlas.plots import RACE_COLORS, build_figures
from surveillance_atlas.qa import run_tract_table_qa
from surveillance_atlas.rates import POPULATION_THRESHOLD, RATE_PER, TOP_K, derive_rates
from surveillance_atlas.schemas import validate_schema
from surveillance_atlas.stops import aggregate_stops, normalize_stop_races


def load_params(path: Path | str | None = None) -> dict[str, Any]:
    """Read configs/params.yml (or `path`)."""
    return read_yaml(path or paths.params_yml)


def rate_settings(params: dict[str, Any] | None) -> dict[str, Any]:
    rates = (params or {}).get("rates", {})
    return {
        "threshold": rates.get("population_threshold", POPULATION_THRESHOLD),
        "per": rates.get("per", RATE_PER),
        "top_k": rates.get("top_k", TOP_K),
    }


def prepare_stops(
    stops: pd.DataFrame,
    tracts: gpd.GeoDataFrame,
    params: dict[str, Any] | None = None,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Normalize stop races and, when no stop carries a tract id, place stops
    into tracts from their coordinates.
    """
    stops = normalize_stop_races(stops)

    if stops["tract_id"].isna().all() and stops[["x", "y"]].notna().all(axis=1).any():
        crs = (params or {}).get("stops", {}).get("crs", "EPSG:2263")
        stops = assign_stop_tracts(stops, tracts, crs=crs, logger=logger)

    return stops


def build_tract_table(
    acs_long: pd.DataFrame,
    stops: pd.DataFrame,
    cameras: pd.DataFrame,
    tracts: gpd.GeoDataFrame,
    params: dict[str, Any] | None = None,
    logger: logging.Logger | None = None,
) -> gpd.GeoDataFrame:
    """
    Build the joined tract table from already-loaded inputs.

    Returns one row per tract in `tracts` with demographics, camera counts,
    stop counts, rates, surveillance rank and class.
    """
    if logger:
        log_step_start(logger, "build_tract_table")

    settings = rate_settings(params)
    years = (params or {}).get("stops", {}).get("years") or None

    demographics = build_demographics(acs_long, logger)
    stops = prepare_stops(stops, tracts, params, logger)
    stop_counts = aggregate_stops(stops, years=years, logger=logger)

    table = join_tract_table(tracts, demographics, cameras, stop_counts, logger)
    table = derive_rates(table, logger=logger, **settings)

    if logger:
        log_step_end(logger, "build_tract_table", rows=len(table))

    return table


def load_inputs(
    params: dict[str, Any],
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    """Read the four configured inputs. Paths are relative to the project root."""
    inputs = params["inputs"]
    tract_cfg = params.get("tracts", {})

    return {
        "acs_long": read_acs_long(resolve_path(inputs["acs_long"]), logger),
        "stops": read_stops(resolve_path(inputs["stops"]),
                            params.get("stops", {}).get("columns"), logger),
        "cameras": read_cameras(resolve_path(inputs["cameras"]),
                                params.get("cameras", {}).get("columns"), logger),
        "tracts": read_tract_geometry(resolve_path(inputs["tracts"]),
                                      tract_cfg.get("id_column", "GEOID"),
                                      tract_cfg.get("name_column", "NAMELSAD"), logger),
    }


def write_tract_table(
    table: gpd.GeoDataFrame,
    output_path: Path | str,
    run_id: str,
    input_files: list[Path] | None = None,
    parameters: dict[str, Any] | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, Path]:
    """Write GeoParquet, a geometry-free CSV, and the metadata sidecar."""
    output_path = Path(output_path)
    csv_path = output_path.with_suffix(".csv")

    atomic_write_geoparquet(output_path, table)
    atomic_write_csv(csv_path, pd.DataFrame(table.drop(columns="geometry")))
    sidecar = write_metadata_sidecar(
        output_path, run_id,
        input_files=input_files,
        parameters=parameters,
        row_count=len(table),
    )

    if logger:
        log_output_written(logger, output_path, len(table))
        log_output_written(logger, csv_path, len(table))
        log_output_written(logger, sidecar)

    return {"parquet": output_path, "csv": csv_path, "metadata": sidecar}


def run_pipeline(
    params: dict[str, Any] | None = None,
    output_path: Path | str | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, Path]:
    """
    Load inputs, build the tract table, run QA and write outputs.

    Raises:
        FileNotFoundError: If an input is missing.
        ValueError: If QA fails, a borough or join key is bad, or ACS
            variables repeat.
        SchemaValidationError: If an input or the final table drifts from
            its schema.
    """
    params = params if params is not None else load_params()
    output_path = Path(output_path or paths.tract_table)

    inputs = load_inputs(params, logger)
    table = build_tract_table(
        inputs["acs_long"], inputs["stops"], inputs["cameras"], inputs["tracts"],
        params, logger,
    )

    run_tract_table_qa(table, expected_rows=len(inputs["tracts"]), logger=logger)
    validate_schema(table, "tract_table")

    input_files = [resolve_path(p) for p in params["inputs"].values()]
    return write_tract_table(
        table, output_path, get_run_id(),
        input_files=input_files,
        parameters={"rates": rate_settings(params),
                    "stop_years": params.get("stops", {}).get("years") or None},
        logger=logger,
    )


def run_figures(
    params: dict[str, Any] | None = None,
    table_path: Path | str | None = None,
    output_dir: Path | str | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, Path]:
    """Render the figure set from a written tract table and the stop records."""
    params = params if params is not None else load_params()
    table = read_geoparquet(table_path or paths.tract_table)

    stops = read_stops(resolve_path(params["inputs"]["stops"]),
                       params.get("stops", {}).get("columns"), logger)
    stops = prepare_stops(stops, table[["tract_id", "geometry"]], params, logger)

    figure_cfg = params.get("figures", {})
    return build_figures(
        table, stops, output_dir or paths.reports_figures,
        top_k=rate_settings(params)["top_k"],
        colors=figure_cfg.get("race_colors", RACE_COLORS),
        dpi=figure_cfg.get("dpi", 150),
        logger=logger,
    )
