#!/usr/bin/env python3
"""
01_build_tract_table.py

Join ACS demographics, camera counts and stop-and-frisk counts onto tract
geometry and derive stop and surveillance rates.

Pipeline Step: 01

Inputs:
    - data/raw/acs/nyc_tract_acs.csv (from step 00)
    - data/raw/stops/sqf.csv (NYPD Stop, Question and Frisk export)
    - data/raw/cameras/cameras_by_tract.csv
    - data/raw/geo/nyc_tracts.shp
    - configs/params.yml

Outputs:
    - data/processed/tract_table.parquet (GeoParquet)
    - data/processed/tract_table.csv (no geometry)
    - data/processed/tract_table_metadata.json

QA Checks:
    - Unique tract IDs, CRS present, no empty geometries
    - Row count equals tract geometry row count
    - Race counts sum to total population
    - Plurality race consistent with race counts

Failure Modes:
    - Tract name matching no borough
    - Repeated (tract, variable) ACS rows
    - Secondary source not unique on tract id
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from surveillance_atlas.logging_utils import get_logger, get_run_id
from surveillance_atlas.pipeline import load_params, run_pipeline


SCRIPT_NAME = "01_build_tract_table"


def main():
    """Main entry point for 01_build_tract_table."""
    run_id = get_run_id()
    logger = get_logger(SCRIPT_NAME, run_id)

    logger.info("=" * 60)
    logger.info(f"Starting {SCRIPT_NAME}")
    logger.info(f"Run ID: {run_id}")
    logger.info("=" * 60)

    try:
        params = load_params()
        outputs = run_pipeline(params, logger=logger)

        logger.info("=" * 60)
        logger.info(f"{SCRIPT_NAME} completed successfully")
        logger.info(f"   Output: {outputs['parquet']}")
        logger.info("=" * 60)

        return 0

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        logger.error("Download the raw inputs into data/raw/ (see configs/params.yml).")
        return 1

    except Exception as e:
        logger.exception(f"Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
