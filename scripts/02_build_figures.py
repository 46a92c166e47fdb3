#!/usr/bin/env python3
"""
02_build_figures.py

Render the workshop bar charts and choropleth maps.

Pipeline Step: 02

Inputs:
    - data/processed/tract_table.parquet (from step 01)
    - data/raw/stops/sqf.csv
    - configs/params.yml (figures)

Outputs:
    - reports/figures/stops_by_race.png
    - reports/figures/population_vs_stops.png
    - reports/figures/surveillance_by_plurality.png
    - reports/figures/map_*.png
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from surveillance_atlas.logging_utils import get_logger, get_run_id
from surveillance_atlas.pipeline import load_params, run_figures


SCRIPT_NAME = "02_build_figures"


def main():
    """Main entry point for 02_build_figures."""
    run_id = get_run_id()
    logger = get_logger(SCRIPT_NAME, run_id)

    logger.info("=" * 60)
    logger.info(f"Starting {SCRIPT_NAME}")
    logger.info(f"Run ID: {run_id}")
    logger.info("=" * 60)

    try:
        figures = run_figures(load_params(), logger=logger)

        logger.info("=" * 60)
        logger.info(f"{SCRIPT_NAME} completed successfully")
        logger.info(f"   Figures: {len(figures)}")
        logger.info("=" * 60)

        return 0

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        logger.error("Run 01_build_tract_table.py first.")
        return 1

    except Exception as e:
        logger.exception(f"Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
