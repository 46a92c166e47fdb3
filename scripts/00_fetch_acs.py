#!/usr/bin/env python3
"""
00_fetch_acs.py

Download tract-level ACS estimates for the five NYC counties and save
them in long format for step 01.

Pipeline Step: 00

Inputs:
    - Census API (acs/acs5), key from $CENSUS_API_KEY
    - configs/params.yml (acs.year, acs.variables, acs.counties)

Outputs:
    - data/raw/acs/nyc_tract_acs.csv (or inputs.acs_long from params.yml)
    - data/raw/acs/nyc_tract_acs_metadata.json

QA Checks:
    - Every configured variable present for every tract
    - No repeated (GEOID, variable) pairs

Failure Modes:
    - HTTP error from the Census API
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import requests

from surveillance_atlas.acs import fetch_acs_long, get_api_key
from surveillance_atlas.hashing import write_metadata_sidecar
from surveillance_atlas.io_utils import atomic_write_csv, read_yaml
from surveillance_atlas.logging_utils import (
    get_logger, get_run_id, log_output_written, log_qa_check
)
from surveillance_atlas.paths import paths, resolve_path


SCRIPT_NAME = "00_fetch_acs"


def main():
    """Main entry point for 00_fetch_acs."""
    run_id = get_run_id()
    logger = get_logger(SCRIPT_NAME, run_id)

    logger.info("=" * 60)
    logger.info(f"Starting {SCRIPT_NAME}")
    logger.info(f"Run ID: {run_id}")
    logger.info("=" * 60)

    try:
        params = read_yaml(paths.params_yml)
        acs_cfg = params["acs"]
        output_path = resolve_path(params["inputs"]["acs_long"])

        api_key = get_api_key(acs_cfg.get("api_key_env", "CENSUS_API_KEY"))
        if api_key is None:
            logger.warning("No Census API key set; requests may be rate limited")

        acs_long = fetch_acs_long(
            acs_cfg["variables"],
            year=acs_cfg["year"],
            dataset=acs_cfg["dataset"],
            counties={str(k): v for k, v in acs_cfg["counties"].items()},
            api_key=api_key,
            logger=logger,
        )

        per_tract = acs_long.groupby("GEOID")["variable"].nunique()
        complete = bool((per_tract == len(acs_cfg["variables"])).all())
        log_qa_check(logger, "variables_complete", complete,
                     f"{int((per_tract < len(acs_cfg['variables'])).sum())} tracts missing variables")

        repeated = int(acs_long.duplicated(subset=["GEOID", "variable"]).sum())
        log_qa_check(logger, "no_repeated_pairs", repeated == 0, f"{repeated} repeated pairs")
        if repeated:
            raise ValueError(f"Census API returned {repeated} repeated (GEOID, variable) rows")

        atomic_write_csv(output_path, acs_long)
        log_output_written(logger, output_path, len(acs_long))
        write_metadata_sidecar(
            output_path, run_id,
            parameters={"year": acs_cfg["year"], "dataset": acs_cfg["dataset"],
                        "variables": acs_cfg["variables"]},
            row_count=len(acs_long),
        )

        logger.info("=" * 60)
        logger.info(f"{SCRIPT_NAME} completed successfully")
        logger.info(f"   Tracts: {acs_long['GEOID'].nunique():,}")
        logger.info(f"   Output: {output_path}")
        logger.info("=" * 60)

        return 0

    except requests.HTTPError as e:
        logger.error(f"Census API request failed: {e}")
        return 1

    except Exception as e:
        logger.exception(f"Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
