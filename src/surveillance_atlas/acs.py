"""
Census API client for tract-level ACS estimates.

Fetches the configured variables for the five NYC counties and returns
them in the long layout read by loaders.read_acs_long: one row per tract x
variable with GEOID, NAME, variable, estimate and moe.
"""

import logging
import os

import pandas as pd
import requests

from surveillance_atlas.logging_utils import log_step_start, log_step_end


CENSUS_API_BASE = "https://api.census.gov/data"
ACS_YEAR = 2022
ACS_DATASET = "acs/acs5"

NYC_COUNTY_FIPS = {
    "36005": "Bronx",
    "36047": "Brooklyn",
    "36061": "Manhattan",
    "36081": "Queens",
    "36085": "Staten Island",
}


def get_api_key(env_var: str = "CENSUS_API_KEY") -> str | None:
    """Census API key from the environment; the API also answers small keyless requests."""
    return os.environ.get(env_var) or None


def _county_frame(payload: list[list[str]], variables: dict[str, str]) -> pd.DataFrame:
    """Convert one Census API response (header row + data rows) to long format."""
    header, rows = payload[0], payload[1:]
    wide = pd.DataFrame(rows, columns=header)
    wide["GEOID"] = wide["state"] + wide["county"] + wide["tract"]

    frames = []
    for code, name in variables.items():
        frames.append(pd.DataFrame({
            "GEOID": wide["GEOID"],
            "NAME": wide["NAME"],
            "variable": name,
            "estimate": pd.to_numeric(wide[f"{code}E"], errors="coerce"),
            "moe": pd.to_numeric(wide[f"{code}M"], errors="coerce"),
        }))
    return pd.concat(frames, ignore_index=True)


def fetch_acs_long(
    variables: dict[str, str],
    year: int = ACS_YEAR,
    dataset: str = ACS_DATASET,
    counties: dict[str, str] | None = None,
    api_key: str | None = None,
    session: requests.Session | None = None,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Fetch ACS tract estimates for NYC in long format.

    Args:
        variables: Census variable code (without E/M suffix) -> friendly name.
        year: ACS release year.
        dataset: API dataset path, e.g. "acs/acs5".
        counties: 5-digit county FIPS -> borough label. Defaults to NYC.
        api_key: Optional Census API key.
        session: Optional requests session (reused across counties).
        logger: Optional logger.

    Raises:
        requests.HTTPError: If any county request fails.
    """
    counties = counties or NYC_COUNTY_FIPS
    http = session or requests.Session()
    url = f"{CENSUS_API_BASE}/{year}/{dataset}"

    fields = ["NAME"] + [f"{code}{suffix}" for code in variables for suffix in ("E", "M")]

    if logger:
        log_step_start(logger, "fetch_acs_long", year=year, dataset=dataset,
                       variables=len(variables), counties=len(counties))

    frames = []
    for fips, borough in counties.items():
        params = {
            "get": ",".join(fields),
            "for": "tract:*",
            "in": f"state:{fips[:2]} county:{fips[2:]}",
        }
        if api_key:
            params["key"] = api_key

        if logger:
            logger.info(f"Fetching ACS {year} tracts for {borough}...")
        response = http.get(url, params=params, timeout=60)
        response.raise_for_status()

        county = _county_frame(response.json(), variables)
        frames.append(county)
        if logger:
            logger.info(f"  Got {county['GEOID'].nunique()} tracts")

    result = pd.concat(frames, ignore_index=True)

    if logger:
        log_step_end(logger, "fetch_acs_long", rows=len(result),
                     tracts=int(result["GEOID"].nunique()))

    return result
