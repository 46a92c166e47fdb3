"""
NYC Surveillance Atlas

Joins ACS tract demographics, NYPD stop-and-frisk records and surveillance
camera counts by census tract, and maps per-capita stop and surveillance
rates to show racial disparities in policing across NYC.

Core modules:
    - paths: Canonical root and path resolution
    - logging_utils: JSONL structured logging
    - io_utils: Atomic writes and config loading
    - schemas: Schema validation for inputs and the tract table
    - qa: Quality assurance checks
    - hashing: Metadata sidecars for reproducibility
    - acs: Census API client
    - loaders: Input readers
    - demographics: ACS reshaping and derived race/borough fields
    - stops: Stop race normalization and per-tract counts
    - joins: Tract-keyed joins and point-in-tract placement
    - rates: Per-capita rates, surveillance rank and class
    - plots: Bar charts and choropleths
    - pipeline: End-to-end orchestration
"""

__version__ = "0.1.0"
__author__ = "NYC Surveillance Atlas Team"
