"""
Schema validation for pipeline inputs and the final tract table.

Loaders validate each source as it is read and the pipeline validates the
joined table before writing. Schema drift is a hard failure.
"""

from dataclasses import dataclass

import pandas as pd
from pandas.api import types as ptypes


class SchemaValidationError(Exception):
    """Raised when data does not conform to expected schema."""
    pass


@dataclass
class ColumnSpec:
    """Specification for a single column."""
    name: str
    dtype: str  # "object", "number", "int64", "float64" or "geometry"
    required: bool = True
    nullable: bool = False
    description: str = ""


@dataclass
class TableSchema:
    """Schema definition for a table."""
    name: str
    description: str
    columns: list[ColumnSpec]

    def required_columns(self) -> list[str]:
        return [c.name for c in self.columns if c.required]

    def all_columns(self) -> list[str]:
        return [c.name for c in self.columns]


# =============================================================================
# Schema definitions
# =============================================================================

SCHEMA_ACS_LONG = TableSchema(
    name="acs_long",
    description="ACS estimates, one row per tract x variable",
    columns=[
        ColumnSpec("tract_id", "object", description="11-digit tract GEOID"),
        ColumnSpec("tract_name", "object", nullable=True,
                   description="Census NAME, e.g. 'Census Tract 1; Kings County; New York'"),
        ColumnSpec("variable", "object", description="Friendly variable name"),
        ColumnSpec("estimate", "number", nullable=True, description="ACS estimate"),
        ColumnSpec("moe", "number", required=False, nullable=True,
                   description="Margin of error (ignored downstream)"),
    ]
)

SCHEMA_TRACT_DEMOGRAPHICS = TableSchema(
    name="tract_demographics",
    description="Reshaped ACS demographics, one row per tract",
    columns=[
        ColumnSpec("tract_id", "object"),
        ColumnSpec("tract_name", "object", nullable=True),
        ColumnSpec("total_pop", "number", nullable=True),
        ColumnSpec("white", "number", nullable=True),
        ColumnSpec("black", "number", nullable=True),
        ColumnSpec("latino", "number", nullable=True),
        ColumnSpec("asian", "number", nullable=True),
        ColumnSpec("other_race", "number", nullable=True,
                   description="total_pop minus the four sourced race counts"),
        ColumnSpec("male", "number", required=False, nullable=True),
        ColumnSpec("female", "number", required=False, nullable=True),
        ColumnSpec("median_income", "number", required=False, nullable=True,
                   description="Suppressed by the Census for low-population tracts"),
        ColumnSpec("borough", "object"),
        ColumnSpec("plurality_race", "object", nullable=True),
    ]
)

SCHEMA_STOP_INCIDENTS = TableSchema(
    name="stop_incidents",
    description="NYPD stop records, one row per stop",
    columns=[
        ColumnSpec("tract_id", "object", required=False, nullable=True),
        ColumnSpec("race_raw", "object", nullable=True),
        ColumnSpec("year", "number", nullable=True,
                   description="Null when blank or unparseable in the source"),
        ColumnSpec("x", "number", required=False, nullable=True,
                   description="NY State Plane (EPSG:2263) easting, feet"),
        ColumnSpec("y", "number", required=False, nullable=True,
                   description="NY State Plane (EPSG:2263) northing, feet"),
    ]
)

SCHEMA_CAMERAS = TableSchema(
    name="cameras",
    description="Surveillance camera counts, one row per tract",
    columns=[
        ColumnSpec("tract_id", "object"),
        ColumnSpec("cameras", "number", nullable=True),
        ColumnSpec("cameras_200m", "number", nullable=True),
        ColumnSpec("eff_cameras", "number", nullable=True),
        ColumnSpec("eff_cameras_200m", "number", nullable=True),
    ]
)

SCHEMA_TRACT_GEOMETRY = TableSchema(
    name="tract_geometry",
    description="Census tract boundaries",
    columns=[
        ColumnSpec("tract_id", "object"),
        ColumnSpec("tract_name", "object", nullable=True),
        ColumnSpec("geometry", "geometry"),
    ]
)

SCHEMA_TRACT_TABLE = TableSchema(
    name="tract_table",
    description="Joined tract table with demographics, cameras, stops and rates",
    columns=[
        ColumnSpec("tract_id", "object"),
        ColumnSpec("geometry", "geometry"),
        ColumnSpec("total_pop", "number", nullable=True),
        ColumnSpec("borough", "object", nullable=True),
        ColumnSpec("plurality_race", "object", nullable=True),
        ColumnSpec("eff_cameras_200m", "number", nullable=True),
        ColumnSpec("stop_count", "number", nullable=True),
        ColumnSpec("stop_count_black", "number", nullable=True),
        ColumnSpec("stop_data_status", "object",
                   description="'recorded' or 'no_recorded_stops'"),
        ColumnSpec("stop_rate", "number", nullable=True,
                   description="Stops per 1,000 residents"),
        ColumnSpec("surv_rate", "number", nullable=True,
                   description="Effective cameras within 200m per 1,000 residents"),
        ColumnSpec("surv_rank", "number", description="0-based rank, nulls last"),
        ColumnSpec("surv_class", "object", nullable=True),
    ]
)

SCHEMA_REGISTRY: dict[str, TableSchema] = {
    s.name: s for s in (
        SCHEMA_ACS_LONG,
        SCHEMA_TRACT_DEMOGRAPHICS,
        SCHEMA_STOP_INCIDENTS,
        SCHEMA_CAMERAS,
        SCHEMA_TRACT_GEOMETRY,
        SCHEMA_TRACT_TABLE,
    )
}


# =============================================================================
# Validation functions
# =============================================================================

def _dtype_compatible(series: pd.Series, expected: str) -> bool:
    if expected == "object":
        return ptypes.is_object_dtype(series) or ptypes.is_string_dtype(series) \
            or isinstance(series.dtype, pd.CategoricalDtype)
    if expected == "number":
        return ptypes.is_numeric_dtype(series) and not ptypes.is_bool_dtype(series)
    if expected == "int64":
        return ptypes.is_integer_dtype(series)
    if expected == "float64":
        return ptypes.is_float_dtype(series)
    return str(series.dtype) == expected


def validate_schema(
    df: pd.DataFrame,
    schema: TableSchema | str,
    strict: bool = False,
) -> list[str]:
    """
    Validate a DataFrame against a schema.

    Args:
        df: DataFrame to validate.
        schema: TableSchema object or schema name from the registry.
        strict: If True, fail on extra columns not in the schema.

    Returns:
        Empty list when valid.

    Raises:
        SchemaValidationError: If validation fails.
    """
    if isinstance(schema, str):
        schema = get_schema(schema)

    errors = []

    for col in schema.columns:
        if col.required and col.name not in df.columns:
            errors.append(f"Missing required column: {col.name}")

    if strict:
        extra_cols = set(df.columns) - set(schema.all_columns())
        if extra_cols:
            errors.append(f"Unexpected columns: {sorted(extra_cols)}")

    for col in schema.columns:
        if col.name not in df.columns:
            continue

        series = df[col.name]

        if not col.nullable and series.isna().any():
            errors.append(
                f"Column '{col.name}' has {int(series.isna().sum())} null values but is not nullable"
            )

        # All-null columns carry no usable dtype
        if col.dtype != "geometry" and series.notna().any():
            if not _dtype_compatible(series, col.dtype):
                errors.append(
                    f"Column '{col.name}' has dtype '{series.dtype}', expected '{col.dtype}'"
                )

    if errors:
        error_msg = f"Schema validation failed for '{schema.name}':\n" + "\n".join(f"  - {e}" for e in errors)
        raise SchemaValidationError(error_msg)

    return errors


def validate_geodataframe(gdf: pd.DataFrame, schema: TableSchema | str) -> list[str]:
    """
    Validate a GeoDataFrame: type, CRS presence, non-empty geometries, then schema.

    Raises:
        SchemaValidationError: If validation fails.
    """
    import geopandas as gpd

    if not isinstance(gdf, gpd.GeoDataFrame):
        raise SchemaValidationError("Expected GeoDataFrame but got DataFrame")

    errors = []
    if gdf.crs is None:
        errors.append("GeoDataFrame has no CRS defined")
    empty = gdf.geometry.is_empty | gdf.geometry.isna()
    if empty.any():
        errors.append(f"GeoDataFrame has {int(empty.sum())} empty or null geometries")

    if errors:
        raise SchemaValidationError(
            "GeoDataFrame validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    return validate_schema(gdf, schema)


def get_schema(name: str) -> TableSchema:
    """
    Get a schema by name from the registry.

    Raises:
        ValueError: If schema not found.
    """
    if name not in SCHEMA_REGISTRY:
        raise ValueError(f"Unknown schema: {name}. Available: {list(SCHEMA_REGISTRY.keys())}")
    return SCHEMA_REGISTRY[name]
