"""
Atomic writes and I/O helper utilities.

Outputs are written to a temp file in the target directory and then
renamed into place, so a failed run never leaves a half-written table or
figure behind. Leftover .tmp files mean a write failed.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    import geopandas as gpd
    import pandas as pd
    from matplotlib.figure import Figure

from surveillance_atlas.paths import ensure_dir


def atomic_write(
    target_path: Path | str,
    write_func: Callable,
    *args,
    **kwargs
) -> Path:
    """
    Write to a file atomically using a temporary file and rename.

    Args:
        target_path: Final destination path.
        write_func: Called as write_func(temp_path, *args, **kwargs).

    Returns:
        The target path.

    Raises:
        Exception: Re-raises any exception from write_func after cleanup.
    """
    target_path = Path(target_path)
    ensure_dir(target_path.parent)

    temp_fd, temp_path = tempfile.mkstemp(
        suffix=f"{target_path.suffix}.tmp",
        prefix=f"{target_path.stem}_",
        dir=target_path.parent
    )
    temp_path = Path(temp_path)

    try:
        os.close(temp_fd)
        write_func(temp_path, *args, **kwargs)
        temp_path.replace(target_path)
        return target_path

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def atomic_write_json(target_path: Path | str, data: Any, indent: int = 2) -> Path:
    """Write JSON data to a file atomically."""
    def write_json(temp_path: Path, data: Any, indent: int):
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, default=str)

    return atomic_write(target_path, write_json, data, indent)


def atomic_write_csv(target_path: Path | str, df: "pd.DataFrame") -> Path:
    """Write a DataFrame to CSV atomically (index dropped)."""
    def write_csv(temp_path: Path, df: "pd.DataFrame"):
        df.to_csv(temp_path, index=False)

    return atomic_write(target_path, write_csv, df)


def atomic_write_geoparquet(target_path: Path | str, gdf: "gpd.GeoDataFrame") -> Path:
    """Write a GeoDataFrame to GeoParquet atomically."""
    def write_geoparquet(temp_path: Path, gdf):
        gdf.to_parquet(temp_path)

    return atomic_write(target_path, write_geoparquet, gdf)


def atomic_write_figure(
    target_path: Path | str,
    fig: "Figure",
    dpi: int = 150,
) -> Path:
    """Save a matplotlib figure atomically as PNG."""
    def write_figure(temp_path: Path, fig, dpi: int):
        fig.savefig(temp_path, format="png", dpi=dpi, bbox_inches="tight", facecolor="white")

    return atomic_write(target_path, write_figure, fig, dpi)


# =============================================================================
# Read utilities
# =============================================================================

def read_geoparquet(file_path: Path | str) -> "gpd.GeoDataFrame":
    """
    Read a GeoParquet file into a GeoDataFrame.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    import geopandas as gpd

    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"GeoParquet file not found: {file_path}")
    return gpd.read_parquet(file_path)


def read_yaml(file_path: Path | str) -> Any:
    """
    Read a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"YAML file not found: {file_path}")
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)
