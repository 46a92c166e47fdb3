"""
Input hashing and metadata sidecars for reproducibility.

Every pipeline output gets a `<stem>_metadata.json` sidecar recording the
hashes of the inputs and config it was built from, the git commit, library
versions, run parameters and run_id.
"""

import hashlib
import json
import subprocess
import sys
from datetime import datetime, timezone
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any

from surveillance_atlas.io_utils import atomic_write_json
from surveillance_atlas.paths import get_project_root

TRACKED_LIBRARIES = [
    "pandas",
    "numpy",
    "geopandas",
    "shapely",
    "pyproj",
    "pyarrow",
    "matplotlib",
    "requests",
    "PyYAML",
]


def hash_file(file_path: Path | str, algorithm: str = "sha256") -> str:
    """
    Compute the hex digest of a file, reading in chunks.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Cannot hash non-existent file: {file_path}")

    hasher = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def hash_dict(data: dict, algorithm: str = "sha256") -> str:
    """Hash a dict via its sorted-key JSON form, so key order doesn't matter."""
    content = json.dumps(data, sort_keys=True, default=str)
    return hashlib.new(algorithm, content.encode("utf-8")).hexdigest()


def get_git_commit() -> str | None:
    """Short commit hash, or None outside a git checkout."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short=8", "HEAD"],
            capture_output=True,
            text=True,
            cwd=get_project_root(),
            timeout=5
        )
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return None
    return result.stdout.strip() if result.returncode == 0 else None


def get_library_versions() -> dict[str, str]:
    versions = {"python": sys.version.split()[0]}
    for lib in TRACKED_LIBRARIES:
        try:
            versions[lib] = importlib_metadata.version(lib)
        except importlib_metadata.PackageNotFoundError:
            versions[lib] = "not installed"
    return versions


def create_metadata_sidecar(
    output_path: Path | str,
    run_id: str,
    input_files: list[Path | str] | None = None,
    parameters: dict[str, Any] | None = None,
    row_count: int | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the sidecar dict for an output file. Missing inputs are skipped."""
    output_path = Path(output_path)

    metadata = {
        "output_file": output_path.name,
        "run_id": run_id,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "git_commit": get_git_commit(),
        "library_versions": get_library_versions(),
    }

    if input_files:
        metadata["input_file_hashes"] = {
            Path(f).name: hash_file(f) for f in input_files if Path(f).exists()
        }
    if parameters:
        metadata["parameters"] = parameters
        metadata["parameters_hash"] = hash_dict(parameters)
    if row_count is not None:
        metadata["row_count"] = row_count
    if output_path.exists():
        metadata["output_hash"] = hash_file(output_path)
    if extra:
        metadata["extra"] = extra

    return metadata


def write_metadata_sidecar(
    output_path: Path | str,
    run_id: str,
    input_files: list[Path | str] | None = None,
    parameters: dict[str, Any] | None = None,
    row_count: int | None = None,
    extra: dict[str, Any] | None = None,
) -> Path:
    """
    Write `<stem>_metadata.json` next to `output_path`.

    Returns:
        Path to the written sidecar.
    """
    output_path = Path(output_path)
    metadata = create_metadata_sidecar(
        output_path, run_id,
        input_files=input_files,
        parameters=parameters,
        row_count=row_count,
        extra=extra,
    )

    sidecar_path = output_path.parent / f"{output_path.stem}_metadata.json"

    atomic_write_json(sidecar_path, metadata)

    return sidecar_path
