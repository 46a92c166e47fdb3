"""
Canonical root detection and path resolution.

Every script and module resolves files through surveillance_atlas.paths;
nothing in the pipeline builds paths with relative ../ segments.

The .project-root file marks the repository root.
"""

from pathlib import Path
from typing import Union

# Cached project root
_PROJECT_ROOT: Path | None = None


def get_project_root() -> Path:
    """
    Find and return the project root directory.

    Searches upward from this file's location for the .project-root marker.
    The result is cached.

    Returns:
        Path to the project root directory.

    Raises:
        FileNotFoundError: If .project-root marker is not found.
    """
    global _PROJECT_ROOT

    if _PROJECT_ROOT is not None:
        return _PROJECT_ROOT

    current = Path(__file__).resolve().parent

    for _ in range(10):
        if (current / ".project-root").exists():
            _PROJECT_ROOT = current
            return _PROJECT_ROOT

        parent = current.parent
        if parent == current:
            break
        current = parent

    raise FileNotFoundError(
        "Could not find .project-root marker. "
        "Run from within the NYC Surveillance Atlas repository."
    )


def get_path(*parts: str) -> Path:
    """Join `parts` onto the project root."""
    return get_project_root() / Path(*parts)


def resolve_path(path: Union[str, Path]) -> Path:
    """Return `path` unchanged if absolute, otherwise relative to the project root."""
    path = Path(path)
    if path.is_absolute():
        return path
    return get_project_root() / path


class Paths:
    """
    Canonical path constants for the project.

    All paths are resolved relative to the project root.
    """

    @property
    def params_yml(self) -> Path:
        return get_path("configs", "params.yml")

    # Input locations live in params.yml (`inputs:`), resolved with resolve_path

    @property
    def tract_table(self) -> Path:
        return get_path("data", "processed", "tract_table.parquet")

    @property
    def tract_table_csv(self) -> Path:
        return get_path("data", "processed", "tract_table.csv")

    @property
    def logs(self) -> Path:
        return get_path("logs")

    @property
    def reports_figures(self) -> Path:
        return get_path("reports", "figures")


# Singleton instance for convenience
paths = Paths()


def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p
