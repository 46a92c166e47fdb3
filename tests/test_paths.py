"""
Tests for surveillance_atlas.paths.

Tests cover:
- Project root detection via .project-root marker
- Path resolution relative to project root
- Paths singleton canonical path properties
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from surveillance_atlas.io_utils import read_yaml
from surveillance_atlas.paths import ensure_dir, get_path, get_project_root, paths, resolve_path


class TestGetProjectRoot:
    """Tests for get_project_root()."""

    def test_finds_marker(self):
        root = get_project_root()
        assert (root / ".project-root").exists()
        assert root.is_absolute()

    def test_result_is_cached(self):
        assert get_project_root() is get_project_root()

    def test_root_holds_configs(self):
        assert (get_project_root() / "configs" / "params.yml").exists()


class TestPathResolution:
    """Tests for get_path() and resolve_path()."""

    def test_get_path_joins_parts(self):
        assert get_path("data", "raw", "stops") == get_project_root() / "data" / "raw" / "stops"

    def test_resolve_relative(self):
        assert resolve_path("data/raw/acs/x.csv") == get_project_root() / "data" / "raw" / "acs" / "x.csv"

    def test_resolve_absolute_unchanged(self, tmp_path):
        assert resolve_path(tmp_path / "x.csv") == tmp_path / "x.csv"


class TestPathsSingleton:
    """Tests for the Paths properties."""

    def test_params_yml(self):
        assert paths.params_yml == get_project_root() / "configs" / "params.yml"

    def test_configured_inputs_resolve_under_root(self):
        params = read_yaml(paths.params_yml)
        for rel in params["inputs"].values():
            assert resolve_path(rel).is_relative_to(get_project_root() / "data" / "raw")

    def test_outputs(self):
        processed = get_project_root() / "data" / "processed"
        assert paths.tract_table == processed / "tract_table.parquet"
        assert paths.tract_table_csv == processed / "tract_table.csv"
        assert paths.reports_figures == get_project_root() / "reports" / "figures"
        assert paths.logs == get_project_root() / "logs"


class TestEnsureDir:

    def test_creates_nested(self, tmp_path):
        target = tmp_path / "a" / "b" / "c"
        assert ensure_dir(target) == target
        assert target.is_dir()

    def test_idempotent(self, tmp_path):
        ensure_dir(tmp_path)
        assert ensure_dir(tmp_path).is_dir()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
