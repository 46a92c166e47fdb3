"""
Tests for surveillance_atlas.plots.

Figures are rendered with the Agg backend into tmp_path; the tests check
that each file is written and that the shares behind the comparison chart
are right.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
import pandas as pd

from surveillance_atlas.pipeline import build_tract_table
from surveillance_atlas.plots import build_figures, plot_choropleth, race_shares
from surveillance_atlas.stops import normalize_stop_races


@pytest.fixture
def tract_table(sample_acs_long, sample_stops, sample_cameras, sample_tracts, sample_params):
    return build_tract_table(sample_acs_long, sample_stops, sample_cameras,
                             sample_tracts, sample_params)


@pytest.fixture
def stops(sample_stops):
    return normalize_stop_races(sample_stops)


class TestRaceShares:

    def test_shares_sum_to_one(self, tract_table, stops):
        shares = race_shares(tract_table, stops)
        assert shares["population_share"].sum() == pytest.approx(1.0)
        assert shares["stop_share"].sum() == pytest.approx(1.0)

    def test_stop_share_values(self, tract_table, stops):
        shares = race_shares(tract_table, stops)
        # BLACK, BLACK HISPANIC -> Latino, WHITE, BLACK, (null) -> Other
        assert shares.loc["Black", "stop_share"] == pytest.approx(2 / 5)
        assert shares.loc["Latino", "stop_share"] == pytest.approx(1 / 5)
        assert shares.loc["Asian", "stop_share"] == 0

    def test_population_share_values(self, tract_table, stops):
        shares = race_shares(tract_table, stops)
        assert shares.loc["Black", "population_share"] == pytest.approx(900 / 3000)


class TestBuildFigures:

    def test_writes_figure_set(self, tract_table, stops, tmp_path):
        figures = build_figures(tract_table, stops, tmp_path, top_k=1, dpi=50)

        for name in ["stops_by_race", "population_vs_stops", "surveillance_by_plurality",
                     "map_plurality_race", "map_borough", "map_surv_class",
                     "map_stop_rate", "map_surv_rate", "map_median_income"]:
            assert name in figures
            assert figures[name].exists()
            assert figures[name].stat().st_size > 0

    def test_all_null_column_skipped(self, tract_table, stops, tmp_path):
        table = tract_table.assign(median_income=float("nan"))
        figures = build_figures(table, stops, tmp_path, dpi=50)
        assert "map_median_income" not in figures
        assert not (tmp_path / "map_median_income.png").exists()

    def test_no_temp_files_left(self, tract_table, stops, tmp_path):
        build_figures(tract_table, stops, tmp_path, dpi=50)
        assert not list(tmp_path.glob("*.tmp"))


class TestChoropleth:

    def test_missing_values_drawn(self, tract_table, tmp_path):
        # tract C has no demographics, so its stop rate is missing
        assert tract_table["stop_rate"].isna().any()
        path = plot_choropleth(tract_table, "stop_rate", tmp_path / "rate.png", "Stops", dpi=50)
        assert path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
