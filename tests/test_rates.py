"""
Tests for surveillance_atlas.rates.

Tests cover:
- Exclusive population gate at 250
- Rate arithmetic where the gate passes
- Rank ordering with nulls last
- top-K / other / null classification
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
import pandas as pd
import numpy as np

from surveillance_atlas.rates import (
    classify_surveillance,
    derive_rates,
    per_capita_rate,
    population_gate,
    surveillance_rank,
    top_class_label,
)


@pytest.fixture
def rate_table():
    """Five tracts spanning the population threshold."""
    return pd.DataFrame({
        "tract_id": ["t1", "t2", "t3", "t4", "t5"],
        "total_pop": [1000.0, 4000.0, 250.0, 200.0, np.nan],
        "stop_count": [30.0, np.nan, 10.0, 50.0, 5.0],
        "eff_cameras_200m": [5.0, 40.0, 3.0, 20.0, 1.0],
    })


class TestPopulationGate:
    """Tests for population_gate()."""

    def test_exclusive_threshold(self):
        gate = population_gate(pd.Series([249.0, 250.0, 251.0]))
        assert gate.tolist() == [False, False, True]

    def test_null_population_gated_out(self):
        assert population_gate(pd.Series([np.nan])).tolist() == [False]


class TestPerCapitaRate:
    """Tests for per_capita_rate()."""

    def test_rate_above_threshold(self, rate_table):
        rate = per_capita_rate(rate_table["stop_count"], rate_table["total_pop"])
        assert rate[0] == pytest.approx(1000 * 30 / 1000)

    def test_rate_formula_holds_for_all_gated_in(self, rate_table):
        rate = per_capita_rate(rate_table["stop_count"], rate_table["total_pop"])
        gated_in = rate_table["total_pop"] > 250
        expected = 1000 * rate_table["stop_count"] / rate_table["total_pop"]
        pd.testing.assert_series_equal(rate[gated_in], expected[gated_in], check_names=False)

    def test_null_at_or_below_threshold(self, rate_table):
        rate = per_capita_rate(rate_table["stop_count"], rate_table["total_pop"])
        assert pd.isna(rate[2])  # exactly 250
        assert pd.isna(rate[3])  # 200, despite 50 stops
        assert pd.isna(rate[4])  # unknown population

    def test_null_count_gives_null_rate(self, rate_table):
        rate = per_capita_rate(rate_table["stop_count"], rate_table["total_pop"])
        assert pd.isna(rate[1])

    def test_custom_threshold_and_scale(self):
        rate = per_capita_rate(pd.Series([2.0]), pd.Series([50.0]), threshold=10, per=100)
        assert rate[0] == pytest.approx(4.0)


class TestSurveillanceRank:
    """Tests for surveillance_rank()."""

    def test_descending_zero_based(self):
        rank = surveillance_rank(pd.Series([1.0, 3.0, 2.0]))
        assert rank.tolist() == [2, 0, 1]

    def test_nulls_rank_last(self):
        rank = surveillance_rank(pd.Series([np.nan, 1.0, np.nan, 9.0]))
        assert rank[3] == 0
        assert rank[1] == 1
        assert rank[0] > rank[1] and rank[2] > rank[1]

    def test_ties_share_lowest_position(self):
        rank = surveillance_rank(pd.Series([5.0, np.nan, 10.0, 5.0]))
        assert rank.tolist()[0] == 1
        assert rank.tolist()[2] == 0
        assert rank.tolist()[3] == 1
        assert rank.tolist()[1] == 3


class TestClassifySurveillance:
    """Tests for classify_surveillance()."""

    def test_top_k_other_and_null(self):
        rate = pd.Series([30.0, 20.0, 10.0, np.nan])
        pop = pd.Series([1000.0] * 4)
        labels = classify_surveillance(surveillance_rank(rate), rate, pop, top_k=2)
        assert labels.isna().tolist() == [False, False, False, True]
        assert labels[:3].tolist() == ["top 2", "top 2", "other"]

    def test_gated_out_unclassified_even_if_ranked_high(self):
        rate = pd.Series([30.0, 20.0])
        pop = pd.Series([200.0, 1000.0])
        labels = classify_surveillance(surveillance_rank(rate), rate, pop, top_k=50)
        assert pd.isna(labels[0])
        assert labels[1] == top_class_label(50)

    def test_nulls_are_missing_not_text(self):
        rate = pd.Series([np.nan, 5.0])
        pop = pd.Series([1000.0, 100.0])
        labels = classify_surveillance(surveillance_rank(rate), rate, pop)
        assert labels.isna().all()
        assert labels.value_counts().empty

    def test_label(self):
        assert top_class_label(50) == "top 50"


class TestDeriveRates:
    """Tests for derive_rates()."""

    def test_columns_added(self, rate_table):
        table = derive_rates(rate_table)
        for col in ["stop_rate", "surv_rate", "surv_rank", "surv_class"]:
            assert col in table.columns

    def test_small_tract_null_rate_and_class(self, rate_table):
        row = derive_rates(rate_table).set_index("tract_id").loc["t4"]
        assert pd.isna(row["stop_rate"])
        assert pd.isna(row["surv_rate"])
        assert pd.isna(row["surv_class"])

    def test_every_tract_ranked(self, rate_table):
        table = derive_rates(rate_table)
        assert table["surv_rank"].notna().all()

    def test_gated_tracts_rank_after_rated(self, rate_table):
        table = derive_rates(rate_table).set_index("tract_id")
        rated = table.loc[table["surv_rate"].notna(), "surv_rank"]
        unrated = table.loc[table["surv_rate"].isna(), "surv_rank"]
        assert rated.max() < unrated.min()

    def test_surv_rate_values(self, rate_table):
        table = derive_rates(rate_table).set_index("tract_id")
        assert table.loc["t1", "surv_rate"] == pytest.approx(5.0)
        assert table.loc["t2", "surv_rate"] == pytest.approx(10.0)
        assert table.loc["t2", "surv_rank"] == 0
        assert table.loc["t2", "surv_class"] == "top 50"

    def test_does_not_mutate_input(self, rate_table):
        derive_rates(rate_table)
        assert "stop_rate" not in rate_table.columns


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
