"""
Per-capita stop and surveillance rates, surveillance rank and top-K class.

Rates are only computed where the population is large enough to give a
stable ratio. A tract at or below the threshold gets null rates and no
class. The threshold is exclusive, so total_pop == 250 is gated out.
"""

import logging

import numpy as np
import pandas as pd

from surveillance_atlas.logging_utils import log_step_start, log_step_end


POPULATION_THRESHOLD = 250
RATE_PER = 1000
TOP_K = 50

OTHER_CLASS = "other"


def top_class_label(top_k: int = TOP_K) -> str:
    return f"top {top_k}"


def population_gate(total_pop: pd.Series, threshold: float = POPULATION_THRESHOLD) -> pd.Series:
    """True where total_pop is strictly above `threshold` (null counts as False)."""
    return total_pop.gt(threshold).fillna(False).astype(bool)


def per_capita_rate(
    count: pd.Series,
    total_pop: pd.Series,
    threshold: float = POPULATION_THRESHOLD,
    per: float = RATE_PER,
) -> pd.Series:
    """`per * count / total_pop` where the population gate passes, NaN elsewhere."""
    gate = population_gate(total_pop, threshold)
    count = pd.to_numeric(count, errors="coerce").astype(float)
    total_pop = pd.to_numeric(total_pop, errors="coerce").astype(float)
    rate = per * count / total_pop.where(gate)
    return rate.where(gate, np.nan)


def surveillance_rank(surv_rate: pd.Series) -> pd.Series:
    """
    0-based position by descending surveillance rate.

    Ties share the lowest position. Null rates are ranked after every
    non-null rate.
    """
    rank = surv_rate.rank(ascending=False, method="min", na_option="bottom") - 1
    return rank.astype("int64")


def classify_surveillance(
    surv_rank: pd.Series,
    surv_rate: pd.Series,
    total_pop: pd.Series,
    threshold: float = POPULATION_THRESHOLD,
    top_k: int = TOP_K,
) -> pd.Series:
    """
    "top <K>" for gated-in tracts ranked below K, "other" for the remaining
    gated-in tracts, null for gated-out tracts or tracts with no rate.
    """
    eligible = population_gate(total_pop, threshold) & surv_rate.notna()
    labels = pd.Series(None, index=surv_rank.index, dtype=object)
    labels[eligible & (surv_rank < top_k)] = top_class_label(top_k)
    labels[eligible & (surv_rank >= top_k)] = OTHER_CLASS
    return labels


def derive_rates(
    table: pd.DataFrame,
    threshold: float = POPULATION_THRESHOLD,
    per: float = RATE_PER,
    top_k: int = TOP_K,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """
    Add stop_rate, surv_rate, surv_rank and surv_class to the joined tract table.

    The rank is computed over all tracts. Tracts gated out by population have
    null rates and so rank last.
    """
    if logger:
        log_step_start(logger, "derive_rates", threshold=threshold, per=per, top_k=top_k)

    table = table.copy()
    total_pop = table["total_pop"]

    table["stop_rate"] = per_capita_rate(table["stop_count"], total_pop, threshold, per)
    table["surv_rate"] = per_capita_rate(table["eff_cameras_200m"], total_pop, threshold, per)
    table["surv_rank"] = surveillance_rank(table["surv_rate"])
    table["surv_class"] = classify_surveillance(
        table["surv_rank"], table["surv_rate"], total_pop, threshold, top_k
    )

    if logger:
        log_step_end(logger, "derive_rates",
                     gated_out=int((~population_gate(total_pop, threshold)).sum()),
                     classes=table["surv_class"].value_counts().to_dict())

    return table
