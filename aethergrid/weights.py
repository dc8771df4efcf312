from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from aethergrid.config import BASELINE_WEIGHTS, DEFAULT_TUNING, WEIGHT_KEYS, Tuning, baseline_weights
from aethergrid.regime import transition_for_month

# hit-profile key -> weight it drives
PROFILE_TO_WEIGHT = {
    "hot": "frequency",
    "overdue": "dormancy",
    "hot_zone": "zone",
    "momentum": "momentum",
    "cluster": "cluster_strength",
    "seasonal": "seasonal",
}


def weight_total(weights: Dict[str, float]) -> float:
    return sum(weights[k] for k in WEIGHT_KEYS)


def recalibrate_weights(success_analysis: Optional[Dict[str, Any]], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, float]:
    """
    Turn a realized hit profile into a new weight vector.

    Companion and stability keep their baseline share; the rest of the pool is split across
    the other six factors in proportion to how often winners matched each of them.
    Below the minimum sample the baseline weights come back unchanged.
    """
    if not success_analysis or success_analysis["total_analyzed_hits"] < tuning.min_sample:
        return baseline_weights()
    profile = success_analysis["hit_profile"]
    pool = 1.0 - BASELINE_WEIGHTS["companion"] - BASELINE_WEIGHTS["stability"]
    denominator = sum(profile[k] for k in PROFILE_TO_WEIGHT) + tuning.profile_epsilon

    weights = {weight: profile[key] / denominator * pool for key, weight in PROFILE_TO_WEIGHT.items()}
    weights["companion"] = BASELINE_WEIGHTS["companion"]
    weights["stability"] = BASELINE_WEIGHTS["stability"]
    return {k: weights[k] for k in WEIGHT_KEYS}


def adjust_weights_for_seasonality(
    weights: Dict[str, float],
    timing: Optional[Dict[str, Any]],
    next_draw_date: Optional[date],
    tuning: Tuning = DEFAULT_TUNING,
) -> Dict[str, float]:
    """
    Shift trust between seasonal and momentum factors depending on how volatile the
    upcoming month has been historically, then scale back to the original total.
    """
    transition = transition_for_month(timing, next_draw_date)
    if transition is None:
        return dict(weights)

    volatility = transition["dissimilarity_score"]
    adjusted = dict(weights)
    if volatility > tuning.volatile_threshold:
        before = adjusted["seasonal"]
        adjusted["seasonal"] *= tuning.volatile_seasonal_keep
        freed = before - adjusted["seasonal"]
        adjusted["momentum"] += freed * tuning.volatile_momentum_share
        adjusted["frequency"] += freed * (1 - tuning.volatile_momentum_share)
    elif volatility < tuning.stable_threshold:
        before = adjusted["momentum"]
        adjusted["momentum"] *= tuning.stable_momentum_keep
        adjusted["seasonal"] += before - adjusted["momentum"]

    original_total = weight_total(weights)
    new_total = weight_total(adjusted)
    if new_total > 0.001:
        factor = original_total / new_total
        adjusted = {k: v * factor for k, v in adjusted.items()}
    return adjusted
