from datetime import date

import pytest

from aethergrid.config import BASELINE_WEIGHTS, DEFAULT_TUNING, WEIGHT_KEYS, Tuning, baseline_weights
from aethergrid.weights import adjust_weights_for_seasonality, recalibrate_weights, weight_total


def _success(total, **profile):
    hit_profile = {k: 0.0 for k in ("hot", "cold", "overdue", "hot_zone", "momentum", "cluster", "seasonal", "companion", "stability")}
    hit_profile.update(profile)
    return {"hit_profile": hit_profile, "total_analyzed_hits": total}


def _timing(to_period, score):
    return {
        "hot_streak_analysis": {"average_streak_duration": 0.0},
        "seasonal_transition_analysis": {
            "monthly_transitions": [{"from_period": "Feb", "to_period": to_period, "dissimilarity_score": score}],
        },
    }


def test_baseline_sums_to_one():
    assert weight_total(baseline_weights()) == pytest.approx(1.0)
    fresh = baseline_weights()
    fresh["frequency"] = 0
    assert BASELINE_WEIGHTS["frequency"] == 0.25


def test_recalibrate_below_sample_returns_baseline():
    assert recalibrate_weights(None) == BASELINE_WEIGHTS
    assert recalibrate_weights(_success(49, hot=50.0)) == BASELINE_WEIGHTS


def test_recalibrate_proportional_to_profile():
    weights = recalibrate_weights(_success(200, hot=60.0, overdue=20.0, hot_zone=40.0, momentum=10.0, cluster=30.0, seasonal=40.0))
    assert list(weights) == list(WEIGHT_KEYS)
    assert weight_total(weights) == pytest.approx(1.0, abs=1e-4)
    assert weights["companion"] == 0.05 and weights["stability"] == 0.05
    assert weights["frequency"] == pytest.approx(3 * weights["dormancy"], rel=1e-9)
    assert weights["zone"] == pytest.approx(weights["seasonal"])
    assert all(w >= 0 for w in weights.values())


def test_recalibrate_empty_profile_keeps_fixed_shares():
    weights = recalibrate_weights(_success(100))
    assert weights["frequency"] == 0
    assert weights["companion"] == 0.05 and weights["stability"] == 0.05


def test_neutral_transition_keeps_weights():
    weights = baseline_weights()
    adjusted = adjust_weights_for_seasonality(weights, _timing("Mar", 0.45), date(2024, 3, 15))
    assert adjusted == pytest.approx(weights)


def test_volatile_transition_moves_seasonal_into_momentum():
    weights = baseline_weights()
    adjusted = adjust_weights_for_seasonality(weights, _timing("Mar", 0.8), date(2024, 3, 15))
    assert adjusted["seasonal"] == pytest.approx(0.05)
    assert adjusted["momentum"] == pytest.approx(0.15 + 0.05 * 0.7)
    assert adjusted["frequency"] == pytest.approx(0.25 + 0.05 * 0.3)
    assert weight_total(adjusted) == pytest.approx(weight_total(weights))


def test_stable_transition_moves_momentum_into_seasonal():
    weights = baseline_weights()
    adjusted = adjust_weights_for_seasonality(weights, _timing("Mar", 0.2), date(2024, 3, 15))
    assert adjusted["momentum"] == pytest.approx(0.105)
    assert adjusted["seasonal"] == pytest.approx(0.145)
    assert weight_total(adjusted) == pytest.approx(1.0)


def test_no_matching_transition_returns_copy():
    weights = baseline_weights()
    adjusted = adjust_weights_for_seasonality(weights, _timing("Jul", 0.9), date(2024, 3, 15))
    assert adjusted == weights and adjusted is not weights
    assert adjust_weights_for_seasonality(weights, None, date(2024, 3, 15)) == weights
    assert adjust_weights_for_seasonality(weights, _timing("Mar", 0.9), None) == weights


def test_tuning_from_env(monkeypatch):
    monkeypatch.setenv("AETHER_INITIAL_WINDOW", "120")
    monkeypatch.setenv("AETHER_COUPON_COUNT", " 5 ")
    monkeypatch.delenv("AETHER_WORKERS", raising=False)
    tuning = Tuning.from_env()
    assert tuning.initial_window == 120
    assert tuning.coupon_count == 5
    assert tuning.workers == DEFAULT_TUNING.workers
    assert isinstance(tuning.initial_window, int)
