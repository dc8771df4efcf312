from dataclasses import replace

import pytest

from aethergrid import schedule
from aethergrid.config import DEFAULT_TUNING
from aethergrid.insights import analyze_forecast_performance, analyze_validation_results, hit_rate_significance
from aethergrid.patterns import analyze_data


def _item(forecast, actual, context=schedule.NONE, main_hits=None, baseline_hits=0):
    hits = len(set(forecast) & set(actual)) if main_hits is None else main_hits
    return {
        "forecast_top10_main": forecast,
        "actual_main": actual,
        "main_hits": hits,
        "baseline_main_hits": baseline_hits,
        "context": context,
    }


def test_significance():
    assert hit_rate_significance(0, 0)["p_value"] == 1.0
    chance = hit_rate_significance(50, 50)
    assert chance["trials"] == 250
    assert chance["expected_rate"] == 0.2
    assert chance["observed_rate"] == 0.2
    assert 0.3 < chance["p_value"] < 0.7
    assert hit_rate_significance(100, 50)["p_value"] < 0.001


def test_forecast_performance(draws_120):
    analysis = analyze_data(draws_120)
    forecast = list(range(1, 11))
    log = [_item(forecast, [1, 2, 30, 40, 50]), _item(forecast, [20, 21, 22, 23, 24])]
    result = analyze_forecast_performance(log, analysis)
    assert result["total_hits"] == 2
    assert set(result["hit_profile"]) == {"hot", "cold", "overdue", "hot_zone", "momentum", "cluster"}
    assert all(0 <= v <= 100 for v in result["hit_profile"].values())
    assert result["conclusion"].startswith("The model shows a marked strength")
    assert result["significance"]["trials"] == 10


def test_forecast_performance_without_hits(draws_120):
    analysis = analyze_data(draws_120)
    result = analyze_forecast_performance([_item([1, 2], [3, 4, 5, 6, 7])], analysis)
    assert result["total_hits"] == 0
    assert "no main numbers" in result["conclusion"]
    assert analyze_forecast_performance([], analysis) is None
    assert analyze_forecast_performance([_item([1], [1, 2, 3, 4, 5])], None) is None


def test_contextual_performance_needs_six(draws_60):
    log = [_item([1], [1, 2, 3, 4, 5], schedule.CHRISTMAS, main_hits=2, baseline_hits=1)] * 6
    log += [_item([1], [1, 2, 3, 4, 5], schedule.NEW_YEAR, main_hits=1, baseline_hits=1)] * 5
    result = analyze_validation_results(log, draws_60)
    assert [c["context"] for c in result["contextual_performance"]] == [schedule.CHRISTMAS]
    christmas = result["contextual_performance"][0]
    assert christmas["improvement"] == pytest.approx(100.0)
    assert christmas["draws"] == 6


def test_cultural_validation(fixed_draw_factory):
    draws = fixed_draw_factory([(32, 33, 40, 45, 50)] * 50)
    checks = analyze_validation_results([], draws)["cultural_validation"]
    assert len(checks) == 4
    assert all(c["name"].startswith("Bias check: ") for c in checks)
    by_name = {c["name"]: c for c in checks}
    assert by_name["Bias check: Birthday coefficient (numbers 1-31)"]["is_confirmed"] is True
    assert by_name["Bias check: High number advantage (32-50)"]["is_confirmed"] is True
    assert analyze_validation_results([], draws[:10])["cultural_validation"] == []


def test_validation_tuning(draws_60):
    log = [_item([1], [1, 2, 3, 4, 5], schedule.CHRISTMAS, main_hits=2, baseline_hits=1)] * 6
    log += [_item([1], [1, 2, 3, 4, 5], schedule.NEW_YEAR, main_hits=1, baseline_hits=1)] * 5
    stricter = analyze_validation_results(log, draws_60, replace(DEFAULT_TUNING, min_context_samples=6))
    assert stricter["contextual_performance"] == []
    looser = analyze_validation_results(log, draws_60, replace(DEFAULT_TUNING, min_context_samples=4))
    assert [c["context"] for c in looser["contextual_performance"]] == [schedule.CHRISTMAS, schedule.NEW_YEAR]
    unchecked = analyze_validation_results(log, draws_60, replace(DEFAULT_TUNING, anti_popularity_min_draws=100))
    assert unchecked["cultural_validation"] == []
