import threading

import pytest

from aethergrid.backtest import (
    REGIME_SHIFT,
    WEIGHT_CALIBRATION,
    BacktestCancelled,
    analyze_performance_log,
    empty_backtest_result,
    performance_timeline,
    run_sequential_backtest,
)
from aethergrid.config import BASELINE_WEIGHTS
from aethergrid.weights import weight_total

from conftest import generate_draws


@pytest.fixture(scope="module")
def draws_125():
    return generate_draws(125, seed=21)


@pytest.fixture(scope="module")
def run(draws_125):
    progress = []
    result = run_sequential_backtest(draws_125, progress.append)
    return result, progress


def _item(draw_date, main_hits, baseline_hits, star_hits=0):
    return {"draw_date": draw_date, "main_hits": main_hits, "baseline_main_hits": baseline_hits, "star_hits": star_hits}


def test_short_history_skips(draws_60):
    progress = []
    assert run_sequential_backtest(draws_60, progress.append) == empty_backtest_result()
    assert progress == [1.0]
    assert empty_backtest_result()["optimal_weights"] == BASELINE_WEIGHTS


def test_one_log_item_per_replayed_draw(run, draws_125):
    result, _ = run
    log = result["performance_log"]
    assert len(log) == 25
    assert [x["draw_number"] for x in log] == list(range(101, 126))
    for item, target in zip(log, draws_125[100:]):
        assert item["draw_date"] == target.draw_date
        assert item["actual_main"] == list(target.main)
        assert len(item["forecast_top10_main"]) == 10 and len(item["forecast_top5_star"]) == 5
        assert item["main_hits"] == len(set(item["forecast_top10_main"]) & set(target.main))
        assert item["baseline_main_hits"] == len(set(item["forecast_baseline_main"]) & set(target.main))
        assert 1 <= item["average_winner_rank"] <= 50


def test_calibration_events(run):
    result, _ = run
    calibrations = [e for e in result["events"] if e["type"] == WEIGHT_CALIBRATION]
    assert calibrations == [{"draw_number": 121, "type": WEIGHT_CALIBRATION}]
    assert {e["type"] for e in result["events"]} <= {WEIGHT_CALIBRATION, REGIME_SHIFT}


def test_learned_state(run):
    result, _ = run
    assert result["historical_success_analysis"]["total_analyzed_hits"] == 125
    assert weight_total(result["optimal_weights"]) == pytest.approx(1.0, abs=1e-3)
    assert result["optimal_weights"]["companion"] == 0.05


def test_progress_checkpoints(run):
    _, progress = run
    assert progress == pytest.approx([1 / 25, 11 / 25, 21 / 25, 1.0])


def test_timeline_buckets(run):
    result, _ = run
    timeline = result["performance_timeline"]
    assert len(timeline) == 10
    assert [t["training_size"] for t in timeline] == list(range(100, 120, 2))
    assert performance_timeline([]) == []


def test_backtest_is_deterministic(run, draws_125):
    result, _ = run
    assert run_sequential_backtest(draws_125) == result


def test_performance_breakdown():
    log = [_item("2024-01-02", 2, 1), _item("2024-01-05", 0, 1), _item("2024-04-02", 3, 0)]
    breakdown = analyze_performance_log(log)
    assert breakdown["ab_test"] == {"aether_total_hits": 5, "baseline_total_hits": 2, "improvement_percentage": 150.0}
    assert breakdown["seasonal"]["monthly"] == [
        {"period": "Jan", "total_draws": 2, "total_hits": 2, "avg_hits": 1.0},
        {"period": "Apr", "total_draws": 1, "total_hits": 3, "avg_hits": 3.0},
    ]
    assert [q["period"] for q in breakdown["seasonal"]["quarterly"]] == ["Q1", "Q2"]
    assert analyze_performance_log([_item("2024-01-02", 1, 0)])["ab_test"]["improvement_percentage"] == 0.0


def test_cancel_before_start(draws_125):
    cancel = threading.Event()
    cancel.set()
    progress = []
    with pytest.raises(BacktestCancelled):
        run_sequential_backtest(draws_125, progress.append, cancel_event=cancel)
    assert progress == []


def test_cancel_from_progress_callback(draws_125):
    cancel = threading.Event()
    progress = []

    def on_progress(fraction):
        progress.append(fraction)
        cancel.set()

    with pytest.raises(BacktestCancelled):
        run_sequential_backtest(draws_125, on_progress, cancel_event=cancel)
    # first checkpoint fires on step 0, the next draw is never replayed
    assert progress == [1 / 25]


def test_unset_event_runs_to_completion(draws_125, run):
    result, _ = run
    assert run_sequential_backtest(draws_125, cancel_event=threading.Event()) == result
