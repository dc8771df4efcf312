from __future__ import annotations

import sys
import threading
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from aethergrid import schedule
from aethergrid.config import DEFAULT_TUNING, MONTH_NAMES, QUARTER_NAMES, Tuning, baseline_weights
from aethergrid.draws import Draw
from aethergrid.meta_patterns import analyze_meta_patterns
from aethergrid.patterns import analyze_data
from aethergrid.regime import classify_regime, detect_regime_shift
from aethergrid.scoring import calculate_aether_scores
from aethergrid.seasonal import analyze_seasonal_patterns
from aethergrid.success import build_winner_profiles, create_success_analysis, empty_success_analysis
from aethergrid.timing import analyze_pattern_timing, prefix_hot_sets
from aethergrid.weights import recalibrate_weights

WEIGHT_CALIBRATION = "Weight Calibration"
REGIME_SHIFT = "Regime Shift Detected"


class BacktestCancelled(Exception):
    """Raised when a replay is stopped through its cancel event; no partial result is kept."""


def empty_breakdown() -> Dict[str, Any]:
    return {
        "ab_test": {"aether_total_hits": 0, "baseline_total_hits": 0, "improvement_percentage": 0.0},
        "seasonal": {"monthly": [], "quarterly": []},
    }


def empty_backtest_result() -> Dict[str, Any]:
    return {
        "performance_timeline": [],
        "performance_log": [],
        "performance_breakdown": empty_breakdown(),
        "historical_success_analysis": empty_success_analysis(),
        "optimal_weights": baseline_weights(),
        "events": [],
    }


def analyze_performance_log(log: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """A/B totals against the frequency baseline plus monthly and quarterly hit averages."""
    aether_hits = sum(item["main_hits"] for item in log)
    baseline_hits = sum(item["baseline_main_hits"] for item in log)
    improvement = (aether_hits - baseline_hits) / baseline_hits * 100 if baseline_hits > 0 else 0.0

    monthly: Dict[str, Dict[str, int]] = {}
    quarterly: Dict[str, Dict[str, int]] = {}
    for item in log:
        d = date.fromisoformat(item["draw_date"])
        for bucket, period in ((monthly, MONTH_NAMES[d.month - 1]), (quarterly, QUARTER_NAMES[(d.month - 1) // 3])):
            acc = bucket.setdefault(period, {"hits": 0, "draws": 0})
            acc["hits"] += item["main_hits"]
            acc["draws"] += 1

    def rows(data, order):
        return [
            {"period": p, "total_draws": data[p]["draws"], "total_hits": data[p]["hits"], "avg_hits": data[p]["hits"] / data[p]["draws"]}
            for p in order
            if p in data
        ]

    return {
        "ab_test": {"aether_total_hits": aether_hits, "baseline_total_hits": baseline_hits, "improvement_percentage": improvement},
        "seasonal": {"monthly": rows(monthly, MONTH_NAMES), "quarterly": rows(quarterly, QUARTER_NAMES)},
    }


def performance_timeline(log: Sequence[Dict[str, Any]], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    """Average hits per bucket of consecutive backtest steps; trailing remainder steps are not bucketed."""
    if not log:
        return []
    buckets = tuning.timeline_buckets
    size = max(1, len(log) // buckets)
    timeline = []
    for b in range(buckets):
        start = b * size
        batch = log[start:start + size]
        if not batch:
            continue
        timeline.append({
            "training_size": tuning.initial_window + start,
            "avg_main_hits": sum(x["main_hits"] for x in batch) / len(batch),
            "avg_star_hits": sum(x["star_hits"] for x in batch) / len(batch),
            "avg_baseline_hits": sum(x["baseline_main_hits"] for x in batch) / len(batch),
        })
    return timeline


def baseline_forecast(analysis: Dict[str, Any], count: int) -> List[int]:
    ordered = sorted(analysis["main_number_frequencies"], key=lambda f: f["count"], reverse=True)
    return [f["number"] for f in ordered[:count]]


def _calibration_profiles(profiles: List[Dict[str, Any]], tuning: Tuning) -> List[Dict[str, Any]]:
    # trailing window once there are enough winners to fill a recalibration sample
    if len(profiles) > tuning.min_sample:
        return profiles[-tuning.profile_window:]
    return profiles


def run_sequential_backtest(
    draws: Sequence[Draw],
    on_progress: Optional[Callable[[float], None]] = None,
    tuning: Tuning = DEFAULT_TUNING,
    cancel_event: Optional[threading.Event] = None,
) -> Dict[str, Any]:
    """
    Walk-forward replay: forecast every draw from index initial_window onward using only the
    draws before it, log the outcome and learn from the winners' factor profiles.

    on_progress receives the completed fraction every progress_interval steps and on the
    last step. cancel_event is checked before each replayed draw; once it is set the replay
    raises BacktestCancelled and a new run has to start again from the initial window.
    """
    initial = tuning.initial_window
    if len(draws) < initial + 1:
        print(f"[BACKTEST] Only {len(draws)} draws, need {initial + 1}. Skipping backtest.")
        sys.stdout.flush()
        if on_progress:
            on_progress(1.0)
        return empty_backtest_result()

    total_steps = len(draws) - initial
    print(f"[BACKTEST] Replaying {total_steps} draws (initial window {initial})")
    sys.stdout.flush()

    log: List[Dict[str, Any]] = []
    profiles: List[Dict[str, Any]] = []
    events: List[Dict[str, Any]] = []
    weights = baseline_weights()
    last_shift = False
    hot_sets = prefix_hot_sets(draws, tuning.hot_streak_window, tuning)

    for i in range(initial, len(draws)):
        training = draws[:i]
        target = draws[i]
        step = i - initial
        if cancel_event is not None and cancel_event.is_set():
            print(f"[BACKTEST] Cancelled at draw {i + 1} after {step} of {total_steps} steps")
            sys.stdout.flush()
            raise BacktestCancelled(f"backtest cancelled at draw {i + 1}")

        success = None
        if step > 0 and step % tuning.recalibration_interval == 0 and len(profiles) > tuning.min_profiles_for_calibration:
            success = create_success_analysis(profiles, training, tuning)
            events.append({"draw_number": i + 1, "type": WEIGHT_CALIBRATION})
            if len(profiles) > tuning.min_sample:
                weights = recalibrate_weights(create_success_analysis(profiles[-tuning.profile_window:], training, tuning), tuning)
            else:
                weights = recalibrate_weights(success, tuning)

        shift = detect_regime_shift(training, tuning)
        if shift and not last_shift:
            events.append({"draw_number": i + 1, "type": REGIME_SHIFT})
        last_shift = shift

        analysis = analyze_data(training, len(training), tuning)
        seasonal = analyze_seasonal_patterns(training, tuning)
        meta = analyze_meta_patterns(training, tuning)
        timing = analyze_pattern_timing(training, tuning, hot_sets)
        regime = classify_regime(timing, target.date, tuning)

        forecast = calculate_aether_scores(analysis, training, seasonal, meta, target.date, weights, success, regime, tuning)
        top_main = [s["number"] for s in forecast["main_number_scores"][: tuning.forecast_main]]
        top_star = [s["number"] for s in forecast["star_number_scores"][: tuning.forecast_star]]
        baseline = baseline_forecast(analysis, tuning.forecast_main)
        ranks = {s["number"]: s["rank"] for s in forecast["main_number_scores"]}
        context, _ = schedule.get_date_context(target.date)

        log.append({
            "draw_number": i + 1,
            "draw_date": target.draw_date,
            "forecast_top10_main": top_main,
            "forecast_top5_star": top_star,
            "actual_main": list(target.main),
            "actual_star": list(target.stars),
            "main_hits": sum(1 for n in target.main if n in top_main),
            "star_hits": sum(1 for n in target.stars if n in top_star),
            "forecast_baseline_main": baseline,
            "baseline_main_hits": sum(1 for n in target.main if n in baseline),
            "context": context,
            "average_winner_rank": float(np.mean([ranks.get(n, 51) for n in target.main])),
        })
        profiles.extend(build_winner_profiles(target, draws[i - 1], i + 1, analysis, seasonal, meta, tuning))

        if on_progress and (step % tuning.progress_interval == 0 or i == len(draws) - 1):
            on_progress((step + 1) / total_steps)

    history = create_success_analysis(profiles, draws, tuning)
    final_weights = recalibrate_weights(create_success_analysis(_calibration_profiles(profiles, tuning), draws, tuning), tuning)
    print(f"[BACKTEST] Done: {len(log)} forecasts, {len(events)} events, {len(profiles)} winner profiles")
    sys.stdout.flush()
    return {
        "performance_timeline": performance_timeline(log, tuning),
        "performance_log": log,
        "performance_breakdown": analyze_performance_log(log),
        "historical_success_analysis": history,
        "optimal_weights": final_weights,
        "events": events,
    }
