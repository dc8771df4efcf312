from __future__ import annotations

import random
import sys
import threading
from datetime import date
from typing import Any, Callable, Dict, Optional, Sequence

import numpy as np

from aethergrid.backtest import run_sequential_backtest
from aethergrid.config import DEFAULT_TUNING, Tuning
from aethergrid.coupons import build_intelligent_coupons
from aethergrid.draws import Draw
from aethergrid.insights import analyze_forecast_performance, analyze_validation_results
from aethergrid.meta_patterns import analyze_meta_patterns
from aethergrid.patterns import analyze_data
from aethergrid.regime import classify_regime, detect_regime_shift
from aethergrid.schedule import predict_next_draw_date
from aethergrid.scoring import calculate_aether_scores
from aethergrid.seasonal import analyze_seasonal_patterns
from aethergrid.strategies import generate_all_strategies
from aethergrid.timing import analyze_pattern_timing
from aethergrid.weights import adjust_weights_for_seasonality

ProgressCallback = Callable[[Dict[str, Any]], None]


def convert_numpy_types(obj):
    """Convert numpy types (and dates) to native Python types for JSON serialization."""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, date):
        return obj.isoformat()
    elif isinstance(obj, dict):
        return {key: convert_numpy_types(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_types(item) for item in obj]
    else:
        return obj


def _emit(on_progress: Optional[ProgressCallback], stage: str, percentage: float):
    if on_progress:
        on_progress({"stage": stage, "percentage": percentage})


def run_full_analysis(
    draws: Sequence[Draw],
    total_rows: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    tuning: Tuning = DEFAULT_TUNING,
    rng: Optional[random.Random] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Dict[str, Any]:
    """
    Everything for one dataset: statistics, backtest, final forecast, coupons and the
    post-hoc insights. Returns a JSON-ready dict.
    Setting cancel_event stops the backtest with BacktestCancelled.
    """
    _emit(on_progress, "Performing initial statistical analysis...", 5)
    analysis = analyze_data(draws, total_rows, tuning)
    if not draws:
        return convert_numpy_types({
            "analysis_result": analysis,
            "historical_success_analysis": None,
            "pattern_timing_analysis": None,
            "validation_result": None,
            "predicted_next_draw_date": None,
            "performance_log": [],
            "performance_timeline": [],
            "performance_breakdown": None,
            "forecast_performance_insight": None,
            "events": [],
        })

    print(f"[PIPELINE] Analyzing {len(draws)} draws ({draws[0].draw_date} to {draws[-1].draw_date})")
    sys.stdout.flush()

    _emit(on_progress, "Analyzing seasonal patterns...", 15)
    seasonal = analyze_seasonal_patterns(draws, tuning)

    _emit(on_progress, "Detecting meta-patterns...", 25)
    meta = analyze_meta_patterns(draws, tuning)

    _emit(on_progress, "Analyzing pattern timing and rhythm...", 35)
    timing = analyze_pattern_timing(draws, tuning)

    _emit(on_progress, "Starting sequential backtesting...", 50)
    backtest = run_sequential_backtest(
        draws,
        lambda fraction: _emit(on_progress, "Running sequential backtest...", 50 + fraction * 40),
        tuning,
        cancel_event,
    )

    _emit(on_progress, "Finalizing analysis...", 90)
    next_draw = predict_next_draw_date(draws)
    score_date = next_draw or draws[-1].date
    regime_shift = detect_regime_shift(draws, tuning)
    regime = classify_regime(timing, score_date, tuning)
    weights = adjust_weights_for_seasonality(backtest["optimal_weights"], timing, score_date, tuning)

    aether_scores = calculate_aether_scores(
        analysis, draws, seasonal, meta, next_draw, weights, backtest["historical_success_analysis"], regime, tuning,
    )
    rng = rng or random.Random()
    coupons = build_intelligent_coupons(aether_scores, analysis["pattern_analysis"], regime, regime_shift, rng, tuning)

    full_analysis = dict(analysis)
    full_analysis.update({
        "aether_scores": aether_scores,
        "intelligent_coupons": coupons,
        "strategies": generate_all_strategies(analysis, score_date, rng, tuning),
        "seasonal_analysis": seasonal,
        "meta_pattern_analysis": meta,
        "optimal_weights": backtest["optimal_weights"],
        "forecast_weights": weights,
        "regime_shift_detected": regime_shift,
        "detected_regime": regime,
    })

    result = {
        "analysis_result": full_analysis,
        "historical_success_analysis": backtest["historical_success_analysis"],
        "pattern_timing_analysis": timing,
        "validation_result": analyze_validation_results(backtest["performance_log"], draws, tuning),
        "predicted_next_draw_date": next_draw,
        "performance_log": backtest["performance_log"],
        "performance_timeline": backtest["performance_timeline"],
        "performance_breakdown": backtest["performance_breakdown"],
        "forecast_performance_insight": analyze_forecast_performance(backtest["performance_log"], full_analysis, tuning),
        "events": backtest["events"],
    }
    print(f"[PIPELINE] Done: regime={regime}, shift={regime_shift}, next draw={next_draw}")
    sys.stdout.flush()
    _emit(on_progress, "Analysis complete.", 100)
    return convert_numpy_types(result)
