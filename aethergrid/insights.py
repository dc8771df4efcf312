from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from scipy.stats import binomtest

from aethergrid.config import DEFAULT_TUNING, MAIN_COUNT, MAIN_MAX, Tuning
from aethergrid.draws import Draw
from aethergrid.patterns import cold_numbers, hot_numbers, hot_zone_bounds, in_zone, overdue_numbers
from aethergrid.popularity import BIRTHDAY_CHECK, HIGH_CHECK, NEIGHBOUR_CHECK, SUM_CHECK, analyze_anti_popularity
from aethergrid.schedule import HOLIDAY_CONTEXTS

CATEGORY_NAMES = {
    "hot": "hot numbers (drawn often)",
    "cold": "cold numbers (rarely drawn)",
    "overdue": "overdue numbers (due for a draw)",
    "hot_zone": "numbers in the hottest zone",
    "momentum": "numbers with momentum (rising trend)",
    "cluster": "numbers with strong clusters (active companions)",
}

def hit_rate_significance(total_hits: int, forecasts: int, tuning: Tuning = DEFAULT_TUNING) -> Dict[str, float]:
    """
    One-sided binomial test of the top-N hit rate against picking N of 50 at random.
    Each winning main number is one trial.
    """
    trials = forecasts * MAIN_COUNT
    expected = tuning.forecast_main / MAIN_MAX
    if trials == 0:
        return {"trials": 0, "observed_rate": 0.0, "expected_rate": expected, "p_value": 1.0}
    result = binomtest(total_hits, trials, expected, alternative="greater")
    return {"trials": trials, "observed_rate": total_hits / trials, "expected_rate": expected, "p_value": float(result.pvalue)}


def analyze_forecast_performance(log: Sequence[Dict[str, Any]], full_analysis: Optional[Dict[str, Any]], tuning: Tuning = DEFAULT_TUNING) -> Optional[Dict[str, Any]]:
    """Which kinds of numbers the backtested forecast actually hit, measured on the full history."""
    if not log or not full_analysis:
        return None
    pattern = full_analysis["pattern_analysis"]
    hot = set(hot_numbers(full_analysis, tuning))
    cold = set(cold_numbers(full_analysis, tuning))
    overdue = set(overdue_numbers(full_analysis))
    zone = hot_zone_bounds(full_analysis)
    trending = {
        m["number"]
        for m in sorted((m for m in pattern["momentum_analysis"] if m["momentum_score"] > 0), key=lambda m: m["momentum_score"], reverse=True)[:tuning.top_trending]
    }
    clustered = {
        c["number"]
        for c in sorted((c for c in pattern["cluster_strength_analysis"] if c["cluster_score"] > 0), key=lambda c: c["cluster_score"], reverse=True)[:tuning.top_trending]
    }

    counter = {key: 0 for key in CATEGORY_NAMES}
    total_hits = 0
    for item in log:
        if item["main_hits"] <= 0:
            continue
        actual = set(item["actual_main"])
        for n in (n for n in item["forecast_top10_main"] if n in actual):
            total_hits += 1
            counter["hot"] += n in hot
            counter["cold"] += n in cold
            counter["overdue"] += n in overdue
            counter["hot_zone"] += in_zone(n, zone)
            counter["momentum"] += n in trending
            counter["cluster"] += n in clustered

    significance = hit_rate_significance(total_hits, len(log), tuning)
    if total_hits == 0:
        return {
            "total_hits": 0,
            "hit_profile": {key: 0.0 for key in CATEGORY_NAMES},
            "conclusion": "The model hit no main numbers during the backtest period, so no profile analysis is possible.",
            "significance": significance,
        }

    profile = {key: c / total_hits * 100 for key, c in counter.items()}
    ranked = sorted(profile.items(), key=lambda kv: kv[1], reverse=True)
    best, worst = ranked[0], ranked[-1]
    conclusion = f"The model shows a marked strength in predicting {CATEGORY_NAMES[best[0]]}."
    if best[1] > worst[1] * tuning.imbalance_factor and best[1] > 0:
        conclusion += (
            f" It is less effective at hitting {CATEGORY_NAMES[worst[0]]}. The weighting should be adjusted "
            "to favour the factors that drive its success."
        )
    else:
        conclusion += " Performance is fairly balanced across number categories."
    return {"total_hits": total_hits, "hit_profile": profile, "conclusion": conclusion, "significance": significance}


def _contextual_performance(log: Sequence[Dict[str, Any]], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    out = []
    for context in HOLIDAY_CONTEXTS:
        items = [x for x in log if x["context"] == context]
        if len(items) <= tuning.min_context_samples:
            continue
        model_avg = sum(x["main_hits"] for x in items) / len(items)
        baseline_avg = sum(x["baseline_main_hits"] for x in items) / len(items)
        out.append({
            "context": context,
            "draws": len(items),
            "model_avg_hits": model_avg,
            "baseline_avg_hits": baseline_avg,
            "improvement": (model_avg - baseline_avg) / baseline_avg * 100 if baseline_avg > 0 else None,
        })
    return out


def analyze_validation_results(
    log: Sequence[Dict[str, Any]], draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING
) -> Dict[str, List[Dict[str, Any]]]:
    """Holiday-period model vs baseline, plus whether the anti-popularity premises hold in this data."""
    bias = analyze_anti_popularity(draws, tuning)
    by_name = {b["name"]: b for b in bias["human_bias_analysis"] + bias["combination_bias_analysis"]}

    cultural = []
    for name, direction in ((BIRTHDAY_CHECK, "under"), (HIGH_CHECK, "over"), (SUM_CHECK, "over"), (NEIGHBOUR_CHECK, "over")):
        b = by_name.get(name)
        if b is None:
            continue
        confirmed = b["observed"] < b["expected"] if direction == "under" else b["observed"] > b["expected"]
        cultural.append({
            "name": f"Bias check: {name}",
            "is_confirmed": confirmed,
            "details": (
                f"The anti-popularity strategy expects this pattern to be {direction}-represented. "
                f"Observed: {b['observed']:.2f}{b['unit']}, expected: {b['expected']:.2f}{b['unit']}. "
                f"The premise is therefore {'confirmed' if confirmed else 'not confirmed'}."
            ),
        })
    return {"contextual_performance": _contextual_performance(log, tuning), "cultural_validation": cultural}
