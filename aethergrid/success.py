from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from aethergrid.config import DEFAULT_TUNING, MAIN_MAX, Tuning
from aethergrid.draws import Draw, draw_spread, draw_sum
from aethergrid.patterns import cold_numbers, hot_numbers, hot_zone_bounds, in_zone, overdue_numbers
from aethergrid.seasonal import month_name

# winner-profile flag -> hit-profile key
FLAG_TO_PROFILE = {
    "is_hot": "hot",
    "is_cold": "cold",
    "is_overdue": "overdue",
    "is_in_hot_zone": "hot_zone",
    "has_momentum": "momentum",
    "has_cluster_strength": "cluster",
    "is_seasonal_hot": "seasonal",
    "is_companion_hot": "companion",
    "has_stability": "stability",
}

# factors mined for pre-draw indicators, with their display names
INDICATOR_FACTORS = [
    ("is_hot", "hot", "Hot"),
    ("is_cold", "cold", "Cold"),
    ("is_overdue", "overdue", "Overdue"),
    ("is_seasonal_hot", "seasonal", "Seasonal"),
    ("is_companion_hot", "companion", "Companion"),
    ("has_stability", "stability", "Stable"),
]


def empty_hit_profile() -> Dict[str, float]:
    return {key: 0.0 for key in FLAG_TO_PROFILE.values()}


def empty_success_analysis() -> Dict[str, Any]:
    return {"hit_profile": empty_hit_profile(), "pre_draw_indicators": [], "total_analyzed_hits": 0, "winner_profiles": []}


def stable_numbers(meta: Optional[Dict[str, Any]], tuning: Tuning = DEFAULT_TUNING) -> List[int]:
    """Numbers with the fewest hot/cold state changes."""
    if not meta or not meta.get("hot_cold_transitions"):
        return []
    ordered = sorted(meta["hot_cold_transitions"], key=lambda t: t["transitions"])
    return [t["number"] for t in ordered[: int(MAIN_MAX * tuning.stability_fraction)]]


def build_winner_profiles(
    target: Draw,
    prev_draw: Draw,
    draw_number: int,
    analysis: Dict[str, Any],
    seasonal: Dict[str, Any],
    meta: Optional[Dict[str, Any]],
    tuning: Tuning = DEFAULT_TUNING,
) -> List[Dict[str, Any]]:
    """
    Factor-membership snapshot for each winning main number of `target`, measured against
    the training analysis that preceded it.
    """
    pattern = analysis["pattern_analysis"]
    hot = set(hot_numbers(analysis, tuning))
    cold = set(cold_numbers(analysis, tuning))
    overdue = set(overdue_numbers(analysis))
    zone = hot_zone_bounds(analysis)
    trending = {m["number"] for m in pattern["momentum_analysis"] if m["momentum_score"] > 0}
    clustered = {c["number"] for c in pattern["cluster_strength_analysis"] if c["cluster_score"] > 0}

    monthly = seasonal["monthly"].get(month_name(target.date), [])
    seasonal_hot = {x["number"] for x in monthly[: int(len(monthly) * tuning.seasonal_hot_fraction)]}
    stable = set(stable_numbers(meta, tuning))

    companion_data = pattern["companion_analysis"]["companion_data"]
    companion_hot = set()
    for h in hot:
        for comp in companion_data.get(h, [])[: tuning.companion_hot_top]:
            companion_hot.add(comp["number"])

    prev_spread = draw_spread(prev_draw)
    prev_sum = draw_sum(prev_draw)
    profiles = []
    for n in target.main:
        profiles.append({
            "draw_number": draw_number,
            "draw_date": target.draw_date,
            "winning_number": n,
            "profile": {
                "is_hot": n in hot,
                "is_cold": n in cold,
                "is_overdue": n in overdue,
                "is_in_hot_zone": in_zone(n, zone),
                "has_momentum": n in trending,
                "has_cluster_strength": n in clustered,
                "is_seasonal_hot": n in seasonal_hot,
                "is_companion_hot": n in companion_hot,
                "has_stability": n in stable,
            },
            "prev_draw_spread": prev_spread,
            "prev_draw_sum": prev_sum,
        })
    return profiles


def calculate_hit_profile(winner_profiles: Sequence[Dict[str, Any]]) -> Dict[str, float]:
    """Percentage of winners matching each factor flag."""
    if not winner_profiles:
        return empty_hit_profile()
    total = len(winner_profiles)
    counts = empty_hit_profile()
    for wp in winner_profiles:
        for flag, key in FLAG_TO_PROFILE.items():
            if wp["profile"][flag]:
                counts[key] += 1
    return {key: c / total * 100 for key, c in counts.items()}


def _indicators(winner_profiles: Sequence[Dict[str, Any]], draws: Sequence[Draw], tuning: Tuning) -> List[Dict[str, Any]]:
    spreads = [draw_spread(d) for d in draws]
    sums = [draw_sum(d) for d in draws]
    global_spread = float(np.mean(spreads)) if spreads else 0.0
    global_sum = float(np.mean(sums)) if sums else 0.0

    indicators = []
    for flag, key, name in INDICATOR_FACTORS:
        matched = [wp for wp in winner_profiles if wp["profile"][flag]]
        if len(matched) < tuning.indicator_min_samples:
            continue

        avg_spread = float(np.mean([wp["prev_draw_spread"] for wp in matched]))
        deviation = (avg_spread - global_spread) / global_spread * 100 if global_spread > 0 else 0.0
        if abs(deviation) > tuning.spread_indicator_pct:
            direction = "higher" if deviation > 0 else "lower"
            implication = "more chaotic draws" if deviation > 0 else "more focused draws"
            indicators.append({
                "title": f"Spread before a '{name}' number hits",
                "insight": (
                    f"Draws before a '{name}' hit have an average spread of {avg_spread:.1f}, "
                    f"{abs(deviation):.0f}% {direction} than normal. This suggests {implication} precede this kind of hit."
                ),
                "strength": "Moderate",
                "factor": key,
                "metric": "spread",
                "average": avg_spread,
                "deviation": deviation,
            })

        avg_sum = float(np.mean([wp["prev_draw_sum"] for wp in matched]))
        deviation = (avg_sum - global_sum) / global_sum * 100 if global_sum > 0 else 0.0
        if abs(deviation) > tuning.sum_indicator_pct:
            direction = "higher" if deviation > 0 else "lower"
            indicators.append({
                "title": f"Sum before a '{name}' number hits",
                "insight": f"Draws before a '{name}' hit have an average sum of {avg_sum:.0f}, {abs(deviation):.1f}% {direction} than normal.",
                "strength": "Weak",
                "factor": key,
                "metric": "sum",
                "average": avg_sum,
                "deviation": deviation,
            })
    return indicators


def create_success_analysis(winner_profiles: Sequence[Dict[str, Any]], draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    if not winner_profiles:
        return empty_success_analysis()
    return {
        "hit_profile": calculate_hit_profile(winner_profiles),
        "pre_draw_indicators": _indicators(winner_profiles, draws, tuning),
        "total_analyzed_hits": len(winner_profiles),
        "winner_profiles": list(winner_profiles),
    }


def find_indicator(success_analysis: Optional[Dict[str, Any]], factor: str, metric: str) -> Optional[Dict[str, Any]]:
    if not success_analysis:
        return None
    for ind in success_analysis["pre_draw_indicators"]:
        if ind["factor"] == factor and ind["metric"] == metric:
            return ind
    return None
