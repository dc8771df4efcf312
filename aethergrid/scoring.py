from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from aethergrid import schedule
from aethergrid.config import DEFAULT_TUNING, MAIN_MAX, STAR_MAX, WEIGHT_KEYS, Tuning, zone_name
from aethergrid.draws import Draw, draw_spread
from aethergrid.patterns import frequency_map, hot_numbers, hot_zone_bounds, in_zone
from aethergrid.popularity import contextual_boosts, popularity_scores
from aethergrid.regime import BALANCED, HOT_STREAK, VOLATILE
from aethergrid.seasonal import month_name
from aethergrid.success import find_indicator

# breakdown key -> phrase used in the one-line justification
_FACTOR_TEXT = [
    ("frequency", "strong frequency"),
    ("dormancy", "highly overdue"),
    ("zone", "in a hot zone"),
    ("companion", "strong companion links"),
    ("seasonal", "strong seasonal performance"),
    ("post_dormancy", "a recent dormancy break"),
    ("momentum", "strong momentum"),
    ("cluster_strength", "an active cluster"),
    ("stability", "high pattern stability"),
]

COMBOS = ("Hot+Overdue", "Hot+Momentum", "HotZone+Cluster")


def main_justification(breakdown: Dict[str, float], score: float, tuning: Tuning = DEFAULT_TUNING) -> str:
    if score <= 0:
        return "Low overall score due to negative factors like being a cold number or in a cold zone."
    positive = [(breakdown.get(key, 0.0), text) for key, text in _FACTOR_TEXT if breakdown.get(key, 0.0) > tuning.justification_threshold]
    positive.sort(key=lambda p: p[0], reverse=True)
    if not positive:
        return "A balanced number with no single strong positive factor."
    if len(positive) == 1:
        return f"Primarily ranked high due to {positive[0][1]}."
    return f"Strong score from a combination of {positive[0][1]} and {positive[1][1]}."


def star_justification(breakdown: Dict[str, float], score: float) -> str:
    if score <= 0:
        return "Low score due to low frequency or not being overdue."
    positive = [(v, text) for v, text in ((breakdown["frequency"], "strong momentum"), (breakdown["dormancy"], "highly overdue")) if v > 0]
    positive.sort(key=lambda p: p[0], reverse=True)
    if len(positive) == 2 and abs(positive[0][0] - positive[1][0]) < 10:
        return "Excellent balance of being both hot and overdue."
    if positive:
        return f"Ranked high for having {positive[0][1]}."
    return "A balanced number with moderate scores across factors."


def number_profiles(analysis: Dict[str, Any], tuning: Tuning = DEFAULT_TUNING) -> Dict[int, Dict[str, bool]]:
    """Current combo-relevant factor flags for every main number."""
    pattern = analysis["pattern_analysis"]
    hot = set(hot_numbers(analysis, tuning))
    overdue = {d["number"] for d in pattern["dormancy_analysis"]["main_number_dormancy"] if d["is_overdue"]}
    zone = hot_zone_bounds(analysis)
    trending = {m["number"] for m in pattern["momentum_analysis"] if m["momentum_score"] > 0}
    clustered = {c["number"] for c in pattern["cluster_strength_analysis"] if c["cluster_score"] > 0}
    return {
        n: {
            "is_hot": n in hot,
            "is_overdue": n in overdue,
            "is_in_hot_zone": in_zone(n, zone),
            "has_momentum": n in trending,
            "has_cluster_strength": n in clustered,
        }
        for n in range(1, MAIN_MAX + 1)
    }


def _combo_hits(profile: Dict[str, bool]) -> Dict[str, bool]:
    return {
        "Hot+Overdue": profile["is_hot"] and profile["is_overdue"],
        "Hot+Momentum": profile["is_hot"] and profile["has_momentum"],
        "HotZone+Cluster": profile["is_in_hot_zone"] and profile["has_cluster_strength"],
    }


def combo_success_rates(winner_profiles: Sequence[Dict[str, Any]]) -> Dict[str, float]:
    counts = {name: 0 for name in COMBOS}
    for wp in winner_profiles:
        for name, hit in _combo_hits(wp["profile"]).items():
            if hit:
                counts[name] += 1
    total = len(winner_profiles)
    return {name: (c / total if total else 0.0) for name, c in counts.items()}


def combo_bonuses(
    profiles: Dict[int, Dict[str, bool]],
    historical_success: Optional[Dict[str, Any]],
    tuning: Tuning = DEFAULT_TUNING,
) -> Dict[int, Dict[str, Any]]:
    if not historical_success or len(historical_success["winner_profiles"]) <= tuning.combo_min_profiles:
        return {}
    rates = combo_success_rates(historical_success["winner_profiles"])
    bonuses = {}
    for n, profile in profiles.items():
        score, reasons = 0.0, []
        for name, hit in _combo_hits(profile).items():
            if hit and rates[name] > tuning.combo_min_rate:
                multiplier = tuning.combo_zone_cluster_multiplier if name == "HotZone+Cluster" else tuning.combo_multiplier
                score += rates[name] * multiplier
                reasons.append(name)
        bonuses[n] = {"score": score, "reasons": reasons}
    return bonuses


def timing_bonus(draws: Sequence[Draw], historical_success: Optional[Dict[str, Any]], tuning: Tuning = DEFAULT_TUNING) -> float:
    """Extra dormancy credit when the last draw is wider than what usually precedes an overdue hit."""
    if not draws or not historical_success or len(historical_success["winner_profiles"]) <= tuning.combo_min_profiles:
        return 0.0
    indicator = find_indicator(historical_success, "overdue", "spread")
    if indicator is None:
        return 0.0
    return tuning.timing_bonus if draw_spread(draws[-1]) > indicator["average"] else 0.0


def popularity_weight(context: str, regime: str, tuning: Tuning = DEFAULT_TUNING):
    if context != schedule.NONE:
        return tuning.popularity_weight_holiday, f" Holiday period detected: anti-popularity weight raised to {tuning.popularity_weight_holiday:.0%}."
    if regime in (HOT_STREAK, VOLATILE):
        return tuning.popularity_weight_trend, f" Trend/volatile regime detected: anti-popularity weight raised to {tuning.popularity_weight_trend:.0%}."
    return tuning.popularity_weight_normal, " Using standard anti-popularity weighting."


def _rank(scores: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # sorted() is stable, so ties keep 1..N order
    ordered = sorted(scores, key=lambda s: s["score"], reverse=True)
    for i, item in enumerate(ordered):
        item["rank"] = i + 1
    return ordered


def _main_factor_scores(
    analysis: Dict[str, Any],
    seasonal: Dict[str, Any],
    meta: Optional[Dict[str, Any]],
    score_date: date,
    bonus: float,
    tuning: Tuning,
) -> Dict[str, Dict[int, float]]:
    pattern = analysis["pattern_analysis"]
    freqs = frequency_map(analysis)
    total_weight = sum(freqs.values())
    avg_freq = total_weight / MAIN_MAX

    frequency = {n: ((freqs.get(n, 0.0) - avg_freq) / avg_freq * 100 if avg_freq > 0 else 0.0) for n in range(1, MAIN_MAX + 1)}

    expected_zone = total_weight / 5
    zone_dev = {
        z["name"]: ((z["value"] - expected_zone) / expected_zone * 100 if expected_zone > 0 else 0.0)
        for z in pattern["zone_analysis"]["zone_distribution"]
    }
    zone = {n: zone_dev.get(zone_name(n), 0.0) for n in range(1, MAIN_MAX + 1)}

    dormancy = {}
    for d in pattern["dormancy_analysis"]["main_number_dormancy"]:
        ratio = d["current_dormancy"] / d["average_dormancy"] if d["average_dormancy"] > 0 else 0.0
        score = ratio ** tuning.dormancy_exponent * 10
        if d["is_overdue"] and bonus > 0:
            score += bonus
        dormancy[d["number"]] = score

    strong_companions: Dict[int, float] = {}
    companion_data = pattern["companion_analysis"]["companion_data"]
    for h in hot_numbers(analysis, tuning):
        for comp in companion_data.get(h, []):
            strong_companions[comp["number"]] = strong_companions.get(comp["number"], 0.0) + comp["count"]
    max_companion = max(list(strong_companions.values()) + [1])
    companion = {n: strong_companions.get(n, 0.0) / max_companion * 50 for n in range(1, MAIN_MAX + 1)}

    seasonal_scores: Dict[int, float] = {}
    monthly = seasonal["monthly"].get(month_name(score_date), [])
    if monthly:
        top = monthly[0]["count"]
        for item in monthly:
            seasonal_scores[item["number"]] = item["count"] / top * 50 if top > 0 else 0.0

    momentum = {m["number"]: m["momentum_score"] for m in pattern["momentum_analysis"]}

    clusters = pattern["cluster_strength_analysis"]
    max_cluster = max([c["cluster_score"] for c in clusters] + [1])
    cluster = {c["number"]: c["cluster_score"] / max_cluster * 50 for c in clusters}

    stability: Dict[int, float] = {}
    if meta and meta.get("hot_cold_transitions"):
        transitions = {t["number"]: t["transitions"] for t in meta["hot_cold_transitions"]}
        max_transitions = max(list(transitions.values()) + [1])
        stability = {n: (1 - transitions.get(n, 0) / max_transitions) * 50 for n in range(1, MAIN_MAX + 1)}

    return {
        "frequency": frequency,
        "dormancy": dormancy,
        "zone": zone,
        "companion": companion,
        "seasonal": seasonal_scores,
        "momentum": momentum,
        "cluster_strength": cluster,
        "stability": stability,
    }


def score_stars(analysis: Dict[str, Any], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    counts = {f["number"]: f["count"] for f in analysis["star_number_frequencies"]}
    avg = sum(counts.values()) / STAR_MAX
    dormancy = {}
    for d in analysis["pattern_analysis"]["dormancy_analysis"]["star_number_dormancy"]:
        ratio = d["current_dormancy"] / d["average_dormancy"] if d["average_dormancy"] > 0 else 0.0
        dormancy[d["number"]] = ratio * 10

    scores = []
    for n in range(1, STAR_MAX + 1):
        breakdown = {
            "frequency": (counts.get(n, 0.0) - avg) / avg * 100 if avg > 0 else 0.0,
            "dormancy": dormancy.get(n, 0.0),
        }
        total = breakdown["frequency"] * tuning.star_frequency_weight + breakdown["dormancy"] * tuning.star_dormancy_weight
        scores.append({"number": n, "score": total, "breakdown": breakdown, "justification": star_justification(breakdown, total)})
    return _rank(scores)


def calculate_aether_scores(
    analysis: Dict[str, Any],
    draws: Sequence[Draw],
    seasonal: Dict[str, Any],
    meta: Optional[Dict[str, Any]],
    next_draw_date: Optional[date],
    weights: Dict[str, float],
    historical_success: Optional[Dict[str, Any]] = None,
    regime: str = BALANCED,
    tuning: Tuning = DEFAULT_TUNING,
) -> Dict[str, Any]:
    """
    Rank every main and star number by its composite Aether Score.

    The score date is the predicted next draw, falling back to the last draw and then to
    today; it drives the calendar context and the seasonal lookup.
    """
    if next_draw_date is not None:
        score_date = next_draw_date
    elif draws:
        score_date = draws[-1].date
    else:
        score_date = date.today()

    context, easter = schedule.get_date_context(score_date)
    calendar = contextual_boosts(context, easter)
    insight = "Recency-bias model active, using success-pattern templates and the predicted next draw date for forward-looking analysis."
    if calendar["justification"]:
        insight += f" {calendar['justification']}"
    pop_weight, pop_insight = popularity_weight(context, regime, tuning)
    insight += pop_insight

    popularity = popularity_scores()
    combos = combo_bonuses(number_profiles(analysis, tuning), historical_success, tuning)
    factors = _main_factor_scores(analysis, seasonal, meta, score_date, timing_bonus(draws, historical_success, tuning), tuning)
    dormancy_info = {d["number"]: d for d in analysis["pattern_analysis"]["dormancy_analysis"]["main_number_dormancy"]}

    main_scores = []
    for n in range(1, MAIN_MAX + 1):
        post_dormancy = 0.0
        info = dormancy_info.get(n)
        if info and info["current_dormancy"] < tuning.post_dormancy_max_current and info["average_dormancy"] > tuning.post_dormancy_min_average:
            post_dormancy = tuning.post_dormancy_numerator / (info["current_dormancy"] + 1)

        boost = calendar["boosts"].get(n, {"score": 0.0, "reason": ""})
        penalty = popularity.get(n, {"score": 0.0})["score"] / 100 * tuning.popularity_scale * pop_weight
        combo = combos.get(n, {"score": 0.0, "reasons": []})

        breakdown = {key: factors[key].get(n, 0.0) for key in WEIGHT_KEYS}
        breakdown["post_dormancy"] = post_dormancy
        breakdown["combo"] = combo["score"]
        breakdown["contextual"] = boost["score"]
        breakdown["popularity"] = -penalty

        total = sum(breakdown[key] * weights[key] for key in WEIGHT_KEYS)
        total += post_dormancy + combo["score"] + boost["score"] - penalty
        main_scores.append({
            "number": n,
            "score": total,
            "breakdown": breakdown,
            "justification": main_justification(breakdown, total, tuning),
            "combo_reasons": combo["reasons"],
        })

    return {
        "main_number_scores": _rank(main_scores),
        "star_number_scores": score_stars(analysis, tuning),
        "insight": insight,
        "popularity_weight": pop_weight,
        "context": context,
    }


def score_lookup(scores: Sequence[Dict[str, Any]]) -> Dict[int, float]:
    return {s["number"]: s["score"] for s in scores}
