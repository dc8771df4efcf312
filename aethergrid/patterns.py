from __future__ import annotations

from math import comb
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from aethergrid.config import (
    DEFAULT_TUNING,
    MAIN_COUNT,
    MAIN_MAX,
    MAIN_MIN,
    MAIN_POOL_EVEN,
    MAIN_POOL_ODD,
    STAR_COUNT,
    STAR_MAX,
    STAR_MIN,
    STAR_POOL_EVEN,
    STAR_POOL_ODD,
    ZONES,
    Tuning,
)
from aethergrid.draws import Draw
from aethergrid.popularity import analyze_anti_popularity, has_neighbours

# Recency-weighted pattern statistics over a slice of draws (oldest first).
# Every function here is pure: same slice in, same dict out.


def recency_weight(index: int, total: int, tuning: Tuning = DEFAULT_TUNING) -> float:
    """Weight of draw `index` in a slice of `total` draws; the newest draw weighs exactly 1."""
    if total <= 1:
        return 1.0
    return float(np.exp((index - (total - 1)) / (total * tuning.recency_decay)))


def recency_weights(total: int, tuning: Tuning = DEFAULT_TUNING) -> List[float]:
    if total <= 1:
        return [1.0] * total
    idx = np.arange(total, dtype=float)
    return np.exp((idx - (total - 1)) / (total * tuning.recency_decay)).tolist()


def _weighted_average(values: Sequence[float], weights: Sequence[float]) -> float:
    total_weight = sum(weights)
    if total_weight <= 0:
        return 0.0
    return sum(v * w for v, w in zip(values, weights)) / total_weight


def _distribution(values: Sequence[int], weights: Sequence[float]) -> List[Dict[str, Any]]:
    acc: Dict[int, float] = {}
    for v, w in zip(values, weights):
        acc[v] = acc.get(v, 0.0) + w
    return [{"name": k, "value": acc[k]} for k in sorted(acc)]


def _most_common(distribution: List[Dict[str, Any]]) -> str:
    if not distribution:
        return "N/A"
    best = sorted(distribution, key=lambda x: x["value"], reverse=True)[0]
    return f"{best['name']}"


def analyze_zones(draws: Sequence[Draw], weights: Sequence[float]) -> Dict[str, Any]:
    totals = {z: 0.0 for z in ZONES}
    concentrated = 0
    for draw, w in zip(draws, weights):
        per_draw = {}
        for n in draw.main:
            if MAIN_MIN <= n <= MAIN_MAX:
                z = ZONES[(n - 1) // 10]
                totals[z] += w
                per_draw[z] = per_draw.get(z, 0) + 1
        if any(c >= 3 for c in per_draw.values()):
            concentrated += 1
    distribution = [{"name": z, "value": v} for z, v in totals.items()]
    ordered = sorted(distribution, key=lambda x: x["value"])
    return {
        "zone_distribution": distribution,
        "hot_zone": ordered[-1]["name"],
        "cold_zone": ordered[0]["name"],
        "three_or_more_in_zone_pct": concentrated / len(draws) * 100 if draws else 0.0,
    }


def analyze_spread(draws: Sequence[Draw], weights: Sequence[float]) -> Dict[str, Any]:
    spreads, spread_weights = [], []
    for draw, w in zip(draws, weights):
        valid = [n for n in draw.main if MAIN_MIN <= n <= MAIN_MAX]
        if len(valid) < 2:
            continue
        spreads.append(max(valid) - min(valid))
        spread_weights.append(w)
    distribution = _distribution(spreads, spread_weights)
    return {
        "spread_distribution": distribution,
        "average_spread": _weighted_average(spreads, spread_weights),
        "most_common_spread": _most_common(distribution),
    }


def analyze_companions(draws: Sequence[Draw], weights: Sequence[float], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    pairs: Dict[int, Dict[int, float]] = {n: {} for n in range(MAIN_MIN, MAIN_MAX + 1)}
    for draw, w in zip(draws, weights):
        nums = [n for n in draw.main if MAIN_MIN <= n <= MAIN_MAX]
        for i, a in enumerate(nums):
            for b in nums[i + 1:]:
                pairs[a][b] = pairs[a].get(b, 0.0) + w
                pairs[b][a] = pairs[b].get(a, 0.0) + w
    companion_data = {}
    for n, companions in pairs.items():
        ranked = sorted(companions.items(), key=lambda kv: kv[1], reverse=True)[: tuning.companion_top]
        companion_data[n] = [{"number": m, "count": c} for m, c in ranked]
    return {"companion_data": companion_data}


def analyze_star_sum(draws: Sequence[Draw], weights: Sequence[float]) -> Dict[str, Any]:
    sums, sum_weights = [], []
    for draw, w in zip(draws, weights):
        valid = [n for n in draw.stars if STAR_MIN <= n <= STAR_MAX]
        if len(valid) != STAR_COUNT:
            continue
        sums.append(valid[0] + valid[1])
        sum_weights.append(w)
    distribution = _distribution(sums, sum_weights)
    return {"sum_distribution": distribution, "most_common_sum": _most_common(distribution)}


def analyze_star_even_odd(draws: Sequence[Draw], weights: Sequence[float]) -> Dict[str, Any]:
    even_even = odd_odd = even_odd = total = 0.0
    for draw, w in zip(draws, weights):
        valid = [n for n in draw.stars if STAR_MIN <= n <= STAR_MAX]
        if len(valid) != STAR_COUNT:
            continue
        total += w
        first_even, second_even = valid[0] % 2 == 0, valid[1] % 2 == 0
        if first_even and second_even:
            even_even += w
        elif not first_even and not second_even:
            odd_odd += w
        else:
            even_odd += w
    total = total if total > 0 else 1.0
    combos = comb(STAR_MAX, STAR_COUNT)
    return {
        "even_odd_distribution": [
            {"combination": "Even/Even", "percentage": even_even / total * 100, "theoretical": comb(STAR_POOL_EVEN, 2) / combos},
            {"combination": "Odd/Odd", "percentage": odd_odd / total * 100, "theoretical": comb(STAR_POOL_ODD, 2) / combos},
            {"combination": "Even/Odd", "percentage": even_odd / total * 100, "theoretical": STAR_POOL_EVEN * STAR_POOL_ODD / combos},
        ]
    }


def analyze_repetition(draws: Sequence[Draw], weights: Sequence[float]) -> Dict[str, float]:
    single = double = star = total = 0.0
    for i in range(1, len(draws)):
        w = weights[i]
        total += w
        shared = len(set(draws[i].main) & set(draws[i - 1].main))
        if shared == 1:
            single += w
        if shared >= 2:
            double += w
        if set(draws[i].stars) & set(draws[i - 1].stars):
            star += w
    total = total if total > 0 else 1.0
    return {
        "main_repeat_rate": single / total * 100,
        "double_main_repeat_rate": double / total * 100,
        "star_repeat_rate": star / total * 100,
    }


def _dormancy_for_pool(draws: Sequence[Draw], weights: Sequence[float], max_num: int, stars: bool) -> List[Dict[str, Any]]:
    last_seen: Dict[int, int] = {}
    gaps: Dict[int, List[float]] = {n: [] for n in range(1, max_num + 1)}
    gap_weights: Dict[int, List[float]] = {n: [] for n in range(1, max_num + 1)}
    for index, draw in enumerate(draws):
        for n in (draw.stars if stars else draw.main):
            if n < 1 or n > max_num:
                continue
            if n in last_seen:
                gaps[n].append(index - last_seen[n])
                gap_weights[n].append(weights[index])
            last_seen[n] = index
    out = []
    for n in range(1, max_num + 1):
        current = len(draws) - 1 - last_seen[n] if n in last_seen else len(draws)
        average = _weighted_average(gaps[n], gap_weights[n])
        out.append({
            "number": n,
            "current_dormancy": current,
            "average_dormancy": average,
            # a number with no recorded gap is never overdue
            "is_overdue": average > 0 and current > average,
        })
    return out


def analyze_dormancy(draws: Sequence[Draw], weights: Sequence[float]) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "main_number_dormancy": _dormancy_for_pool(draws, weights, MAIN_MAX, stars=False),
        "star_number_dormancy": _dormancy_for_pool(draws, weights, STAR_MAX, stars=True),
    }


def analyze_deltas(draws: Sequence[Draw], weights: Sequence[float]) -> Dict[str, Any]:
    deltas, delta_weights = [], []
    for draw, w in zip(draws, weights):
        s = sorted(draw.main)
        for a, b in zip(s, s[1:]):
            deltas.append(b - a)
            delta_weights.append(w)
    if not deltas:
        return {"average_delta": 0.0, "delta_distribution": []}
    return {
        "average_delta": _weighted_average(deltas, delta_weights),
        "delta_distribution": _distribution(deltas, delta_weights),
    }


def analyze_momentum(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    """Recent-vs-historical frequency ratio per main number (unweighted counts)."""
    window = tuning.momentum_window
    if len(draws) < window * 2:
        return []
    recent, historical = draws[-window:], draws[:-window]
    recent_counts = np.zeros(MAIN_MAX + 1)
    historical_counts = np.zeros(MAIN_MAX + 1)
    for d in recent:
        recent_counts[list(d.main)] += 1
    for d in historical:
        historical_counts[list(d.main)] += 1
    out = []
    for n in range(1, MAIN_MAX + 1):
        r = recent_counts[n] / len(recent)
        h = historical_counts[n] / len(historical)
        score = (r / h - 1) * 100 if h > 0 else r * 100
        out.append({"number": n, "momentum_score": float(score)})
    return out


def analyze_cluster_strength(draws: Sequence[Draw], companion_analysis: Dict[str, Any], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    """How recently each number's strongest companions were drawn."""
    window = tuning.cluster_window
    if len(draws) < window:
        return []
    last_seen: Dict[int, int] = {}
    for index, d in enumerate(draws):
        for n in d.main:
            last_seen[n] = index
    latest = len(draws) - 1
    out = []
    for n in range(1, MAIN_MAX + 1):
        companions = companion_analysis["companion_data"].get(n, [])
        score = 0
        for comp in companions[: tuning.cluster_top_companions]:
            seen = last_seen.get(comp["number"])
            if seen is not None and latest - seen < window:
                score += window - (latest - seen)
        out.append({"number": n, "cluster_score": score})
    return out


def empty_analysis(total_rows: Optional[int] = None) -> Dict[str, Any]:
    return {
        "total_rows": total_rows or 0,
        "valid_draws": 0,
        "top_patterns": [],
        "pattern_analysis": {
            "zone_analysis": {"zone_distribution": [], "hot_zone": "N/A", "cold_zone": "N/A", "three_or_more_in_zone_pct": 0.0},
            "spread_analysis": {"spread_distribution": [], "average_spread": 0.0, "most_common_spread": "N/A"},
            "companion_analysis": {"companion_data": {}},
            "star_sum_analysis": {"sum_distribution": [], "most_common_sum": "N/A"},
            "star_even_odd_analysis": {"even_odd_distribution": []},
            "repetition_analysis": {"main_repeat_rate": 0.0, "double_main_repeat_rate": 0.0, "star_repeat_rate": 0.0},
            "dormancy_analysis": {"main_number_dormancy": [], "star_number_dormancy": []},
            "delta_analysis": {"average_delta": 0.0, "delta_distribution": []},
            "momentum_analysis": [],
            "cluster_strength_analysis": [],
        },
        "main_number_frequencies": [],
        "star_number_frequencies": [],
        "anti_popularity_analysis": {"human_bias_analysis": [], "combination_bias_analysis": []},
    }


def _top_patterns(draws: Sequence[Draw], main_counts: Dict[int, float], star_counts: Dict[int, float], tuning: Tuning) -> List[Dict[str, Any]]:
    n_draws = len(draws)
    findings = []

    main_expected = sum(main_counts.values()) / MAIN_MAX
    star_expected = sum(star_counts.values()) / STAR_MAX

    main_list = sorted(((n, main_counts.get(n, 0.0)) for n in range(1, MAIN_MAX + 1)), key=lambda x: x[1])
    coldest, warmest = main_list[0], main_list[-1]
    findings.append({
        "title": f"Coldest main number (1-{MAIN_MAX})",
        "detail": f"Number {coldest[0]} has a weighted score of {coldest[1]:.1f} where {main_expected:.1f} was expected.",
        "deviation": (coldest[1] - main_expected) / main_expected * 100,
    })
    findings.append({
        "title": f"Warmest main number (1-{MAIN_MAX})",
        "detail": f"Number {warmest[0]} has a weighted score of {warmest[1]:.1f} where {main_expected:.1f} was expected.",
        "deviation": (warmest[1] - main_expected) / main_expected * 100,
    })

    star_list = sorted(((n, star_counts.get(n, 0.0)) for n in range(1, STAR_MAX + 1)), key=lambda x: x[1])
    coldest, warmest = star_list[0], star_list[-1]
    findings.append({
        "title": f"Coldest star number (1-{STAR_MAX})",
        "detail": f"Number {coldest[0]} has a weighted score of {coldest[1]:.1f}; the theoretical expectation was {star_expected:.1f}.",
        "deviation": (coldest[1] - star_expected) / star_expected * 100,
    })
    findings.append({
        "title": f"Warmest star number (1-{STAR_MAX})",
        "detail": f"Number {warmest[0]} has a weighted score of {warmest[1]:.1f} where {star_expected:.1f} was expected.",
        "deviation": (warmest[1] - star_expected) / star_expected * 100,
    })

    odd_counts = [0] * (MAIN_COUNT + 1)
    for d in draws:
        odd_counts[sum(1 for n in d.main if n % 2 != 0)] += 1
    total_combos = comb(MAIN_MAX, MAIN_COUNT)
    splits = []
    for odd in range(MAIN_COUNT + 1):
        even = MAIN_COUNT - odd
        expected = comb(MAIN_POOL_ODD, odd) * comb(MAIN_POOL_EVEN, even) / total_combos * n_draws
        observed = odd_counts[odd]
        splits.append({
            "odd": odd,
            "observed": observed,
            "expected": expected,
            "deviation": (observed - expected) / expected * 100 if expected > 0 else 0.0,
        })
    splits.sort(key=lambda s: s["deviation"], reverse=True)
    top = splits[0]
    findings.append({
        "title": "Most over-represented odd/even split",
        "detail": (
            f"The split \"{top['odd']} odd, {MAIN_COUNT - top['odd']} even\" occurred in "
            f"{top['observed'] / n_draws * 100:.1f}% of draws. The theoretical expectation is only "
            f"{top['expected'] / n_draws * 100:.1f}%."
        ),
        "deviation": top["deviation"],
        "odd_count": top["odd"],
    })

    sums = np.array([sum(d.main) for d in draws], dtype=float)
    mean, std = float(sums.mean()), float(sums.std())
    lower, upper = mean - std, mean + std
    outlier_pct = float(np.sum((sums < lower) | (sums > upper))) / n_draws * 100
    expected_pct = tuning.sum_outlier_expected_pct
    findings.append({
        "title": "Unusual high/low sum frequency",
        "detail": (
            f"The main-number sum fell outside the likely range ({lower:.0f}-{upper:.0f}) in "
            f"{outlier_pct:.1f}% of draws. The theoretical expectation was ~{expected_pct:.1f}%."
        ),
        "deviation": (outlier_pct - expected_pct) / expected_pct * 100,
    })

    neighbour_draws = sum(1 for d in draws if has_neighbours(d.main))
    neighbour_pct = neighbour_draws / n_draws * 100
    expected_pct = tuning.neighbour_expected_pct
    findings.append({
        "title": "Deviation in neighbour-number frequency",
        "detail": f"Draws contained consecutive numbers {neighbour_draws} times ({neighbour_pct:.1f}%). The theoretical expectation is about {expected_pct:.0f}%.",
        "deviation": (neighbour_pct - expected_pct) / expected_pct * 100,
    })

    findings.sort(key=lambda f: abs(f["deviation"]), reverse=True)
    return findings[: tuning.top_pattern_count]


def analyze_data(draws: Sequence[Draw], total_rows: Optional[int] = None, tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    """
    Full statistics bundle for a slice of draws (oldest first).

    Frequencies only list numbers that occurred, in order of first appearance;
    an empty slice yields the zeroed structure from empty_analysis().
    """
    if not draws:
        return empty_analysis(total_rows)

    weights = recency_weights(len(draws), tuning)
    companions = analyze_companions(draws, weights, tuning)
    pattern_analysis = {
        "zone_analysis": analyze_zones(draws, weights),
        "spread_analysis": analyze_spread(draws, weights),
        "companion_analysis": companions,
        "star_sum_analysis": analyze_star_sum(draws, weights),
        "star_even_odd_analysis": analyze_star_even_odd(draws, weights),
        "repetition_analysis": analyze_repetition(draws, weights),
        "dormancy_analysis": analyze_dormancy(draws, weights),
        "delta_analysis": analyze_deltas(draws, weights),
        "momentum_analysis": analyze_momentum(draws, tuning),
        "cluster_strength_analysis": analyze_cluster_strength(draws, companions, tuning),
    }

    main_counts: Dict[int, float] = {}
    star_counts: Dict[int, float] = {}
    for d, w in zip(draws, weights):
        for n in d.stars:
            star_counts[n] = star_counts.get(n, 0.0) + w
        for n in d.main:
            main_counts[n] = main_counts.get(n, 0.0) + w

    return {
        "total_rows": total_rows if total_rows is not None else len(draws),
        "valid_draws": len(draws),
        "top_patterns": _top_patterns(draws, main_counts, star_counts, tuning),
        "pattern_analysis": pattern_analysis,
        "main_number_frequencies": [{"number": n, "count": c} for n, c in main_counts.items()],
        "star_number_frequencies": [{"number": n, "count": c} for n, c in star_counts.items()],
        "anti_popularity_analysis": analyze_anti_popularity(draws, tuning),
    }


# Helpers shared by the score engine, the backtester and the insight analyzers.

def frequency_map(analysis: Dict[str, Any]) -> Dict[int, float]:
    return {f["number"]: f["count"] for f in analysis["main_number_frequencies"]}


def hot_numbers(analysis: Dict[str, Any], tuning: Tuning = DEFAULT_TUNING) -> List[int]:
    """Upper third of the observed main numbers by weighted frequency."""
    ordered = sorted(analysis["main_number_frequencies"], key=lambda f: f["count"])
    return [f["number"] for f in ordered[int(len(ordered) * tuning.hot_fraction):]]


def cold_numbers(analysis: Dict[str, Any], tuning: Tuning = DEFAULT_TUNING) -> List[int]:
    ordered = sorted(analysis["main_number_frequencies"], key=lambda f: f["count"])
    return [f["number"] for f in ordered[: int(len(ordered) * tuning.cold_fraction)]]


def overdue_numbers(analysis: Dict[str, Any]) -> List[int]:
    return [d["number"] for d in analysis["pattern_analysis"]["dormancy_analysis"]["main_number_dormancy"] if d["is_overdue"]]


def hot_zone_bounds(analysis: Dict[str, Any]):
    """(low, high) of the hot zone; (None, None) when there is no data."""
    hot_zone = analysis["pattern_analysis"]["zone_analysis"]["hot_zone"]
    if "-" not in hot_zone:
        return None, None
    lo, hi = hot_zone.split("-")
    return int(lo), int(hi)


def in_zone(n: int, bounds) -> bool:
    lo, hi = bounds
    return lo is not None and lo <= n <= hi
