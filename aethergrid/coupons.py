from __future__ import annotations

import random
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from aethergrid.config import DEFAULT_TUNING, MAIN_COUNT, STAR_COUNT, Tuning
from aethergrid.regime import VOLATILE
from aethergrid.scoring import score_lookup


def iter_combinations(pool: Sequence[int], k: int) -> Iterator[Tuple[int, ...]]:
    """
    All k-subsets of `pool` in lexicographic index order.

    Walks an index array instead of recursing, so memory stays O(k) for any pool size.
    """
    n = len(pool)
    if k <= 0 or k > n:
        return
    idx = list(range(k))
    while True:
        yield tuple(pool[i] for i in idx)
        # rightmost index that can still move forward
        pos = k - 1
        while pos >= 0 and idx[pos] == pos + n - k:
            pos -= 1
        if pos < 0:
            return
        idx[pos] += 1
        for j in range(pos + 1, k):
            idx[j] = idx[j - 1] + 1


def coupon_key(main: Sequence[int], stars: Sequence[int]) -> str:
    return ",".join(str(n) for n in sorted(main)) + "|" + ",".join(str(n) for n in sorted(stars))


def _main_structure_bonus(combo: Sequence[int], average_delta: float, tuning: Tuning):
    bonus = 0.0
    parts = []
    odd = sum(1 for n in combo if n % 2 != 0)
    if odd in (2, 3):
        bonus += tuning.odd_bonus
        parts.append("ideal 3 odd/2 even pattern" if odd == 3 else "ideal 2 odd/3 even pattern")
    total = sum(combo)
    if tuning.sum_range[0] <= total <= tuning.sum_range[1]:
        bonus += tuning.sum_bonus
        parts.append("ideal sum")
    spread = max(combo) - min(combo)
    if tuning.spread_range[0] <= spread <= tuning.spread_range[1]:
        bonus += tuning.spread_bonus
        parts.append("good spread")
    if len({(n - 1) // 10 for n in combo}) >= tuning.min_zones:
        bonus += tuning.zone_bonus
        parts.append("good zone coverage")
    if average_delta > 0:
        ordered = sorted(combo)
        deltas = [b - a for a, b in zip(ordered, ordered[1:])]
        if abs(sum(deltas) / len(deltas) - average_delta) < tuning.delta_tolerance:
            bonus += tuning.delta_bonus
            parts.append("realistic internal spacing")
    return bonus, parts


def rank_main_combinations(
    main_scores: Sequence[Dict[str, Any]],
    average_delta: float,
    tuning: Tuning = DEFAULT_TUNING,
) -> List[Dict[str, Any]]:
    """Score every 5-subset of the top main pool and keep the best coupon_count."""
    top = list(main_scores[: tuning.coupon_pool])
    if len(top) < MAIN_COUNT:
        return []
    lookup = score_lookup(main_scores)
    average_top = sum(s["score"] for s in top) / len(top)

    scored = []
    for combo in iter_combinations([s["number"] for s in top], MAIN_COUNT):
        aether = sum(lookup.get(n, 0.0) for n in combo)
        bonus, parts = _main_structure_bonus(combo, average_delta, tuning)
        header = "Very high Aether Score" if aether > average_top * MAIN_COUNT * tuning.high_score_factor else "High Aether Score"
        justification = header + "."
        if parts:
            justification += f" Meets {', '.join(parts)}."
        scored.append({"main_numbers": sorted(combo), "score": aether + bonus, "justification": justification})
    scored.sort(key=lambda c: c["score"], reverse=True)
    return scored[: tuning.coupon_count]


def rank_star_pairs(star_scores: Sequence[Dict[str, Any]], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    if len(star_scores) < STAR_COUNT:
        return []
    lookup = score_lookup(star_scores)
    scored = []
    for pair in iter_combinations([s["number"] for s in star_scores], STAR_COUNT):
        bonus = 0.0
        if tuning.star_sum_range[0] <= sum(pair) <= tuning.star_sum_range[1]:
            bonus += tuning.star_sum_bonus
        if (pair[0] % 2 == 0) != (pair[1] % 2 == 0):
            bonus += tuning.star_parity_bonus
        scored.append({"star_numbers": sorted(pair), "score": sum(lookup.get(n, 0.0) for n in pair) + bonus})
    scored.sort(key=lambda p: p["score"], reverse=True)
    return scored[: tuning.coupon_count]


def coupon_confidence(
    main_numbers: Sequence[int],
    main_scores: Sequence[Dict[str, Any]],
    regime: str,
    regime_shift: bool,
    tuning: Tuning = DEFAULT_TUNING,
) -> Dict[str, str]:
    lookup = score_lookup(main_scores)
    average = sum(lookup.get(n, 0.0) for n in main_numbers) / MAIN_COUNT
    best = main_scores[0]["score"] if main_scores else 0.0
    strength = average / best if best > 0 else 0.0
    strong_score = strength > tuning.confidence_score_strength
    anti_popular = sum(1 for n in main_numbers if n > tuning.anti_popular_threshold) >= tuning.anti_popular_min_count

    if regime_shift or regime == VOLATILE:
        return {"level": "Low", "justification": "The draw dynamics are unstable or have just shifted, which lowers forecast reliability."}
    if strong_score and anti_popular:
        return {"level": "High", "justification": "Combines an exceptionally high Aether Score with a strong anti-popularity profile."}
    if strong_score:
        return {"level": "Medium", "justification": "Based on a strong Aether Score."}
    if anti_popular:
        return {"level": "Medium", "justification": "Based on a strong anti-popularity profile."}
    return {"level": "Low", "justification": "A balanced combination without a single standout strength."}


def _fill_from_pool(
    coupons: List[Dict[str, Any]],
    main_scores: Sequence[Dict[str, Any]],
    star_scores: Sequence[Dict[str, Any]],
    rng: random.Random,
    tuning: Tuning,
) -> None:
    main_pool = [s["number"] for s in main_scores[: tuning.coupon_pool]]
    star_pool = [s["number"] for s in star_scores]
    if len(main_pool) < MAIN_COUNT or len(star_pool) < STAR_COUNT:
        return
    main_lookup, star_lookup = score_lookup(main_scores), score_lookup(star_scores)
    used = {coupon_key(c["main_numbers"], c["star_numbers"]) for c in coupons}
    attempts = 0
    while len(coupons) < tuning.coupon_count and attempts < 1000:
        attempts += 1
        main = sorted(rng.sample(main_pool, MAIN_COUNT))
        stars = sorted(rng.sample(star_pool, STAR_COUNT))
        key = coupon_key(main, stars)
        if key in used:
            continue
        used.add(key)
        coupons.append({
            "main_numbers": main,
            "star_numbers": stars,
            "score": sum(main_lookup[n] for n in main) + sum(star_lookup[n] for n in stars),
            "justification": "Random draw from the top-scored pool.",
        })


def build_intelligent_coupons(
    aether_scores: Dict[str, Any],
    pattern_analysis: Dict[str, Any],
    regime: str,
    regime_shift: bool,
    rng: Optional[random.Random] = None,
    tuning: Tuning = DEFAULT_TUNING,
) -> List[Dict[str, Any]]:
    """
    Pair the i-th best main combination with the i-th best star pair.

    When fewer than coupon_count pairs come out, the remaining slots are drawn from the
    top-scored pools with `rng`; pass a seeded random.Random for reproducible output.
    """
    main_scores = aether_scores["main_number_scores"]
    star_scores = aether_scores["star_number_scores"]
    average_delta = pattern_analysis["delta_analysis"]["average_delta"]
    mains = rank_main_combinations(main_scores, average_delta, tuning)
    stars = rank_star_pairs(star_scores, tuning)

    coupons = []
    for main, star in zip(mains, stars):
        coupons.append({
            "main_numbers": main["main_numbers"],
            "star_numbers": star["star_numbers"],
            "score": main["score"] + star["score"],
            "justification": main["justification"],
        })
    if len(coupons) < tuning.coupon_count:
        _fill_from_pool(coupons, main_scores, star_scores, rng or random.Random(), tuning)

    unique: Dict[str, Dict[str, Any]] = {}
    for c in coupons:
        unique.setdefault(coupon_key(c["main_numbers"], c["star_numbers"]), c)
    ranked = sorted(unique.values(), key=lambda c: c["score"], reverse=True)[: tuning.coupon_count]
    for i, c in enumerate(ranked):
        c["confidence"] = coupon_confidence(c["main_numbers"], main_scores, regime, regime_shift, tuning)
        c["rank"] = i + 1
    return ranked
