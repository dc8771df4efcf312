from __future__ import annotations

import random
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from aethergrid.config import BIRTHDAY_MAX, DEFAULT_TUNING, MAIN_COUNT, MAIN_MAX, STAR_COUNT, STAR_MAX, Tuning
from aethergrid.coupons import coupon_key, iter_combinations
from aethergrid.schedule import get_popular_numbers

# Rule-based coupon strategies that sit next to the Aether Score coupons.
# Every random choice goes through an injected random.Random.

def _coupon(rank: int, main: Sequence[int], stars: Sequence[int], insight: str) -> Dict[str, Any]:
    return {"rank": rank, "main_numbers": sorted(main), "star_numbers": sorted(stars), "insight": insight}


def _empty() -> Dict[str, Any]:
    return {"title": "", "description": "", "coupons": []}


def _by_count(frequencies: Sequence[Dict[str, Any]], reverse: bool) -> List[int]:
    return [f["number"] for f in sorted(frequencies, key=lambda f: f["count"], reverse=reverse)]


def _odd_split_bonus(analysis: Dict[str, Any]) -> Optional[int]:
    for p in analysis["top_patterns"]:
        if "odd_count" in p and p["deviation"] > 0:
            return p["odd_count"]
    return None


def trend_strategy(analysis: Dict[str, Any], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    hot_main = _by_count(analysis["main_number_frequencies"], True)[:tuning.strategy_main_pool]
    hot_stars = _by_count(analysis["star_number_frequencies"], True)[:tuning.strategy_star_pool]
    if len(hot_main) < MAIN_COUNT or len(hot_stars) < STAR_COUNT:
        return _empty()

    freqs = {f["number"]: f["count"] for f in analysis["main_number_frequencies"]}
    bonus_odd = _odd_split_bonus(analysis)
    candidates = []
    for combo in iter_combinations(hot_main, MAIN_COUNT):
        score = sum(freqs.get(n, 0.0) for n in combo)
        if bonus_odd is not None and sum(1 for n in combo if n % 2) == bonus_odd:
            score += tuning.odd_pattern_bonus
        candidates.append((score, combo))
    candidates.sort(key=lambda c: c[0], reverse=True)

    pairs = sorted(iter_combinations(hot_stars, STAR_COUNT), key=lambda p: (p[0] % 2) != (p[1] % 2), reverse=True)
    coupons = [
        _coupon(i + 1, combo, pairs[i % len(pairs)], "Combines the hottest numbers and favours the most over-represented patterns.")
        for i, (_, combo) in enumerate(candidates[:tuning.strategy_coupons])
    ]
    return {
        "title": "Trend Follower",
        "description": "Focuses on hot numbers and patterns that have shown up often lately.",
        "coupons": coupons,
    }


def contrarian_strategy(analysis: Dict[str, Any], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    dormancy = analysis["pattern_analysis"]["dormancy_analysis"]

    def overdue(entries, limit):
        ordered = sorted((d for d in entries if d["is_overdue"]), key=lambda d: d["current_dormancy"], reverse=True)
        return [d["number"] for d in ordered[:limit]]

    main_pool = list(dict.fromkeys(_by_count(analysis["main_number_frequencies"], False)[:tuning.strategy_main_pool] + overdue(dormancy["main_number_dormancy"], tuning.strategy_main_pool)))
    star_pool = list(dict.fromkeys(_by_count(analysis["star_number_frequencies"], False)[:tuning.strategy_star_pool] + overdue(dormancy["star_number_dormancy"], tuning.strategy_star_pool)))
    if len(main_pool) < MAIN_COUNT or len(star_pool) < STAR_COUNT:
        return _empty()

    current = {d["number"]: d["current_dormancy"] for d in dormancy["main_number_dormancy"]}
    candidates = sorted(
        ((sum(current.get(n, 0) for n in combo), combo) for combo in iter_combinations(main_pool, MAIN_COUNT)),
        key=lambda c: c[0],
        reverse=True,
    )
    pairs = list(iter_combinations(star_pool, STAR_COUNT))
    coupons = [
        _coupon(i + 1, combo, pairs[i % len(pairs)], "Bets on cold and overdue numbers that are statistically due.")
        for i, (_, combo) in enumerate(candidates[:tuning.strategy_coupons])
    ]
    return {
        "title": "Contrarian",
        "description": "Bets on cold and overdue numbers, expecting them to revert to the mean.",
        "coupons": coupons,
    }


def balanced_strategy(rng: random.Random, tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    """Random tickets filtered down to the theoretical footprint of an average draw."""
    coupons = []
    attempts = 0
    mains = list(range(1, MAIN_MAX + 1))
    stars = list(range(1, STAR_MAX + 1))
    while len(coupons) < tuning.strategy_coupons and attempts < tuning.max_balanced_attempts:
        attempts += 1
        main = sorted(rng.sample(mains, MAIN_COUNT))
        if sum(1 for n in main if n % 2) not in (2, 3):
            continue
        if not tuning.sum_range[0] <= sum(main) <= tuning.sum_range[1]:
            continue
        if not tuning.spread_range[0] <= main[-1] - main[0] <= tuning.spread_range[1]:
            continue
        if len({(n - 1) // 10 for n in main}) < tuning.min_zones:
            continue
        coupons.append(_coupon(
            len(coupons) + 1, main, rng.sample(stars, STAR_COUNT),
            "Built to match a theoretically ideal draw with balanced odd/even, sum and spread.",
        ))
    return {
        "title": "Balanced",
        "description": "Creates coupons that mirror the game's theoretical statistical footprint.",
        "coupons": coupons,
    }


def companion_strategy(analysis: Dict[str, Any], rng: random.Random, tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    companion_data = analysis["pattern_analysis"]["companion_analysis"]["companion_data"]
    kernels = sorted(
        ((n, sum(c["count"] for c in comps)) for n, comps in companion_data.items()),
        key=lambda k: k[1],
        reverse=True,
    )[:tuning.strategy_coupons]
    stars = list(range(1, STAR_MAX + 1))
    coupons = []
    for kernel, _ in kernels:
        comps = companion_data.get(kernel, [])
        if len(comps) >= MAIN_COUNT - 1:
            main = [kernel] + [c["number"] for c in comps[: MAIN_COUNT - 1]]
            coupons.append(_coupon(
                len(coupons) + 1, main, rng.sample(stars, STAR_COUNT),
                f"Built around kernel number {kernel} and its {MAIN_COUNT - 1} strongest companions.",
            ))
        if len(coupons) >= tuning.strategy_coupons:
            break
    return {
        "title": "Companion",
        "description": "Focuses on groups of numbers that are historically drawn together.",
        "coupons": coupons,
    }


def anti_popularity_strategy(analysis: Dict[str, Any], reference: date, tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    popular = get_popular_numbers(reference.year)
    main_freqs = {f["number"]: f["count"] for f in analysis["main_number_frequencies"]}
    star_freqs = {f["number"]: f["count"] for f in analysis["star_number_frequencies"]}

    main_pool = sorted((n for n in range(1, MAIN_MAX + 1) if n not in popular["main"]), key=lambda n: main_freqs.get(n, 0.0), reverse=True)[:tuning.strategy_main_pool]
    star_pool = sorted((n for n in range(1, STAR_MAX + 1) if n not in popular["star"]), key=lambda n: star_freqs.get(n, 0.0), reverse=True)[:tuning.strategy_star_pool]
    if len(main_pool) < MAIN_COUNT or len(star_pool) < STAR_COUNT:
        return _empty()

    candidates = []
    for combo in iter_combinations(main_pool, MAIN_COUNT):
        score = sum(main_freqs.get(n, 0.0) for n in combo) + sum(1 for n in combo if n > BIRTHDAY_MAX) * tuning.high_number_bonus
        candidates.append((score, combo))
    candidates.sort(key=lambda c: c[0], reverse=True)
    pairs = list(iter_combinations(star_pool, STAR_COUNT))
    coupons = [
        _coupon(i + 1, combo, pairs[i % len(pairs)], "Combines statistically strong but unpopular numbers to avoid sharing a prize.")
        for i, (_, combo) in enumerate(candidates[:tuning.strategy_coupons])
    ]
    return {
        "title": "Anti-Popularity",
        "description": "Focuses on numbers people rarely play (such as numbers above 31) to maximise potential winnings.",
        "coupons": coupons,
    }


def meta_strategy(strategies: Sequence[Dict[str, Any]], tuning: Tuning = DEFAULT_TUNING) -> Optional[Dict[str, Any]]:
    """Coupons recommended by several strategies first, then the best single recommendations."""
    merged: Dict[str, Dict[str, Any]] = {}
    for strategy in strategies:
        for coupon in strategy["coupons"]:
            key = coupon_key(coupon["main_numbers"], coupon["star_numbers"])
            if key in merged:
                entry = merged[key]
                entry["sources"].append(strategy["title"])
                if coupon["rank"] < entry["coupon"]["rank"]:
                    entry["coupon"] = coupon
            else:
                merged[key] = {"coupon": coupon, "sources": [strategy["title"]]}

    multi = sorted((e for e in merged.values() if len(e["sources"]) > 1), key=lambda e: (-len(e["sources"]), e["coupon"]["rank"]))
    single = sorted((e for e in merged.values() if len(e["sources"]) == 1), key=lambda e: e["coupon"]["rank"])

    final = []
    for entry in multi[:tuning.strategy_coupons]:
        coupon = dict(entry["coupon"])
        coupon["insight"] = f"High confidence: recommended by {' & '.join(entry['sources'])}. {coupon['insight']}"
        final.append(coupon)
    for entry in single:
        if len(final) >= tuning.strategy_coupons:
            break
        final.append(dict(entry["coupon"]))
    if not final:
        return None
    for i, coupon in enumerate(final):
        coupon["rank"] = i + 1
    return {
        "title": "Meta Analysis",
        "description": "Synthesises the strongest unique signals of every other strategy into one list; overlapping recommendations rank first.",
        "coupons": final,
    }


def generate_all_strategies(analysis: Dict[str, Any], reference: date, rng: Optional[random.Random] = None, tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    rng = rng or random.Random()
    strategies = [
        trend_strategy(analysis, tuning),
        contrarian_strategy(analysis, tuning),
        balanced_strategy(rng, tuning),
        companion_strategy(analysis, rng, tuning),
        anti_popularity_strategy(analysis, reference, tuning),
    ]
    strategies = [s for s in strategies if s["coupons"]]
    meta = meta_strategy(strategies, tuning)
    if meta:
        strategies.append(meta)
    return strategies
