import random
from dataclasses import replace
from datetime import date

import pytest

from aethergrid.config import DEFAULT_TUNING, baseline_weights
from aethergrid.coupons import (
    build_intelligent_coupons,
    coupon_confidence,
    coupon_key,
    iter_combinations,
    rank_main_combinations,
    rank_star_pairs,
)
from aethergrid.meta_patterns import analyze_meta_patterns
from aethergrid.patterns import analyze_data
from aethergrid.regime import BALANCED, VOLATILE
from aethergrid.scoring import calculate_aether_scores
from aethergrid.seasonal import analyze_seasonal_patterns


@pytest.fixture(scope="module")
def scored(draws_120):
    analysis = analyze_data(draws_120)
    scores = calculate_aether_scores(
        analysis, draws_120, analyze_seasonal_patterns(draws_120), analyze_meta_patterns(draws_120), date(2024, 5, 3), baseline_weights()
    )
    return analysis, scores


def test_iter_combinations():
    combos = list(iter_combinations(list(range(1, 21)), 5))
    assert len(combos) == 15504
    assert combos[0] == (1, 2, 3, 4, 5)
    assert combos[-1] == (16, 17, 18, 19, 20)
    assert len(set(combos)) == len(combos)
    assert list(iter_combinations([7, 8, 9], 2)) == [(7, 8), (7, 9), (8, 9)]
    assert list(iter_combinations([1, 2], 3)) == []
    assert list(iter_combinations([1, 2], 0)) == []


def test_coupon_key():
    assert coupon_key([5, 1, 3, 2, 4], [9, 2]) == "1,2,3,4,5|2,9"


def test_coupon_shape(scored):
    analysis, scores = scored
    coupons = build_intelligent_coupons(scores, analysis["pattern_analysis"], BALANCED, False, random.Random(1))
    assert len(coupons) == 10
    assert [c["rank"] for c in coupons] == list(range(1, 11))
    keys = {coupon_key(c["main_numbers"], c["star_numbers"]) for c in coupons}
    assert len(keys) == len(coupons)
    for c in coupons:
        assert len(set(c["main_numbers"])) == 5 and all(1 <= n <= 50 for n in c["main_numbers"])
        assert len(set(c["star_numbers"])) == 2 and all(1 <= n <= 12 for n in c["star_numbers"])
        assert c["confidence"]["level"] in ("High", "Medium", "Low")
    values = [c["score"] for c in coupons]
    assert values == sorted(values, reverse=True)


def test_pairs_follow_index(scored):
    analysis, scores = scored
    mains = rank_main_combinations(scores["main_number_scores"], analysis["pattern_analysis"]["delta_analysis"]["average_delta"])
    stars = rank_star_pairs(scores["star_number_scores"])
    pairs = {(tuple(m["main_numbers"]), tuple(s["star_numbers"])) for m, s in zip(mains, stars)}
    coupons = build_intelligent_coupons(scores, analysis["pattern_analysis"], BALANCED, False, random.Random(1))
    assert {(tuple(c["main_numbers"]), tuple(c["star_numbers"])) for c in coupons} == pairs


def test_main_combinations_use_top_pool(scored):
    _, scores = scored
    top = {s["number"] for s in scores["main_number_scores"][:20]}
    mains = rank_main_combinations(scores["main_number_scores"], 0.0)
    assert len(mains) == 10
    assert all(set(m["main_numbers"]) <= top for m in mains)
    assert all(m["justification"].endswith(".") for m in mains)


def test_fill_from_pool_is_seeded(scored):
    analysis, scores = scored
    tuning = replace(DEFAULT_TUNING, coupon_pool=6)
    first = build_intelligent_coupons(scores, analysis["pattern_analysis"], BALANCED, False, random.Random(3), tuning)
    second = build_intelligent_coupons(scores, analysis["pattern_analysis"], BALANCED, False, random.Random(3), tuning)
    assert first == second
    assert len(first) == 10
    pool = {s["number"] for s in scores["main_number_scores"][:6]}
    assert all(set(c["main_numbers"]) <= pool for c in first)


def test_unstable_regime_is_low_confidence(scored):
    analysis, scores = scored
    for regime, shift in ((VOLATILE, False), (BALANCED, True)):
        coupons = build_intelligent_coupons(scores, analysis["pattern_analysis"], regime, shift, random.Random(1))
        assert {c["confidence"]["level"] for c in coupons} == {"Low"}


def test_coupon_confidence_levels():
    scores = [{"number": n, "score": 100.0} for n in (32, 33, 34, 35, 36, 1, 2, 3, 4, 5)]
    scores += [{"number": n, "score": 0.0} for n in (6, 7, 8, 9)]
    assert coupon_confidence([32, 33, 34, 35, 36], scores, BALANCED, False)["level"] == "High"
    assert coupon_confidence([1, 2, 3, 4, 5], scores, BALANCED, False)["level"] == "Medium"
    anti = coupon_confidence([32, 33, 34, 6, 7], scores, BALANCED, False)
    assert anti == {"level": "Medium", "justification": "Based on a strong anti-popularity profile."}
    assert coupon_confidence([1, 2, 6, 7, 8], scores, BALANCED, False)["level"] == "Low"
    assert coupon_confidence([32, 33, 34, 35, 36], scores, VOLATILE, False)["level"] == "Low"


def test_star_pairs_bonus():
    stars = [{"number": n, "score": 0.0} for n in range(1, 13)]
    best = rank_star_pairs(stars)[0]
    # mixed parity and a sum inside 8..16
    assert best["score"] == 25.0
    a, b = best["star_numbers"]
    assert (a % 2) != (b % 2) and 8 <= a + b <= 16
    assert rank_star_pairs(stars[:1]) == []
