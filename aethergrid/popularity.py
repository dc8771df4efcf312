from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from aethergrid.config import BIRTHDAY_MAX, DEFAULT_TUNING, EXPECTED_MAIN_SUM, MAIN_COUNT, MAIN_MAX, Tuning
from aethergrid.draws import Draw, draw_spread, draw_sum
from aethergrid import schedule

LUCKY_NUMBERS = {7, 11, 21}
ROUND_NUMBERS = {10, 20, 30, 40, 50}
PRIME_NUMBERS = {2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47}

BIRTHDAY_CHECK = "Birthday coefficient (numbers 1-31)"
LUCKY_CHECK = "Lucky number bias (7, 11, 21)"
ROUND_CHECK = "Round number effect (10, 20, ...)"
HIGH_CHECK = "High number advantage (32-50)"
SUM_CHECK = "Average sum"
SPREAD_CHECK = "Average spread"
NEIGHBOUR_CHECK = "Draws with neighbours"


def popularity_scores() -> Dict[int, Dict[str, Any]]:
    """
    Static human-bias score per main number: how likely players are to pick it.
    Higher score = more players share it = lower expected payout.
    """
    scores: Dict[int, Dict[str, Any]] = {}
    for n in range(1, MAIN_MAX + 1):
        score = 0
        reasons = []
        if 1 <= n <= BIRTHDAY_MAX:
            score += 60
            reasons.append("Birthday Range")
        if n in LUCKY_NUMBERS:
            score += 25
            reasons.append("Lucky Number")
        if n in ROUND_NUMBERS:
            score += 15
            reasons.append("Round Number")
        if n in PRIME_NUMBERS:
            score += 20
            reasons.append("Prime Number")
        if n <= 9:
            score += 10
            reasons.append("Visual Pattern (Low)")
        if score > 0:
            scores[n] = {"score": score, "reason": ", ".join(reasons)}
    return scores


def contextual_boosts(context: str, easter_date: Optional[date] = None) -> Dict[str, Any]:
    """Additive calendar adjustments for the main pool during holiday periods."""
    boosts: Dict[int, Dict[str, Any]] = {}
    justification = ""

    def apply(condition, score: float, reason: str):
        for n in range(1, MAIN_MAX + 1):
            if condition(n):
                existing = boosts.get(n, {"score": 0.0, "reason": ""})
                boosts[n] = {
                    "score": existing["score"] + score,
                    "reason": f"{existing['reason']}, {reason}" if existing["reason"] else reason,
                }

    if context == schedule.CHRISTMAS:
        justification = "Christmas period: penalizing common holiday numbers."
        apply(lambda n: n in (24, 25, 12), -20, "Christmas date")
    elif context == schedule.NEW_YEAR:
        justification = "New Year period: boosting high numbers and penalizing round numbers."
        apply(lambda n: n > BIRTHDAY_MAX, 15, "high number")
        apply(lambda n: n % 10 == 0, -15, "round number")
    elif context == schedule.SUMMER_HOLIDAY:
        justification = "Summer holiday: boosting unpopular high numbers while birthdays dominate play."
        apply(lambda n: n > BIRTHDAY_MAX, 20, "anti-birthday")
    elif context == schedule.EASTER_PERIOD and easter_date is not None:
        justification = "Easter period: penalizing date-related numbers."
        apply(lambda n: n == easter_date.day or n == easter_date.month, -15, "Easter date")

    return {"boosts": boosts, "justification": justification}


def _bias(name: str, observed: float, expected: float, unit: str, conclusion: str) -> Dict[str, Any]:
    return {"name": name, "observed": observed, "expected": expected, "unit": unit, "conclusion": conclusion}


def analyze_anti_popularity(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, List[Dict[str, Any]]]:
    """
    Compare how often "popular" number classes actually win against their share of the pool.
    Needs at least tuning.anti_popularity_min_draws draws; below that both lists are empty.
    """
    total_draws = len(draws)
    if total_draws < tuning.anti_popularity_min_draws:
        return {"human_bias_analysis": [], "combination_bias_analysis": []}

    mains = np.array([d.main for d in draws])
    total_numbers = total_draws * MAIN_COUNT

    human = []
    birthday = float(np.sum((mains >= 1) & (mains <= BIRTHDAY_MAX))) / total_numbers * 100
    birthday_expected = BIRTHDAY_MAX / MAIN_MAX * 100
    human.append(_bias(
        BIRTHDAY_CHECK, birthday, birthday_expected, "%",
        "Birthday-range numbers are under-represented; coupons avoiding them may hold an edge."
        if birthday < birthday_expected else
        "Birthday-range numbers are over-represented, against the expected popularity bias.",
    ))

    lucky = float(np.isin(mains, list(LUCKY_NUMBERS)).sum()) / total_numbers * 100
    lucky_expected = len(LUCKY_NUMBERS) / MAIN_MAX * 100
    human.append(_bias(
        LUCKY_CHECK, lucky, lucky_expected, "%",
        "Lucky numbers are drawn less often than expected; avoiding them may pay off."
        if lucky < lucky_expected else
        "Lucky numbers perform better than expected despite their popularity.",
    ))

    round_pct = float(np.isin(mains, list(ROUND_NUMBERS)).sum()) / total_numbers * 100
    round_expected = len(ROUND_NUMBERS) / MAIN_MAX * 100
    human.append(_bias(
        ROUND_CHECK, round_pct, round_expected, "%",
        "Round numbers are under-represented, in line with a bias against picking them."
        if round_pct < round_expected else
        "Round numbers are over-represented, an unexpected tendency.",
    ))

    high = float(np.sum(mains > BIRTHDAY_MAX)) / total_numbers * 100
    high_expected = (MAIN_MAX - BIRTHDAY_MAX) / MAIN_MAX * 100
    human.append(_bias(
        HIGH_CHECK, high, high_expected, "%",
        "High numbers outside the birthday range are over-represented; playing them has paid off historically."
        if high > high_expected else
        "High numbers are under-represented, against the theory that they hold an advantage.",
    ))

    combination = []
    avg_sum = float(np.mean([draw_sum(d) for d in draws]))
    combination.append(_bias(
        SUM_CHECK, avg_sum, EXPECTED_MAIN_SUM, "avg",
        "Winning sums run higher than the theoretical average, supporting high-sum combinations."
        if avg_sum > EXPECTED_MAIN_SUM else
        "Winning sums run lower than expected; popular low combinations win more often than assumed.",
    ))

    avg_spread = float(np.mean([draw_spread(d) for d in draws]))
    combination.append(_bias(
        SPREAD_CHECK, avg_spread, tuning.expected_average_spread, "avg",
        "Winning coupons spread wider than expected; tight combinations are less successful."
        if avg_spread > tuning.expected_average_spread else
        "Winning coupons spread less than expected, challenging the idea of spreading picks widely.",
    ))

    neighbour_draws = sum(1 for d in draws if has_neighbours(d.main))
    neighbour_pct = neighbour_draws / total_draws * 100
    combination.append(_bias(
        NEIGHBOUR_CHECK, neighbour_pct, tuning.neighbour_expected_pct, "%",
        "Combinations with consecutive numbers win more often than expected; including them is a strong anti-popularity play."
        if neighbour_pct > tuning.neighbour_expected_pct else
        "Combinations with consecutive numbers win less often than expected.",
    ))

    return {"human_bias_analysis": human, "combination_bias_analysis": combination}


def has_neighbours(nums: Sequence[int]) -> bool:
    s = sorted(nums)
    return any(b == a + 1 for a, b in zip(s, s[1:]))
