from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

import numpy as np

from aethergrid.config import DEFAULT_TUNING, Tuning
from aethergrid.draws import Draw, draw_spread
from aethergrid.seasonal import month_name

HOT_STREAK = "Hot Streak"
VOLATILE = "Volatile"
STABLE = "Stable"
BALANCED = "Balanced"


def _average_spread(draws: Sequence[Draw]) -> float:
    spreads = [s for s in (draw_spread(d) for d in draws) if s > 0]
    return float(np.mean(spreads)) if spreads else 0.0


def _repeat_rate(draws: Sequence[Draw]) -> float:
    if len(draws) < 2:
        return 0.0
    repeats = sum(1 for prev, cur in zip(draws, draws[1:]) if set(prev.main) & set(cur.main))
    return repeats / (len(draws) - 1) * 100


def detect_regime_shift(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> bool:
    """
    Compare the latest window of draws with the one before it.
    A shift is a relative change in average spread or repeat rate beyond its threshold.
    """
    window = tuning.regime_window
    if len(draws) < window * 2:
        return False
    recent = draws[-window:]
    previous = draws[-window * 2:-window]

    recent_spread, previous_spread = _average_spread(recent), _average_spread(previous)
    recent_repeat, previous_repeat = _repeat_rate(recent), _repeat_rate(previous)
    spread_change = abs(recent_spread - previous_spread) / (previous_spread or 1)
    repeat_change = abs(recent_repeat - previous_repeat) / (previous_repeat or 1)
    return spread_change > tuning.regime_spread_threshold or repeat_change > tuning.regime_repeat_threshold


def transition_for_month(timing: Optional[Dict[str, Any]], target: Optional[date]) -> Optional[Dict[str, Any]]:
    """Seasonal transition that ends in the target's month, if one was measured."""
    if not timing or target is None:
        return None
    name = month_name(target)
    for t in timing["seasonal_transition_analysis"]["monthly_transitions"]:
        if t["to_period"] == name:
            return t
    return None


def classify_regime(timing: Optional[Dict[str, Any]], target: Optional[date], tuning: Tuning = DEFAULT_TUNING) -> str:
    if not timing:
        return BALANCED
    if timing["hot_streak_analysis"]["average_streak_duration"] > tuning.hot_streak_regime_threshold:
        return HOT_STREAK
    transition = transition_for_month(timing, target)
    if transition:
        if transition["dissimilarity_score"] > tuning.volatile_threshold:
            return VOLATILE
        if transition["dissimilarity_score"] < tuning.stable_threshold:
            return STABLE
    return BALANCED
