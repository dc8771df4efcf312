from __future__ import annotations

from typing import Any, Dict, List, Sequence

from aethergrid.config import DEFAULT_TUNING, MONTH_NAMES, QUARTER_NAMES, Tuning
from aethergrid.draws import Draw
from aethergrid.patterns import recency_weights


def _ranked(counts: Dict[int, float]) -> List[Dict[str, Any]]:
    return sorted(({"number": n, "count": c} for n, c in counts.items()), key=lambda x: x["count"], reverse=True)


def analyze_seasonal_patterns(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
    """
    Recency-weighted main-number frequencies per calendar month and quarter.
    Each list is sorted by weighted count, highest first.
    """
    weights = recency_weights(len(draws), tuning)
    monthly: List[Dict[int, float]] = [{} for _ in MONTH_NAMES]
    quarterly: List[Dict[int, float]] = [{} for _ in QUARTER_NAMES]
    for draw, w in zip(draws, weights):
        month = draw.date.month - 1
        quarter = month // 3
        for n in draw.main:
            monthly[month][n] = monthly[month].get(n, 0.0) + w
            quarterly[quarter][n] = quarterly[quarter].get(n, 0.0) + w
    return {
        "monthly": {name: _ranked(monthly[i]) for i, name in enumerate(MONTH_NAMES)},
        "quarterly": {name: _ranked(quarterly[i]) for i, name in enumerate(QUARTER_NAMES)},
    }


def month_name(d) -> str:
    return MONTH_NAMES[d.month - 1]
