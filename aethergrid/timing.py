from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Set

import numpy as np

from aethergrid.config import DEFAULT_TUNING, MAIN_COUNT, MAIN_MAX, MONTH_NAMES, Tuning
from aethergrid.draws import Draw, draw_spread
from aethergrid.meta_patterns import _plain_gaps, occurrence_matrix
from aethergrid.patterns import analyze_data
from aethergrid.seasonal import analyze_seasonal_patterns

# prefixes evaluated per matrix product in prefix_hot_sets
_CHUNK = 64


def prefix_hot_sets(draws: Sequence[Draw], start: int, tuning: Tuning = DEFAULT_TUNING) -> List[Set[int]]:
    """
    Hot set of every prefix draws[:n] for n in [start, len(draws)).

    Equivalent to running analyze_data() on each prefix and taking the top third of
    main_number_frequencies by weighted count (ties keep first-appearance order), but
    computed as one recency-weight matrix product per chunk of prefixes.
    """
    total = len(draws)
    if start >= total:
        return []
    occurrence = occurrence_matrix(draws)

    # first-appearance key: draw index * 5 + position inside the draw
    first_key = np.full(MAIN_MAX, np.inf)
    for i, d in enumerate(draws):
        for pos, n in enumerate(d.main):
            if first_key[n - 1] == np.inf:
                first_key[n - 1] = i * MAIN_COUNT + pos
    first_draw = np.floor(first_key / MAIN_COUNT)

    idx = np.arange(total, dtype=float)
    hot_sets: List[Set[int]] = []
    for chunk_start in range(start, total, _CHUNK):
        sizes = np.arange(chunk_start, min(chunk_start + _CHUNK, total), dtype=float)
        exponents = (idx[None, :] - (sizes[:, None] - 1)) / (sizes[:, None] * tuning.recency_decay)
        inside = idx[None, :] < sizes[:, None]
        weights = np.where(inside, np.exp(np.minimum(exponents, 0.0)), 0.0)
        counts = weights @ occurrence
        for row, size in zip(counts, sizes):
            seen = np.flatnonzero(first_draw < size)
            order = seen[np.lexsort((first_key[seen], -row[seen]))]
            cut = int(len(seen) * tuning.hot_streak_fraction)
            hot_sets.append({int(k) + 1 for k in order[:cut]})
    return hot_sets


def analyze_hot_streaks(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING, hot_sets: Optional[Sequence[Set[int]]] = None) -> Dict[str, Any]:
    """
    How many consecutive prefixes a number stays in the hot set.

    `hot_sets` may carry prefix_hot_sets(longer_history, window) computed once; a prefix
    of the history has the same hot sets, so only the first len(draws) - window are read.
    """
    window = tuning.hot_streak_window
    result = {"average_streak_duration": 0.0, "longest_streak": {"number": 0, "duration": 0}, "streaks_by_number": []}
    if len(draws) < window + tuning.hot_streak_margin:
        return result

    if hot_sets is None:
        hot_sets = prefix_hot_sets(draws, window, tuning)
    else:
        hot_sets = hot_sets[: len(draws) - window]

    streaks: Dict[int, List[int]] = {n: [] for n in range(1, MAIN_MAX + 1)}
    current = {n: 0 for n in range(1, MAIN_MAX + 1)}
    for hot in hot_sets:
        for n in range(1, MAIN_MAX + 1):
            if n in hot:
                current[n] += 1
            else:
                if current[n] > 1:
                    streaks[n].append(current[n])
                current[n] = 0
    for n in range(1, MAIN_MAX + 1):
        if current[n] > 1:
            streaks[n].append(current[n])

    all_streaks: List[int] = []
    longest_number, longest = 0, 0
    by_number = []
    for n in range(1, MAIN_MAX + 1):
        if streaks[n]:
            all_streaks.extend(streaks[n])
            best = max(streaks[n])
            if best > longest:
                longest, longest_number = best, n
            by_number.append({"number": n, "duration": best})
    by_number.sort(key=lambda s: s["duration"], reverse=True)
    result["average_streak_duration"] = float(np.mean(all_streaks)) if all_streaks else 0.0
    result["longest_streak"] = {"number": longest_number, "duration": longest}
    result["streaks_by_number"] = by_number
    return result


def analyze_dormancy_breaks(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, float]:
    """Average spread of the draw right before an overdue number returns."""
    spreads = [draw_spread(d) for d in draws]
    result = {
        "avg_spread_before_break": 0.0,
        "global_avg_spread": float(np.mean(spreads)) if spreads else 0.0,
        "companion_activity_increase": 0.0,
    }
    if len(draws) < tuning.timing_min_draws:
        return result

    analysis = analyze_data(draws, len(draws), tuning)
    overdue = {d["number"] for d in analysis["pattern_analysis"]["dormancy_analysis"]["main_number_dormancy"] if d["is_overdue"]}
    before_break = []
    last_seen: Dict[int, int] = {}
    for i, d in enumerate(draws):
        if i >= 1:
            for n in d.main:
                if n not in overdue:
                    continue
                if last_seen.get(n) == i - 1:
                    continue
                before_break.append(spreads[i - 1])
                break
        for n in d.main:
            last_seen[n] = i
    if before_break:
        result["avg_spread_before_break"] = float(np.mean(before_break))
    return result


def analyze_seasonal_transitions(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, Any]:
    """Jaccard dissimilarity between the top numbers of consecutive calendar months."""
    seasonal = analyze_seasonal_patterns(draws, tuning)
    transitions = []
    top_n = tuning.transition_top_n
    for prev_month, month in zip(MONTH_NAMES, MONTH_NAMES[1:]):
        prev_top = {x["number"] for x in seasonal["monthly"][prev_month][:top_n]}
        cur_top = {x["number"] for x in seasonal["monthly"][month][:top_n]}
        if not prev_top or not cur_top:
            continue
        similarity = len(prev_top & cur_top) / len(prev_top | cur_top)
        transitions.append({"from_period": prev_month, "to_period": month, "dissimilarity_score": 1 - similarity})
    if not transitions:
        return {"monthly_transitions": [], "most_volatile_month": "N/A", "least_volatile_month": "N/A"}
    ranked = sorted(transitions, key=lambda t: t["dissimilarity_score"], reverse=True)
    most, least = ranked[0], ranked[-1]
    return {
        "monthly_transitions": transitions,
        "most_volatile_month": f"{most['from_period']}-{most['to_period']}",
        "least_volatile_month": f"{least['from_period']}-{least['to_period']}",
    }


def analyze_number_rhythm(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    """Numbers whose gaps are most regular get the highest pulse strength."""
    if len(draws) < tuning.rhythm_min_draws:
        return []
    results = []
    for n, gaps in _plain_gaps(draws).items():
        if len(gaps) >= tuning.rhythm_min_gaps:
            arr = np.array(gaps, dtype=float)
            results.append({
                "number": n,
                "average_dormancy": float(arr.mean()),
                "dormancy_std_dev": float(arr.std()),
                "pulse_strength": 0.0,
            })
    if not results:
        return []
    stds = [r["dormancy_std_dev"] for r in results]
    max_std = max(max(stds), 1.0)
    min_std = min(stds)
    for r in results:
        if max_std > min_std:
            r["pulse_strength"] = (max_std - r["dormancy_std_dev"]) / (max_std - min_std) * 100
        else:
            r["pulse_strength"] = 100.0
    results.sort(key=lambda r: r["pulse_strength"], reverse=True)
    return results


def analyze_pattern_timing(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING, hot_sets: Optional[Sequence[Set[int]]] = None) -> Optional[Dict[str, Any]]:
    if len(draws) < tuning.timing_min_draws:
        return None
    return {
        "hot_streak_analysis": analyze_hot_streaks(draws, tuning, hot_sets),
        "dormancy_break_analysis": analyze_dormancy_breaks(draws, tuning),
        "seasonal_transition_analysis": analyze_seasonal_transitions(draws, tuning),
        "rhythm_analysis": analyze_number_rhythm(draws, tuning),
    }
