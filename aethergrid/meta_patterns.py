from __future__ import annotations

from typing import Any, Dict, List, Sequence

import numpy as np

from aethergrid.config import DEFAULT_TUNING, MAIN_MAX, Tuning
from aethergrid.draws import Draw, draw_spread


def occurrence_matrix(draws: Sequence[Draw]) -> np.ndarray:
    """rows = draws (oldest first), cols = main numbers 1..50, cell=1 if drawn."""
    mat = np.zeros((len(draws), MAIN_MAX), dtype=float)
    for i, d in enumerate(draws):
        mat[i, [n - 1 for n in d.main]] = 1.0
    return mat


def analyze_hot_cold_transitions(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    """
    Slide an unweighted window over the history and label every number Hot/Neutral/Cold
    in each window; count how often each number changes state.
    """
    window = tuning.transition_window
    if len(draws) < tuning.transition_min_draws:
        return []
    mat = occurrence_matrix(draws)
    # window sums via cumulative sums: row k = counts in draws[k:k+window]
    cumulative = np.vstack([np.zeros(MAIN_MAX), np.cumsum(mat, axis=0)])
    window_counts = cumulative[window:] - cumulative[:-window]

    hot_cut = int(MAIN_MAX * tuning.transition_hot_fraction)
    cold_cut = int(MAIN_MAX * tuning.transition_cold_fraction)
    states = np.empty(window_counts.shape, dtype=object)
    for k, counts in enumerate(window_counts):
        # stable sort on descending count keeps ties in number order
        order = np.argsort(-counts, kind="stable")
        row = np.full(MAIN_MAX, "Neutral", dtype=object)
        row[order[cold_cut:]] = "Cold"
        row[order[:hot_cut]] = "Hot"
        states[k] = row

    out = []
    for n in range(MAIN_MAX):
        seq = states[:, n]
        if len(seq) < 2:
            continue
        changes = int(sum(1 for a, b in zip(seq, seq[1:]) if a != b))
        out.append({"number": n + 1, "transitions": changes, "current_state": seq[-1]})
    return out


def _plain_gaps(draws: Sequence[Draw]) -> Dict[int, List[int]]:
    last_seen: Dict[int, int] = {}
    gaps: Dict[int, List[int]] = {n: [] for n in range(1, MAIN_MAX + 1)}
    for index, d in enumerate(draws):
        for n in d.main:
            if n in last_seen:
                gaps[n].append(index - last_seen[n])
            last_seen[n] = index
    return gaps


def analyze_dormancy_break_signals(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    """How often a number's top companions show up just before it breaks a long dormancy."""
    if len(draws) < tuning.break_min_draws:
        return []
    averages = {n: (float(np.mean(g)) if g else 0.0) for n, g in _plain_gaps(draws).items()}

    pairs: Dict[int, Dict[int, int]] = {n: {} for n in range(1, MAIN_MAX + 1)}
    for d in draws:
        nums = list(d.main)
        for i, a in enumerate(nums):
            for b in nums[i + 1:]:
                pairs[a][b] = pairs[a].get(b, 0) + 1
                pairs[b][a] = pairs[b].get(a, 0) + 1
    top_companions = {
        n: {m for m, _ in sorted(c.items(), key=lambda kv: kv[1], reverse=True)[: tuning.break_companions]}
        for n, c in pairs.items()
    }

    hits = total = 0
    last_seen: Dict[int, int] = {}
    lookback = tuning.break_lookback
    for i, d in enumerate(draws):
        if i >= lookback:
            for n in d.main:
                if n not in last_seen:
                    continue
                current = i - 1 - last_seen[n]
                avg = averages.get(n, 0.0)
                if avg > 0 and current > avg * tuning.break_factor:
                    total += 1
                    companions = top_companions.get(n, set())
                    if any(companions.intersection(prev.main) for prev in draws[i - lookback:i]):
                        hits += 1
        for n in d.main:
            last_seen[n] = i

    if total <= tuning.break_min_events:
        return []
    return [{
        "signal": "Companion activity",
        "occurrence_rate": hits / total * 100,
        "description": (
            f"Share of dormancy breaks where one of the number's top-{tuning.break_companions} companions "
            f"was drawn within the {lookback} draws before the break."
        ),
    }]


def analyze_cross_correlations(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> List[Dict[str, Any]]:
    """Does a wide or narrow draw tend to be followed by a repeated main number?"""
    if len(draws) < tuning.correlation_min_draws:
        return []
    metrics = []
    for i in range(1, len(draws)):
        metrics.append({
            "spread": draw_spread(draws[i]),
            "prev_repeats": bool(set(draws[i].main) & set(draws[i - 1].main)),
        })
    metrics.sort(key=lambda m: m["spread"])
    low_threshold = metrics[int(len(metrics) * 0.25)]["spread"]
    high_threshold = metrics[int(len(metrics) * 0.75)]["spread"]
    low = [m for m in metrics if m["spread"] <= low_threshold]
    high = [m for m in metrics if m["spread"] >= high_threshold]
    if len(low) < tuning.correlation_min_group or len(high) < tuning.correlation_min_group:
        return []

    low_rate = sum(1 for m in low if m["prev_repeats"]) / len(low)
    high_rate = sum(1 for m in high if m["prev_repeats"]) / len(high)
    difference = high_rate - low_rate
    if abs(difference) <= tuning.correlation_min_difference:
        return []
    direction = "higher" if difference > 0 else "lower"
    return [{
        "title": "Spread vs. repetition",
        "description": (
            f"Draws with a HIGH spread show a {direction} tendency to share at least one main number "
            f"with the previous draw ({high_rate * 100:.0f}% vs {low_rate * 100:.0f}% for low spread)."
        ),
        "strength": "Moderate",
    }]


def analyze_meta_patterns(draws: Sequence[Draw], tuning: Tuning = DEFAULT_TUNING) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "hot_cold_transitions": analyze_hot_cold_transitions(draws, tuning),
        "dormancy_break_signals": analyze_dormancy_break_signals(draws, tuning),
        "correlation_insights": analyze_cross_correlations(draws, tuning),
    }
