from datetime import date

import pytest

from aethergrid import schedule
from aethergrid.config import WEIGHT_KEYS, baseline_weights
from aethergrid.meta_patterns import analyze_meta_patterns
from aethergrid.patterns import analyze_data
from aethergrid.regime import BALANCED, HOT_STREAK, STABLE, VOLATILE
from aethergrid.scoring import (
    calculate_aether_scores,
    combo_bonuses,
    combo_success_rates,
    main_justification,
    popularity_weight,
    score_lookup,
    star_justification,
    timing_bonus,
)
from aethergrid.seasonal import analyze_seasonal_patterns


def _flags(**kw):
    profile = {"is_hot": False, "is_overdue": False, "is_in_hot_zone": False, "has_momentum": False, "has_cluster_strength": False}
    profile.update(kw)
    return profile


def _success(winners, indicators=()):
    return {"winner_profiles": winners, "pre_draw_indicators": list(indicators), "hit_profile": {}, "total_analyzed_hits": len(winners)}


@pytest.fixture(scope="module")
def scored(draws_120):
    analysis = analyze_data(draws_120)
    return calculate_aether_scores(
        analysis,
        draws_120,
        analyze_seasonal_patterns(draws_120),
        analyze_meta_patterns(draws_120),
        date(2024, 12, 20),
        baseline_weights(),
    )


def test_ranks_cover_every_number(scored):
    main = scored["main_number_scores"]
    stars = scored["star_number_scores"]
    assert [s["rank"] for s in main] == list(range(1, 51))
    assert sorted(s["number"] for s in main) == list(range(1, 51))
    assert [s["rank"] for s in stars] == list(range(1, 13))
    assert sorted(s["number"] for s in stars) == list(range(1, 13))
    values = [s["score"] for s in main]
    assert values == sorted(values, reverse=True)


def test_breakdown_keys(scored):
    item = scored["main_number_scores"][0]
    assert set(item["breakdown"]) == set(WEIGHT_KEYS) | {"post_dormancy", "combo", "contextual", "popularity"}
    assert item["justification"]
    assert item["combo_reasons"] == []


def test_christmas_context(scored):
    by_number = {s["number"]: s for s in scored["main_number_scores"]}
    assert scored["context"] == schedule.CHRISTMAS
    assert scored["popularity_weight"] == 0.5
    assert by_number[24]["breakdown"]["contextual"] == -20
    assert by_number[24]["breakdown"]["popularity"] == pytest.approx(-60 / 100 * 40 * 0.5)
    assert by_number[40]["breakdown"]["contextual"] == 0
    assert by_number[40]["breakdown"]["popularity"] == pytest.approx(-15 / 100 * 40 * 0.5)
    assert by_number[45]["breakdown"]["popularity"] == 0
    assert "Christmas" in scored["insight"]


def test_score_is_weighted_sum(scored):
    weights = baseline_weights()
    for item in scored["main_number_scores"]:
        b = item["breakdown"]
        expected = sum(b[k] * weights[k] for k in WEIGHT_KEYS) + b["post_dormancy"] + b["combo"] + b["contextual"] + b["popularity"]
        assert item["score"] == pytest.approx(expected)


def test_score_lookup(scored):
    lookup = score_lookup(scored["main_number_scores"])
    assert len(lookup) == 50
    assert lookup[scored["main_number_scores"][0]["number"]] == scored["main_number_scores"][0]["score"]


def test_popularity_weight():
    assert popularity_weight(schedule.NONE, BALANCED)[0] == 0.3
    assert popularity_weight(schedule.NONE, STABLE)[0] == 0.3
    assert popularity_weight(schedule.NONE, HOT_STREAK)[0] == 0.6
    assert popularity_weight(schedule.NONE, VOLATILE)[0] == 0.6
    assert popularity_weight(schedule.CHRISTMAS, VOLATILE)[0] == 0.5


def test_timing_bonus(fixed_draw_factory):
    wide = fixed_draw_factory([(1, 2, 3, 4, 50)])
    narrow = fixed_draw_factory([(1, 2, 3, 4, 5)])
    indicator = {"factor": "overdue", "metric": "spread", "average": 30.0}
    winners = [{"profile": _flags()}] * 21
    assert timing_bonus(wide, _success(winners, [indicator])) == 15.0
    assert timing_bonus(narrow, _success(winners, [indicator])) == 0.0
    assert timing_bonus(wide, _success(winners[:20], [indicator])) == 0.0
    assert timing_bonus(wide, _success(winners)) == 0.0
    assert timing_bonus(wide, None) == 0.0


def test_combo_rates_and_bonuses():
    winners = [{"profile": _flags(is_hot=True, is_overdue=True)}] * 6 + [{"profile": _flags(is_in_hot_zone=True, has_cluster_strength=True)}] * 1
    winners += [{"profile": _flags()}] * 14
    rates = combo_success_rates(winners)
    assert rates["Hot+Overdue"] == pytest.approx(6 / 21)
    assert rates["HotZone+Cluster"] == pytest.approx(1 / 21)
    assert rates["Hot+Momentum"] == 0.0

    profiles = {1: _flags(is_hot=True, is_overdue=True), 2: _flags(is_in_hot_zone=True, has_cluster_strength=True), 3: _flags()}
    bonuses = combo_bonuses(profiles, _success(winners))
    assert bonuses[1]["score"] == pytest.approx(6 / 21 * 50)
    assert bonuses[1]["reasons"] == ["Hot+Overdue"]
    # rate below 5%
    assert bonuses[2] == {"score": 0.0, "reasons": []}
    assert combo_bonuses(profiles, _success(winners[:20])) == {}
    assert combo_success_rates([]) == {"Hot+Overdue": 0.0, "Hot+Momentum": 0.0, "HotZone+Cluster": 0.0}


def test_justifications():
    assert main_justification({}, -1).startswith("Low overall score")
    assert main_justification({"frequency": 5.0}, 3.0).startswith("A balanced number")
    assert main_justification({"frequency": 30.0}, 3.0) == "Primarily ranked high due to strong frequency."
    text = main_justification({"frequency": 30.0, "momentum": 40.0, "zone": 12.0}, 10.0)
    assert text == "Strong score from a combination of strong momentum and strong frequency."
    assert star_justification({"frequency": 20.0, "dormancy": 15.0}, 5.0) == "Excellent balance of being both hot and overdue."
    assert star_justification({"frequency": 40.0, "dormancy": 0.0}, 5.0) == "Ranked high for having strong momentum."
