from datetime import date

from aethergrid.regime import BALANCED, HOT_STREAK, STABLE, VOLATILE, classify_regime, detect_regime_shift, transition_for_month


def _timing(streak=0.0, transitions=()):
    return {
        "hot_streak_analysis": {"average_streak_duration": streak},
        "seasonal_transition_analysis": {"monthly_transitions": list(transitions)},
    }


def test_shift_needs_two_windows(fixed_draw_factory):
    narrow = [(1, 2, 3, 4, 5)] * 50
    wide = [(1, 2, 3, 4, 50)] * 49
    assert detect_regime_shift(fixed_draw_factory(narrow + wide)) is False


def test_shift_on_spread_change(fixed_draw_factory):
    draws = fixed_draw_factory([(1, 2, 3, 4, 5)] * 50 + [(1, 2, 3, 4, 50)] * 50)
    assert detect_regime_shift(draws) is True


def test_no_shift_for_identical_draws(identical_60, fixed_draw_factory):
    assert detect_regime_shift(fixed_draw_factory([(1, 2, 3, 4, 5)] * 100)) is False


def test_shift_on_repeat_rate_change(fixed_draw_factory):
    # same spread throughout; repeats stop in the recent window
    repeating = [(1, 2, 3, 4, 41)] * 50
    alternating = [(1, 2, 3, 4, 41) if i % 2 else (5, 6, 7, 8, 45) for i in range(50)]
    draws = fixed_draw_factory(repeating + alternating)
    assert detect_regime_shift(draws) is True


def test_classify_regime_labels():
    march = date(2024, 3, 15)
    assert classify_regime(None, march) == BALANCED
    assert classify_regime(_timing(streak=4.5), march) == HOT_STREAK
    volatile = {"from_period": "Feb", "to_period": "Mar", "dissimilarity_score": 0.75}
    stable = {"from_period": "Feb", "to_period": "Mar", "dissimilarity_score": 0.1}
    neutral = {"from_period": "Feb", "to_period": "Mar", "dissimilarity_score": 0.45}
    assert classify_regime(_timing(transitions=[volatile]), march) == VOLATILE
    assert classify_regime(_timing(transitions=[stable]), march) == STABLE
    assert classify_regime(_timing(transitions=[neutral]), march) == BALANCED
    assert classify_regime(_timing(transitions=[volatile]), date(2024, 7, 2)) == BALANCED


def test_transition_for_month():
    t = {"from_period": "Nov", "to_period": "Dec", "dissimilarity_score": 0.5}
    assert transition_for_month(_timing(transitions=[t]), date(2024, 12, 24)) is t
    assert transition_for_month(_timing(transitions=[t]), date(2024, 1, 2)) is None
