from datetime import date

import pytest

from aethergrid.draws import (
    Draw,
    build_draw_store,
    draw_spread,
    draw_sum,
    draw_to_dict,
    filter_weekday,
    make_draw,
    parse_draw_date,
)


@pytest.mark.parametrize("raw,expected", [
    ("2024-03-15", date(2024, 3, 15)),
    ("2024-03-15T00:00:00.000", date(2024, 3, 15)),
    ("15.03.2024", date(2024, 3, 15)),
    ("15/03/2024", date(2024, 3, 15)),
    ("15/03/24", date(2024, 3, 15)),
    ("15/03/99", date(1999, 3, 15)),
    ("not a date", None),
    ("", None),
    ("31.02.2024", None),
])
def test_parse_draw_date(raw, expected):
    assert parse_draw_date(raw) == expected


def test_make_draw_keeps_input_order():
    d = make_draw("2024-01-02", [9, 3, 50, 1, 22], [12, 1])
    assert d.main == (9, 3, 50, 1, 22)
    assert d.stars == (12, 1)
    assert d.draw_date == "2024-01-02"


@pytest.mark.parametrize("main,stars", [
    ([1, 2, 3, 4], [1, 2]),
    ([1, 2, 3, 4, 4], [1, 2]),
    ([1, 2, 3, 4, 51], [1, 2]),
    ([0, 2, 3, 4, 5], [1, 2]),
    ([1, 2, 3, 4, 5], [3, 3]),
    ([1, 2, 3, 4, 5], [1, 13]),
    ([1, 2, 3, 4, 5], [1]),
])
def test_make_draw_rejects_invalid_numbers(main, stars):
    with pytest.raises(ValueError):
        make_draw("2024-01-02", main, stars)


def test_make_draw_rejects_bad_date():
    with pytest.raises(ValueError):
        make_draw("yesterday", [1, 2, 3, 4, 5], [1, 2])


def test_build_draw_store_sorts_and_accepts_aliases():
    records = [
        {"draw_date": "2024-01-05", "main": [1, 2, 3, 4, 5], "stars": [1, 2]},
        {"date": "02.01.2024", "main_numbers": [6, 7, 8, 9, 10], "star_numbers": [3, 4]},
        make_draw(date(2024, 1, 9), [11, 12, 13, 14, 15], [5, 6]),
    ]
    store = build_draw_store(records)
    assert isinstance(store, tuple)
    assert [d.draw_date for d in store] == ["2024-01-02", "2024-01-05", "2024-01-09"]
    assert all(isinstance(d, Draw) for d in store)


def test_build_draw_store_missing_numbers():
    with pytest.raises(ValueError):
        build_draw_store([{"draw_date": "2024-01-05", "main": [1, 2, 3, 4, 5]}])


def test_spread_sum_and_dict():
    d = make_draw("2024-01-02", [10, 3, 40, 22, 5], [1, 2])
    assert draw_spread(d) == 37
    assert draw_sum(d) == 80
    assert draw_to_dict(d) == {"draw_date": "2024-01-02", "main": [10, 3, 40, 22, 5], "stars": [1, 2]}


def test_filter_weekday(draws_60):
    tuesdays = filter_weekday(draws_60, 1)
    fridays = filter_weekday(draws_60, 4)
    assert len(tuesdays) + len(fridays) == len(draws_60)
    assert len(tuesdays) == 30
    assert all(d.date.weekday() == 1 for d in tuesdays)


def test_generated_draws_are_valid(draws_120):
    for d in draws_120:
        assert len(set(d.main)) == 5 and all(1 <= n <= 50 for n in d.main)
        assert len(set(d.stars)) == 2 and all(1 <= n <= 12 for n in d.stars)
