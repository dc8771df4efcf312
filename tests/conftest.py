import random
from datetime import date, timedelta

import pytest

from aethergrid.draws import make_draw

# 2015-01-02 is a Friday; draws then alternate Tuesday/Friday.
START = date(2015, 1, 2)


def _next_draw_day(d):
    return d + timedelta(days=4 if d.weekday() == 4 else 3)


def generate_draws(count, seed=7, start=START):
    rng = random.Random(seed)
    draws = []
    d = start
    for _ in range(count):
        draws.append(make_draw(d, rng.sample(range(1, 51), 5), rng.sample(range(1, 13), 2)))
        d = _next_draw_day(d)
    return tuple(draws)


def fixed_draws(mains, stars=(1, 2), start=START):
    """One draw per entry of `mains`, on the same Tuesday/Friday calendar."""
    draws = []
    d = start
    for main in mains:
        draws.append(make_draw(d, main, stars))
        d = _next_draw_day(d)
    return tuple(draws)


@pytest.fixture
def draw_factory():
    return generate_draws


@pytest.fixture
def fixed_draw_factory():
    return fixed_draws


@pytest.fixture(scope="session")
def draws_60():
    return generate_draws(60)


@pytest.fixture(scope="session")
def draws_120():
    return generate_draws(120, seed=11)


@pytest.fixture(scope="session")
def identical_60():
    return fixed_draws([(1, 2, 3, 4, 5)] * 60)
