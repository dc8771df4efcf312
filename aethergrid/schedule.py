from __future__ import annotations
from collections import Counter
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Set, Tuple

from aethergrid.draws import Draw

NONE = "NONE"
CHRISTMAS = "CHRISTMAS"
NEW_YEAR = "NEW_YEAR"
SUMMER_HOLIDAY = "SUMMER_HOLIDAY"
EASTER_PERIOD = "EASTER_PERIOD"

HOLIDAY_CONTEXTS = [CHRISTMAS, SUMMER_HOLIDAY, EASTER_PERIOD, NEW_YEAR]

# Python weekday numbering
TUESDAY = 1
FRIDAY = 4


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (anonymous Gregorian / Gauss algorithm)."""
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


def get_date_context(d: date) -> Tuple[str, Optional[date]]:
    """
    Calendar period a draw date falls in.
    Returns (context, easter_date); easter_date is only set for EASTER_PERIOD.
    """
    month, day = d.month, d.day
    if (month == 12 and day > 25) or (month == 1 and day < 8):
        return NEW_YEAR, None
    if month == 12:
        return CHRISTMAS, None
    if (month == 6 and day >= 15) or month == 7 or (month == 8 and day <= 15):
        return SUMMER_HOLIDAY, None
    easter = easter_sunday(d.year)
    if abs((d - easter).days) <= 7:
        return EASTER_PERIOD, easter
    return NONE, None


def danish_holidays(year: int) -> List[date]:
    easter = easter_sunday(year)
    holidays = [
        date(year, 1, 1),
        date(year, 5, 5),
        date(year, 12, 24),
        date(year, 12, 25),
        date(year, 12, 26),
        date(year, 12, 31),
    ]
    # Maundy Thursday, Good Friday, Easter, Easter Monday, Ascension, Whitsun, Whit Monday
    for offset in (-3, -2, 0, 1, 39, 49, 50):
        holidays.append(easter + timedelta(days=offset))
    if year < 2024:
        # Great Prayer Day, abolished from 2024
        holidays.append(easter + timedelta(days=26))
    return holidays


def get_popular_numbers(year: int) -> Dict[str, Set[int]]:
    """Numbers players favour: holiday days/months plus every possible birthday day."""
    main: Set[int] = set(range(1, 32))
    star: Set[int] = set()
    for h in danish_holidays(year):
        main.add(h.day)
        star.add(h.month)
    return {"main": main, "star": star}


def predict_next_draw_date(draws: Sequence[Draw]) -> Optional[date]:
    """
    Predict the next draw date from the observed cadence.
    Tuesday/Friday schedules advance +3/+4 days; otherwise the most common interval is used.
    """
    if len(draws) < 2:
        return None
    ordered = sorted(draws, key=lambda d: d.date)
    last = ordered[-1].date
    weekdays = {d.date.weekday() for d in ordered[-20:]}
    if TUESDAY in weekdays and FRIDAY in weekdays:
        if last.weekday() == TUESDAY:
            return last + timedelta(days=3)
        if last.weekday() == FRIDAY:
            return last + timedelta(days=4)

    intervals = []
    for prev, cur in zip(ordered, ordered[1:]):
        gap = abs((cur.date - prev.date).days)
        if gap > 0:
            intervals.append(gap)
    if intervals:
        most_common, _ = Counter(intervals).most_common(1)[0]
        return last + timedelta(days=most_common)
    return last + timedelta(days=7)
