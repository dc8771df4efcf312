from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import re

from aethergrid.config import MAIN_COUNT, MAIN_MAX, MAIN_MIN, STAR_COUNT, STAR_MAX, STAR_MIN

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_DMY_RE = re.compile(r"^(\d{1,2})[./](\d{1,2})[./](\d{2,4})$")


@dataclass(frozen=True)
class Draw:
    date: date
    main: Tuple[int, ...]
    stars: Tuple[int, ...]

    @property
    def draw_date(self) -> str:
        return self.date.isoformat()


def parse_draw_date(s: str) -> Optional[date]:
    """
    Parse the date formats seen in draw exports:
      '2024-03-15', '2024-03-15T00:00:00.000', '15.03.2024', '15/03/24'
    Two-digit years above 50 belong to the 1900s. Returns None when nothing matches.
    """
    s = (s or "").strip()
    if not s:
        return None
    candidate = s[:10] if "T" in s else s
    try:
        m = _ISO_RE.match(candidate)
        if m:
            year, month, day = (int(p) for p in m.groups())
            return date(year, month, day)
        m = _DMY_RE.match(candidate)
        if m:
            day, month, year = (int(p) for p in m.groups())
            if year < 100:
                year = 1900 + year if year > 50 else 2000 + year
            return date(year, month, day)
    except ValueError:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _validate_numbers(nums: Sequence[int], count: int, lo: int, hi: int, label: str) -> Tuple[int, ...]:
    values = tuple(int(n) for n in nums)
    if len(values) != count:
        raise ValueError(f"Expected {count} {label} numbers, got {len(values)}: {list(values)}")
    if len(set(values)) != count:
        raise ValueError(f"Duplicate {label} numbers: {list(values)}")
    for n in values:
        if not lo <= n <= hi:
            raise ValueError(f"{label.capitalize()} number {n} outside {lo}-{hi}")
    return values


def make_draw(draw_date: Any, main: Sequence[int], stars: Sequence[int]) -> Draw:
    if isinstance(draw_date, date):
        d = draw_date
    else:
        d = parse_draw_date(str(draw_date))
        if d is None:
            raise ValueError(f"Unparseable draw date: {draw_date!r}")
    return Draw(
        date=d,
        main=_validate_numbers(main, MAIN_COUNT, MAIN_MIN, MAIN_MAX, "main"),
        stars=_validate_numbers(stars, STAR_COUNT, STAR_MIN, STAR_MAX, "star"),
    )


def build_draw_store(records: Iterable[Any]) -> Tuple[Draw, ...]:
    """
    Turn validated records into the immutable, date-ordered draw sequence.

    Records may be Draw instances or dicts with 'draw_date', 'main' and 'stars'
    (the HTTP layer also sends 'main_numbers'/'star_numbers').
    """
    draws: List[Draw] = []
    for r in records:
        if isinstance(r, Draw):
            draws.append(r)
            continue
        main = r.get("main", r.get("main_numbers"))
        stars = r.get("stars", r.get("star_numbers"))
        if main is None or stars is None:
            raise ValueError(f"Draw record missing numbers: {r}")
        draws.append(make_draw(r.get("draw_date", r.get("date")), main, stars))
    draws.sort(key=lambda d: d.date)
    return tuple(draws)


def draw_spread(draw: Draw) -> int:
    if len(draw.main) < 2:
        return 0
    return max(draw.main) - min(draw.main)


def draw_sum(draw: Draw) -> int:
    return sum(draw.main)


def filter_weekday(draws: Sequence[Draw], weekday: int) -> Tuple[Draw, ...]:
    """Draws falling on a weekday (Monday=0 ... Tuesday=1, Friday=4)."""
    return tuple(d for d in draws if d.date.weekday() == weekday)


def draw_to_dict(draw: Draw) -> Dict[str, Any]:
    return {"draw_date": draw.draw_date, "main": list(draw.main), "stars": list(draw.stars)}
