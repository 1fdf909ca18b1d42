"""Calendar granularity helpers for date-partitioned directories."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

PERIOD_ORDER: tuple[str, ...] = ("year", "month", "day", "hour", "minute", "second")
PART_WIDTHS: tuple[int, ...] = (4, 2, 2, 2, 2, 2)

_FIXED_STEPS: dict[str, timedelta] = {
    "day": timedelta(days=1),
    "hour": timedelta(hours=1),
    "minute": timedelta(minutes=1),
    "second": timedelta(seconds=1),
}

# Accumulator for directory-derived dates; every tier overwrites its own component.
DATE_ORIGIN = datetime(1, 1, 1)


def period_depth(period: str) -> int:
    """Return the index of a period in PERIOD_ORDER."""
    try:
        return PERIOD_ORDER.index(period)
    except ValueError as exc:
        raise ValueError(f"Unknown period: {period}") from exc


def period_at_depth(depth: int) -> str:
    if depth < 0 or depth >= len(PERIOD_ORDER):
        raise ValueError(f"No date tier at depth {depth}")
    return PERIOD_ORDER[depth]


def shift_period(period: str, levels: int) -> str | None:
    """Return the period ``levels`` steps coarser (positive) or finer (negative).

    None when the shift leaves the known granularities.
    """
    depth = period_depth(period) - levels
    if depth < 0 or depth >= len(PERIOD_ORDER):
        return None
    return PERIOD_ORDER[depth]


def truncate(moment: datetime, period: str) -> datetime:
    """Zero every component finer than ``period``."""
    depth = period_depth(period)
    moment = moment.replace(microsecond=0)
    if depth < 5:
        moment = moment.replace(second=0)
    if depth < 4:
        moment = moment.replace(minute=0)
    if depth < 3:
        moment = moment.replace(hour=0)
    if depth < 2:
        moment = moment.replace(day=1)
    if depth < 1:
        moment = moment.replace(month=1)
    return moment


def advance(moment: datetime, period: str, count: int = 1) -> datetime:
    """Move ``moment`` by ``count`` whole units of ``period``."""
    if period == "year":
        year = moment.year + count
        day = min(moment.day, calendar.monthrange(year, moment.month)[1])
        return moment.replace(year=year, day=day)
    if period == "month":
        month_index = moment.month - 1 + count
        year = moment.year + month_index // 12
        month = month_index % 12 + 1
        day = min(moment.day, calendar.monthrange(year, month)[1])
        return moment.replace(year=year, month=month, day=day)
    if period in _FIXED_STEPS:
        return moment + _FIXED_STEPS[period] * count
    raise ValueError(f"Unknown period: {period}")


def set_date_part(moment: datetime, part: str, depth: int) -> datetime:
    """Replace the component at ``depth`` with the numeric directory name ``part``.

    Raises ValueError for non-numeric names and values outside the calendar.
    """
    period = period_at_depth(depth)
    if not part.isdigit():
        raise ValueError(f"Date part is not numeric: {part!r}")
    return moment.replace(**{period: int(part)})


def format_date(moment: datetime, period: str | None, delimiter: str) -> str:
    """Format ``moment`` as zero-padded parts down to ``period`` (``2021/12/01``).

    A ``None`` period formats to an empty string.
    """
    if period is None:
        return ""
    depth = period_depth(period)
    values = (moment.year, moment.month, moment.day, moment.hour, moment.minute, moment.second)
    return delimiter.join(f"{values[i]:0{PART_WIDTHS[i]}d}" for i in range(depth + 1))
