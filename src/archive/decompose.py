"""Split a date range into the fewest whole year/month/day partitions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from archive.dates import advance, truncate

DECOMPOSE_LEVELS: tuple[str, ...] = ("year", "month", "day")


@dataclass(frozen=True)
class DateCoverage:
    """Half-open interval [start, end) covered by one partition."""

    start: datetime
    end: datetime
    period: str

    def overlaps(self, other: DateCoverage) -> bool:
        return self.start < other.end and other.start < self.end


def normalize_range(period: str, start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Align both bounds to ``period`` and make the end exclusive."""
    if period not in DECOMPOSE_LEVELS:
        raise ValueError(f"Cannot decompose period: {period}")
    return truncate(start, period), advance(truncate(end, period), period)


def _contained_units(start: datetime, end: datetime, period: str) -> tuple[list[datetime], datetime, datetime]:
    """Return the units of ``period`` wholly inside [start, end) and the span they cover."""
    first = truncate(start, period)
    if first != start:
        first = advance(first, period)

    units: list[datetime] = []
    cursor = first
    while cursor < end and advance(cursor, period) <= end:
        units.append(cursor)
        cursor = advance(cursor, period)
    return units, first, cursor


def decompose_range(period: str, start: datetime, end: datetime) -> dict[str, list[datetime]]:
    """Decompose an inclusive ``start``..``end`` request into partition starts per level.

    Levels run from year down to ``period``. Each level holds the units it
    covers completely; the partial pieces at both ends are handed to the next
    finer level, and everything left at ``period`` is emitted as is.
    """
    lower, upper = normalize_range(period, start, end)
    levels = DECOMPOSE_LEVELS[: DECOMPOSE_LEVELS.index(period) + 1]
    groups: dict[str, list[datetime]] = {level: [] for level in levels}

    pending: list[tuple[datetime, datetime]] = [(lower, upper)]
    for level in levels:
        leftovers: list[tuple[datetime, datetime]] = []
        for interval_start, interval_end in pending:
            units, covered_start, covered_end = _contained_units(interval_start, interval_end, level)
            groups[level].extend(units)
            if not units:
                leftovers.append((interval_start, interval_end))
                continue
            if interval_start < covered_start:
                leftovers.append((interval_start, covered_start))
            if covered_end < interval_end:
                leftovers.append((covered_end, interval_end))
        pending = leftovers

    # bounds are aligned to period, so nothing can remain below it
    if pending:
        raise RuntimeError(f"Unpartitioned date intervals remain: {pending}")
    return groups


def date_coverages(groups: dict[str, list[datetime]]) -> list[DateCoverage]:
    """Expand decomposed groups into their half-open coverages, sorted by start."""
    coverages = [
        DateCoverage(start=moment, end=advance(moment, level), period=level)
        for level, moments in groups.items()
        for moment in moments
    ]
    return sorted(coverages, key=lambda item: item.start)
