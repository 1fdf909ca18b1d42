"""Filename date-suffix codec.

Archive files end in 1 to 6 underscore-joined numeric date segments followed by
an extension, e.g. ``rainfall_new_month_statewide_data_map_2021_12.tif``. The
first segment is a 4-digit year, the rest 2-digit month/day/hour/minute/second;
only a full 6-segment suffix may carry a fractional second.
"""

from __future__ import annotations

import re
from datetime import datetime

from archive.dates import PERIOD_ORDER, format_date, period_at_depth, truncate

FILENAME_DATE_PATTERN = re.compile(
    r"^.+?_([0-9]{4}(?:(?:_[0-9]{2}){0,5}|(?:_[0-9]{2}){5}\.[0-9]+))\.[a-zA-Z0-9]+$"
)
_MINIMUMS: tuple[int, ...] = (1, 1, 1, 0, 0, 0)


def match_date_segments(filename: str) -> tuple[str, ...] | None:
    """Return the date segments embedded in a file name, or None."""
    match = FILENAME_DATE_PATTERN.match(filename)
    if match is None:
        return None
    return tuple(match.group(1).split("_"))


def segments_depth(segments: tuple[str, ...]) -> int:
    """Depth of the finest encoded component (0 for year only)."""
    return len(segments) - 1


def decode_date_segments(segments: tuple[str, ...]) -> datetime:
    """Build the moment encoded by ``segments``, filling omitted parts with their minimum."""
    if not segments or len(segments) > len(PERIOD_ORDER):
        raise ValueError(f"Expected 1-{len(PERIOD_ORDER)} date segments, got {len(segments)}")

    values = list(_MINIMUMS)
    microsecond = 0
    for index, segment in enumerate(segments):
        whole, _, fraction = segment.partition(".")
        values[index] = int(whole)
        if fraction:
            microsecond = int(fraction[:6].ljust(6, "0"))
    year, month, day, hour, minute, second = values
    return datetime(year, month, day, hour, minute, second, microsecond)


def encode_date_segments(moment: datetime, depth: int) -> str:
    """Format ``moment`` as a filename date suffix down to ``depth``."""
    return format_date(moment, period_at_depth(depth), "_")


def file_in_range(filename: str, start: datetime, end: datetime) -> bool:
    """Return True when the file's date lies inside [start, end] at the file's own depth."""
    segments = match_date_segments(filename)
    if segments is None:
        return False
    period = period_at_depth(segments_depth(segments))
    try:
        file_date = decode_date_segments(segments)
    except ValueError:
        return False
    return truncate(start, period) <= file_date <= truncate(end, period)
