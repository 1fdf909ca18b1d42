"""Dataset descriptors: the typed form of one requested dataset."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

import pandas as pd

from archive.dates import truncate
from archive.decompose import DECOMPOSE_LEVELS
from core.config import ArchiveConfig

HIERARCHY_FIELDS: tuple[str, ...] = (
    "datatype",
    "production",
    "aggregation",
    "period",
    "lead",
    "timescale",
    "extent",
    "fill",
)
_RESERVED_KEYS = {"location", "range", "files"}


class DatasetFamily(Enum):
    """Dataset families that need their own path layout."""

    STANDARD = "standard"
    DOWNSCALING = "downscaling"
    CLIMATOLOGY = "climatology"

    @classmethod
    def for_datatype(cls, datatype: str | None) -> DatasetFamily:
        if datatype in {"downscaling_rainfall", "downscaling_temperature"}:
            return cls.DOWNSCALING
        if datatype is not None and datatype.endswith("_climatology"):
            return cls.CLIMATOLOGY
        return cls.STANDARD


@dataclass(frozen=True)
class DateRange:
    """Requested range; both bounds inclusive as supplied by the caller."""

    start: datetime
    end: datetime


def parse_moment(value: Any) -> datetime:
    """Parse a caller-supplied date/time into a naive wall-clock datetime."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("Date value cannot be empty.")
    stamp = pd.Timestamp(value)
    if pd.isna(stamp):
        raise ValueError(f"Invalid date value: {value!r}")
    if stamp.tzinfo is not None:
        stamp = stamp.tz_localize(None)
    return stamp.to_pydatetime()


def parse_range(raw: Any, period: str | None = None) -> DateRange | None:
    """Parse a ``{"start", "end"}`` mapping; None when both bounds are missing.

    With a calendar ``period`` the bounds are ordered at that granularity, so
    an end earlier in the same unit as the start is clamped to the start.
    """
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ValueError(f"range must be a mapping with start/end, got {type(raw).__name__}")
    start, end = raw.get("start"), raw.get("end")
    if start is None and end is None:
        return None
    parsed = DateRange(start=parse_moment(start), end=parse_moment(end))
    if parsed.end >= parsed.start:
        return parsed
    if period in DECOMPOSE_LEVELS and truncate(parsed.end, period) == truncate(parsed.start, period):
        return DateRange(start=parsed.start, end=parsed.start)
    raise ValueError(f"range end precedes start: {start} > {end}")


@dataclass(frozen=True)
class DatasetDescriptor:
    """One dataset query: hierarchy attributes, optional range and file-type tags."""

    datatype: str | None = None
    production: str | None = None
    aggregation: str | None = None
    period: str | None = None
    lead: str | None = None
    timescale: str | None = None
    extent: str | None = None
    fill: str | None = None
    location: str | None = None
    range: DateRange | None = None
    files: tuple[str, ...] = ()
    extras: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> DatasetDescriptor:
        if not isinstance(raw, Mapping):
            raise ValueError(f"Descriptor must be a mapping, got {type(raw).__name__}")
        files = raw.get("files") or ()
        if isinstance(files, str):
            files = (files,)

        known = {name: _optional_str(raw.get(name)) for name in HIERARCHY_FIELDS}
        extras = {
            str(key): str(value)
            for key, value in raw.items()
            if key not in HIERARCHY_FIELDS and key not in _RESERVED_KEYS and value is not None
        }
        return cls(
            **known,
            location=_optional_str(raw.get("location")),
            range=parse_range(raw.get("range"), known["period"]),
            files=tuple(str(tag) for tag in files),
            extras=MappingProxyType(extras),
        )

    @property
    def family(self) -> DatasetFamily:
        return DatasetFamily.for_datatype(self.datatype)

    @property
    def date_period(self) -> str | None:
        """The calendar granularity files are dated at, when ``period`` is one."""
        return self.period if self.period in DECOMPOSE_LEVELS else None

    @property
    def is_dated(self) -> bool:
        return self.date_period is not None and self.range is not None

    def attribute(self, name: str) -> str | None:
        """Look up a hierarchy field or a family-specific extra by name."""
        if name in HIERARCHY_FIELDS:
            return getattr(self, name)
        return self.extras.get(name)

    def hierarchy_values(self, order: tuple[str, ...]) -> list[str]:
        """Present attribute values in ``order``; absent attributes are skipped."""
        return [value for value in (self.attribute(name) for name in order) if value is not None]

    def filename_prefix(self, order: tuple[str, ...]) -> str:
        return "_".join(self.hierarchy_values(order))


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def apply_defaults(descriptor: DatasetDescriptor, config: ArchiveConfig) -> DatasetDescriptor:
    """Fill location, extent, lead and units the way the archive expects."""
    updates: dict[str, Any] = {}
    location = descriptor.location
    if location not in config.production_dirs:
        location = config.default_location
        updates["location"] = location
    if location == "hawaii" and descriptor.extent is None:
        updates["extent"] = "statewide"
    if descriptor.datatype == "ignition_probability" and descriptor.lead is None:
        updates["lead"] = "lead00"

    if (
        location == "american_samoa"
        and descriptor.datatype == "prism_climatology"
        and "units" not in descriptor.extras
    ):
        units = {"rainfall": "mm", "air_temperature": "celcius"}.get(descriptor.extras.get("variable", ""))
        if units is not None:
            updates["extras"] = MappingProxyType({**descriptor.extras, "units": units})

    return replace(descriptor, **updates) if updates else descriptor
