"""Path layouts for dataset families outside the standard hierarchy."""

from __future__ import annotations

import calendar
import math
from datetime import datetime
from pathlib import Path

from archive.descriptor import DatasetDescriptor, parse_moment
from archive.listing import path_exists
from core.config import ArchiveConfig
from core.paths import join_under_root

DOWNSCALING_HIERARCHIES: dict[str, tuple[str, ...]] = {
    "downscaling_rainfall": ("dsm", "season", "period"),
    "downscaling_temperature": ("dsm", "period"),
}
DOWNSCALING_DEFAULT_UNITS: dict[str, str] = {
    "downscaling_rainfall": "mm",
    "downscaling_temperature": "celcius",
}
CLIMATOLOGY_FILE_PARTS: tuple[str, ...] = ("datatype", "aggregation", "variable", "mean_type", "extent", "period", "units")
CLIMATOLOGY_DIR_PARTS: tuple[str, ...] = ("datatype", "variable", "aggregation", "mean_type", "extent")


def _require(descriptor: DatasetDescriptor, name: str) -> str:
    value = descriptor.attribute(name)
    if value is None:
        raise KeyError(f"{descriptor.datatype} requires attribute: {name}")
    return value


def downscaling_paths(root: Path, descriptor: DatasetDescriptor) -> list[Path]:
    """Candidate paths for downscaled projections, one per file tag."""
    datatype = _require(descriptor, "datatype")
    hierarchy = DOWNSCALING_HIERARCHIES[datatype if descriptor.location == "hawaii" else "downscaling_rainfall"]
    base = [datatype, *(_require(descriptor, name) for name in hierarchy)]
    units = descriptor.extras.get("units") or DOWNSCALING_DEFAULT_UNITS[datatype]

    paths: list[Path] = []
    for tag in descriptor.files:
        values = list(base)
        if tag == "data_map_change":
            values.append(_require(descriptor, "model"))
            suffix = f"change_{units}.tif"
        elif descriptor.period != "present":
            values.append(_require(descriptor, "model"))
            suffix = f"prediction_{units}.tif"
        else:
            suffix = f"{units}.tif"
        paths.append(join_under_root(root, values) / "_".join([*values, suffix]))
    return paths


def climatology_period(mean_type: str | None, date: datetime) -> str | None:
    """Derive the climatology period label a date falls in."""
    year = date.year
    if mean_type == "mean_30yr_annual":
        # 30 year windows: 1961-1990, 1991-2020, 2021-2050, ...
        end = math.ceil((year - 10) / 30) * 30 + 10
        return f"{end - 29}-{end}"
    if mean_type == "mean_annual_decadal":
        end = math.ceil(year / 10) * 10
        return f"{end - 9}-{end}"
    if mean_type == "mean_monthly":
        return calendar.month_name[date.month].lower()
    return None


def climatology_paths(root: Path, descriptor: DatasetDescriptor, config: ArchiveConfig) -> list[Path]:
    """Candidate metadata and map paths for a climatology dataset."""
    datatype = _require(descriptor, "datatype")
    paths: list[Path] = []
    for tag in descriptor.files:
        if tag == "metadata":
            variable = _require(descriptor, "variable")
            extension = "pdf" if descriptor.location == "hawaii" else "txt"
            paths.append(join_under_root(root, [datatype, variable]) / f"{datatype}_{variable}_metadata.{extension}")
        elif tag == "data_map":
            values = {name: descriptor.attribute(name) for name in CLIMATOLOGY_FILE_PARTS}
            if values["period"] is None:
                values["period"] = climatology_period(values["mean_type"], parse_moment(_require(descriptor, "date")))
            name = "_".join(value for value in values.values() if value)
            folder = [descriptor.attribute(part) for part in CLIMATOLOGY_DIR_PARTS]
            extension = config.file_type("data_map").extension
            paths.append(join_under_root(root, [part for part in folder if part]) / f"{name}.{extension}")
    return paths


async def existing(paths: list[Path]) -> list[Path]:
    """Keep the paths present on disk, in order."""
    return [path for path in paths if await path_exists(path)]
