"""Batch resolution of dataset descriptors into archive paths."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import pandas as pd
from tqdm import tqdm

from archive.codec import decode_date_segments, match_date_segments
from archive.descriptor import DatasetDescriptor, DatasetFamily, apply_defaults
from archive.families import climatology_paths, downscaling_paths, existing
from archive.legacy import convert_legacy_request, is_legacy_request
from archive.listing import count_files, edge_file, list_files
from archive.path_builder import ExpectedPath, build_date_parts, expected_paths, static_path
from archive.walker import TreeWalker
from core.config import ArchiveConfig
from core.logging import get_logger
from core.paths import build_empty_raster_path, join_under_root
from core.status import DescriptorStatus, add_skip_reason, finalize_status

LOGGER = get_logger(__name__)

STRATEGY_WALK = "walk"
STRATEGY_CONSTRUCT = "construct"
STRATEGIES: tuple[str, ...] = (STRATEGY_WALK, STRATEGY_CONSTRUCT)


@dataclass
class PathResult:
    """Paths resolved for one descriptor or a whole batch."""

    paths: list[str] = field(default_factory=list)
    num_files: int = 0
    collapsed: bool = False

    def extend(self, other: PathResult) -> None:
        self.paths.extend(other.paths)
        self.num_files += other.num_files
        self.collapsed = self.collapsed or other.collapsed


@dataclass
class BatchResult:
    """Aggregate of a batch plus the per-descriptor statuses behind it."""

    result: PathResult = field(default_factory=PathResult)
    statuses: list[DescriptorStatus] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return self.result.paths

    @property
    def num_files(self) -> int:
        return self.result.num_files

    def to_dict(self) -> dict[str, Any]:
        """Public best-effort response shape."""
        return {"numFiles": self.result.num_files, "paths": list(self.result.paths)}


class DescriptorSkipped(Exception):
    """Raised inside resolution to mark a descriptor as contributing nothing."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class PathResolver:
    """Resolves dataset descriptors against the production archive.

    The ``walk`` strategy walks each file-type directory for dated queries and
    can collapse fully covered folders. The ``construct`` strategy builds the
    expected folder and file names from the decomposed range and keeps the
    ones that exist.
    """

    def __init__(
        self,
        config: ArchiveConfig,
        *,
        collapse: bool | None = None,
        strategy: str = STRATEGY_WALK,
        progress: bool = False,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy: {strategy} (expected one of {STRATEGIES})")
        self.config = config
        self.collapse = config.collapse if collapse is None else collapse
        self.strategy = strategy
        self.progress = progress

    async def resolve(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        """Resolve a batch sequentially; failing descriptors are recorded and skipped."""
        if is_legacy_request(items):
            items = convert_legacy_request(items)
            LOGGER.info("Converted legacy request | descriptors=%d", len(items))

        batch = BatchResult()
        for index, raw in enumerate(tqdm(items, desc="Resolving datasets", unit="dataset", disable=not self.progress)):
            status, result = await self._resolve_item(index, raw)
            batch.statuses.append(status)
            if result is not None:
                batch.result.extend(result)

        LOGGER.info(
            "Resolved batch | descriptors=%d skipped=%d files=%d paths=%d",
            len(batch.statuses),
            sum(1 for status in batch.statuses if not status.resolved),
            batch.num_files,
            len(batch.paths),
        )
        return batch

    async def _resolve_item(self, index: int, raw: Mapping[str, Any]) -> tuple[DescriptorStatus, PathResult | None]:
        status = DescriptorStatus(index=index)
        try:
            descriptor = apply_defaults(DatasetDescriptor.from_mapping(raw), self.config)
        except (KeyError, TypeError, ValueError) as exc:
            add_skip_reason(status, "parse", "INVALID_DESCRIPTOR", str(exc))
            LOGGER.warning("Skipping descriptor | index=%d stage=parse error=%s", index, exc)
            return finalize_status(status), None

        status.datatype = descriptor.datatype
        status.location = descriptor.location
        try:
            result = await self.resolve_descriptor(descriptor)
        except DescriptorSkipped as exc:
            add_skip_reason(status, "resolve", exc.code, str(exc))
        except (KeyError, ValueError) as exc:
            add_skip_reason(status, "resolve", "INVALID_DESCRIPTOR", str(exc), error_type=type(exc).__name__)
        except Exception as exc:
            add_skip_reason(status, "resolve", "RESOLUTION_ERROR", str(exc), error_type=type(exc).__name__)
        else:
            status.num_files = result.num_files
            status.num_paths = len(result.paths)
            status.collapsed = result.collapsed
            return finalize_status(status), result

        LOGGER.warning(
            "Skipping descriptor | index=%d datatype=%s code=%s error=%s",
            index,
            descriptor.datatype,
            status.errors[-1].code,
            status.errors[-1].message,
        )
        return finalize_status(status), None

    async def resolve_descriptor(self, descriptor: DatasetDescriptor) -> PathResult:
        """Resolve one descriptor (defaults already applied)."""
        if descriptor.datatype is None:
            raise DescriptorSkipped("MISSING_DATATYPE", "Descriptor has no datatype.")
        root = self.config.production_root(descriptor.location or self.config.default_location)

        if descriptor.family is DatasetFamily.DOWNSCALING:
            return _files_result(await existing(downscaling_paths(root, descriptor)))
        if descriptor.family is DatasetFamily.CLIMATOLOGY:
            return _files_result(await existing(climatology_paths(root, descriptor, self.config)))

        dataset_dir = join_under_root(root, descriptor.hierarchy_values(self.config.hierarchy))
        prefix = descriptor.filename_prefix(self.config.hierarchy)
        result = PathResult()
        for tag in descriptor.files:
            if descriptor.datatype == "ignition_probability" and tag == "metadata":
                result.extend(_files_result(await list_files(dataset_dir / "metadata")))
            else:
                result.extend(await self._resolve_file_type(descriptor, dataset_dir, prefix, tag))
        LOGGER.debug(
            "Resolved descriptor | dir=%s files=%d paths=%d collapsed=%s",
            dataset_dir,
            result.num_files,
            len(result.paths),
            result.collapsed,
        )
        return result

    async def _resolve_file_type(
        self,
        descriptor: DatasetDescriptor,
        dataset_dir: Path,
        prefix: str,
        tag: str,
    ) -> PathResult:
        type_dir = join_under_root(dataset_dir, [tag])
        detail = self.config.file_types.get(tag)
        undated = detail is not None and detail.aggregation_depth is None

        if descriptor.is_dated and not undated:
            date_range = descriptor.range
            if self.strategy == STRATEGY_WALK:
                walker = TreeWalker(date_range.start, date_range.end, collapse=self.collapse)
                walked = await walker.walk(type_dir)
                return PathResult(paths=walked.paths, num_files=walked.num_files, collapsed=walked.collapsed)
            if detail is None:
                raise DescriptorSkipped("UNKNOWN_FILE_TYPE", f"Unknown file type: {tag}")
            date_parts = build_date_parts(descriptor.date_period, date_range.start, date_range.end)
            return await _counted(expected_paths(dataset_dir, prefix, tag, detail, date_parts))

        if detail is None:
            raise DescriptorSkipped("UNKNOWN_FILE_TYPE", f"Unknown file type: {tag}")
        path = static_path(dataset_dir, prefix, tag, detail)
        count = await count_files(path)
        return PathResult(paths=[str(path)] if count else [], num_files=count)

    async def dataset_date_range(self, raw: Mapping[str, Any]) -> tuple[pd.Timestamp, pd.Timestamp] | None:
        """First and last map dates of a dataset, localized to its location."""
        descriptor = apply_defaults(DatasetDescriptor.from_mapping(raw), self.config)
        if descriptor.date_period is None:
            return None
        root = self.config.production_root(descriptor.location or self.config.default_location)
        maps_dir = join_under_root(root, descriptor.hierarchy_values(self.config.hierarchy)) / "data_map"

        try:
            first, last = await asyncio.gather(
                asyncio.to_thread(edge_file, maps_dir),
                asyncio.to_thread(edge_file, maps_dir, True),
            )
        except OSError as exc:
            LOGGER.info("Dataset maps unavailable | dir=%s error=%s", maps_dir, exc)
            return None
        if first is None or last is None:
            return None

        timezone = self.config.timezones.get(descriptor.location or "")
        bounds: list[pd.Timestamp] = []
        for leaf in (first, last):
            segments = match_date_segments(leaf.name)
            if segments is None:
                LOGGER.info("Edge map file has no date suffix | path=%s", leaf)
                return None
            stamp = pd.Timestamp(decode_date_segments(segments))
            bounds.append(stamp.tz_localize(timezone) if timezone else stamp)
        return bounds[0], bounds[1]

    def empty_file(self, location: str, extent: str | None = None) -> Path:
        """Placeholder raster used when a requested extent has no data."""
        return build_empty_raster_path(self.config.empty_root, location, extent)


def _files_result(paths: list[Path]) -> PathResult:
    return PathResult(paths=[str(path) for path in paths], num_files=len(paths))


async def _counted(candidates: list[ExpectedPath]) -> PathResult:
    """Count every candidate concurrently and keep the non-empty ones in order."""
    counts = await asyncio.gather(*(count_files(candidate.path) for candidate in candidates))
    result = PathResult()
    for candidate, count in zip(candidates, counts):
        if count:
            result.paths.append(str(candidate.path))
            result.num_files += count
            result.collapsed = result.collapsed or candidate.is_folder
    return result


def resolve_paths(
    config: ArchiveConfig,
    items: Sequence[Mapping[str, Any]],
    *,
    collapse: bool | None = None,
    strategy: str = STRATEGY_WALK,
) -> BatchResult:
    """Synchronous entrypoint for callers without an event loop."""
    return asyncio.run(PathResolver(config, collapse=collapse, strategy=strategy).resolve(items))
