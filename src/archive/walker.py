"""Date-bounded walk over a date-partitioned directory tree.

Directory tiers below the walk root are date components (``2021/12/...``) and
leaves are files carrying a date suffix. Branches outside the query range are
pruned, and a directory whose every leaf matches is collapsed into its own
path so callers receive a handful of folders instead of every file.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from archive.codec import file_in_range
from archive.dates import DATE_ORIGIN, period_at_depth, set_date_part, truncate
from archive.listing import ENTRY_DIR, ENTRY_FILE, DirEntry, scan_dir
from core.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class WalkResult:
    """Paths found under one directory.

    ``collapsible`` is True when every entry below matched; ``collapsed`` is True
    when this node or any descendant was replaced by its directory path.
    """

    paths: list[str] = field(default_factory=list)
    num_files: int = 0
    collapsible: bool = False
    collapsed: bool = False


EMPTY_RESULT = WalkResult()


class TreeWalker:
    """Walks a date tree for files dated inside [start, end], inclusive at the file's own depth."""

    def __init__(self, start: datetime, end: datetime, *, collapse: bool = True) -> None:
        if end < start:
            raise ValueError(f"Walk end precedes start: {start} > {end}")
        self.start = start
        self.end = end
        self.collapse = collapse

    async def walk(self, root: Path, date: datetime = DATE_ORIGIN, depth: int = 0) -> WalkResult:
        """Walk ``root``, whose children are date components at ``depth``."""
        try:
            entries = await scan_dir(root)
        except OSError as exc:
            LOGGER.debug("Walk root unreadable | root=%s error=%s", root, exc)
            return EMPTY_RESULT

        collapsible = True
        branches: list[asyncio.Future[WalkResult] | WalkResult] = []
        for entry in entries:
            if entry.kind == ENTRY_FILE:
                if file_in_range(entry.name, self.start, self.end):
                    branches.append(WalkResult(paths=[str(entry.path)], num_files=1, collapsible=True))
                else:
                    collapsible = False
            elif entry.kind == ENTRY_DIR:
                branch = self._descend(entry, date, depth)
                if branch is None:
                    collapsible = False
                else:
                    branches.append(branch)
            else:
                # symlinks and special files are never followed
                collapsible = False

        results = await self._join(branches)

        paths: list[str] = []
        num_files = 0
        collapsed = False
        for result in results:
            paths.extend(result.paths)
            num_files += result.num_files
            collapsible = collapsible and result.collapsible
            collapsed = collapsed or result.collapsed

        if self.collapse and collapsible:
            return WalkResult(paths=[str(root)], num_files=num_files, collapsible=True, collapsed=True)
        return WalkResult(paths=paths, num_files=num_files, collapsible=collapsible, collapsed=collapsed)

    def _descend(self, entry: DirEntry, date: datetime, depth: int) -> asyncio.Future[WalkResult] | None:
        """Schedule a walk into ``entry`` when its date lies in range; None when pruned or malformed."""
        try:
            period = period_at_depth(depth)
            sub_date = set_date_part(date, entry.name, depth)
        except ValueError:
            LOGGER.debug("Skipping non-date directory | path=%s depth=%d", entry.path, depth)
            return None

        if not truncate(self.start, period) <= sub_date <= truncate(self.end, period):
            return None
        return asyncio.ensure_future(self.walk(entry.path, sub_date, depth + 1))

    async def _join(self, branches: list[asyncio.Future[WalkResult] | WalkResult]) -> list[WalkResult]:
        """Await pending branches; a failed branch becomes an empty, non-collapsible result."""
        pending = [branch for branch in branches if isinstance(branch, asyncio.Future)]
        outcomes = iter(await asyncio.gather(*pending, return_exceptions=True))

        results: list[WalkResult] = []
        for branch in branches:
            if not isinstance(branch, asyncio.Future):
                results.append(branch)
                continue
            outcome = next(outcomes)
            if isinstance(outcome, Exception):
                LOGGER.warning("Walk branch failed | error=%s", outcome)
                results.append(EMPTY_RESULT)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)
        return results


async def walk_between_dates(root: Path, start: datetime, end: datetime, *, collapse: bool = True) -> WalkResult:
    """Convenience wrapper around TreeWalker.walk."""
    return await TreeWalker(start, end, collapse=collapse).walk(root)
