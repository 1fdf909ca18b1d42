"""Non-blocking filesystem probes.

Every call runs the blocking syscall in a worker thread so the event loop can
interleave sibling directory scans.
"""

from __future__ import annotations

import asyncio
import os
import stat
from dataclasses import dataclass
from pathlib import Path

ENTRY_FILE = "file"
ENTRY_DIR = "dir"
ENTRY_OTHER = "other"


@dataclass(frozen=True)
class DirEntry:
    """A directory child and its kind, without following symlinks."""

    name: str
    path: Path
    kind: str


def _entry_kind(entry: os.DirEntry[str]) -> str:
    if entry.is_symlink():
        return ENTRY_OTHER
    if entry.is_file(follow_symlinks=False):
        return ENTRY_FILE
    if entry.is_dir(follow_symlinks=False):
        return ENTRY_DIR
    return ENTRY_OTHER


def _scan(root: Path) -> list[DirEntry]:
    with os.scandir(root) as entries:
        return [DirEntry(name=entry.name, path=root / entry.name, kind=_entry_kind(entry)) for entry in entries]


async def scan_dir(root: Path) -> list[DirEntry]:
    """List ``root`` in directory order. Raises OSError when it cannot be read."""
    return await asyncio.to_thread(_scan, root)


async def path_exists(path: Path) -> bool:
    """Return True when ``path`` exists (symlinks are not followed)."""
    try:
        await asyncio.to_thread(os.lstat, path)
    except OSError:
        return False
    return True


async def count_files(path: Path) -> int:
    """Count regular files at or below ``path``; 0 when it does not exist."""
    try:
        info = await asyncio.to_thread(os.lstat, path)
    except OSError:
        return 0

    if stat.S_ISREG(info.st_mode):
        return 1
    if not stat.S_ISDIR(info.st_mode):
        return 0

    try:
        children = await scan_dir(path)
    except OSError:
        return 0
    counts = await asyncio.gather(*(count_files(child.path) for child in children))
    return sum(counts)


def _list_files(root: Path) -> list[Path]:
    return [entry.path for entry in _scan(root) if entry.kind == ENTRY_FILE]


async def list_files(root: Path) -> list[Path]:
    """Regular files directly inside ``root``; empty when it cannot be read."""
    try:
        return await asyncio.to_thread(_list_files, root)
    except OSError:
        return []


def edge_file(root: Path, last: bool = False) -> Path | None:
    """Follow the first (or last) directory by name down to a leaf file.

    Directories without any file below them are skipped. Returns None when
    the tree holds no file at all.
    """
    entries = sorted(_scan(root), key=lambda entry: entry.name, reverse=last)
    for entry in entries:
        if entry.kind == ENTRY_DIR:
            leaf = edge_file(entry.path, last)
            if leaf is not None:
                return leaf
    files = [entry.path for entry in entries if entry.kind == ENTRY_FILE]
    return files[0] if files else None
