"""Path utilities for hierarchy joins and fixed archive locations."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

EMPTY_RASTER_NAME = "empty.tif"


def ensure_within_root(path: Path, root: Path) -> None:
    """Ensure the given path resolves under the provided root path."""
    resolved_path = path.resolve()
    resolved_root = root.resolve()
    try:
        resolved_path.relative_to(resolved_root)
    except ValueError as exc:
        raise ValueError(f"Path escapes root: {resolved_path} (root: {resolved_root})") from exc


def join_under_root(root: Path, parts: Iterable[str]) -> Path:
    """Join attribute values below root, rejecting values that would leave it."""
    path = root
    for part in parts:
        if not part or part in {".", ".."} or "/" in part or "\\" in part:
            raise ValueError(f"Invalid path component: {part!r}")
        path = path / part
    ensure_within_root(path, root)
    return path


def join_date_folder(base: Path, folder: str) -> Path:
    """Append a slash-delimited date folder ("2021/12"); empty means base itself."""
    return base.joinpath(*folder.split("/")) if folder else base


def build_empty_raster_path(empty_root: Path, location: str, extent: str | None = None) -> Path:
    """Build the placeholder raster path for a location and optional extent."""
    name = f"{extent}_{EMPTY_RASTER_NAME}" if extent else EMPTY_RASTER_NAME
    return join_under_root(empty_root, [location]) / name
