"""Expected folder and file names for a dated dataset query."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from archive.dates import format_date, shift_period
from archive.decompose import DECOMPOSE_LEVELS, decompose_range
from core.config import FileTypeDetail
from core.paths import join_date_folder


@dataclass(frozen=True)
class DateParts:
    """Date fragments of the paths covering a request.

    ``folder_parts`` are whole folders above ``period`` ("2020", "2021/01").
    ``file_parts`` pair the folder holding a ``period`` file with the file's
    date suffix ("2021/12", "2021_12_01"). ``aggregate_folders`` lists the
    distinct folders of ``file_parts``.
    """

    period: str
    folder_parts: tuple[str, ...]
    file_parts: tuple[tuple[str, str], ...]
    aggregate_folders: tuple[str, ...]


@dataclass(frozen=True)
class ExpectedPath:
    """A path the archive should hold; ``is_folder`` marks whole-folder entries."""

    path: Path
    is_folder: bool


def build_date_parts(period: str, start: datetime, end: datetime) -> DateParts:
    """Decompose the range and format folder/file date fragments for each partition."""
    groups = decompose_range(period, start, end)
    folder_parts: list[str] = []
    file_parts: list[tuple[str, str]] = []
    aggregate_folders: dict[str, None] = {}

    for level, moments in groups.items():
        if level != period:
            folder_parts.extend(format_date(moment, level, "/") for moment in moments)
            continue
        # files sit one level above their own period; yearly files have no date folder
        folder_period = shift_period(period, 1)
        for moment in moments:
            folder = format_date(moment, folder_period, "/")
            aggregate_folders.setdefault(folder, None)
            file_parts.append((folder, format_date(moment, period, "_")))

    return DateParts(
        period=period,
        folder_parts=tuple(folder_parts),
        file_parts=tuple(file_parts),
        aggregate_folders=tuple(aggregate_folders),
    )


def _aggregate_folder(folder: str, period: str, depth: int) -> str:
    """Trim a period folder to the folder holding the file aggregated ``depth`` levels up."""
    target = shift_period(period, depth)
    if target is None:
        return ""
    keep = DECOMPOSE_LEVELS.index(target) + 1
    return "/".join(folder.split("/")[:keep]) if folder else ""


def _is_within(folder: str, parent: str) -> bool:
    """True when date folder ``folder`` is ``parent`` or lies below it; "" is the type folder."""
    return not parent or folder == parent or folder.startswith(f"{parent}/")


def expected_paths(
    dataset_dir: Path,
    prefix: str,
    file_type: str,
    detail: FileTypeDetail,
    date_parts: DateParts,
) -> list[ExpectedPath]:
    """Folders and files expected for one file type of a dated query."""
    type_dir = dataset_dir / file_type

    if detail.aggregation_depth:
        aggregates: dict[str, None] = {}
        for folder in date_parts.aggregate_folders:
            aggregates.setdefault(_aggregate_folder(folder, date_parts.period, detail.aggregation_depth), None)
        # whole folders nested in an aggregate folder would be counted twice
        folders = [
            folder
            for folder in date_parts.folder_parts
            if not any(_is_within(folder, aggregate) for aggregate in aggregates)
        ]
        covered = tuple(folders)
        folders.extend(
            aggregate for aggregate in aggregates if not any(_is_within(aggregate, folder) for folder in covered)
        )
        return [ExpectedPath(join_date_folder(type_dir, folder), True) for folder in folders]

    found = [ExpectedPath(join_date_folder(type_dir, folder), True) for folder in date_parts.folder_parts]
    for folder, suffix in date_parts.file_parts:
        name = f"{prefix}_{file_type}_{suffix}.{detail.extension}"
        found.append(ExpectedPath(join_date_folder(type_dir, folder) / name, False))
    return found


def static_path(dataset_dir: Path, prefix: str, file_type: str, detail: FileTypeDetail) -> Path:
    """Path of an undated file: ``<dataset>/<type>/<prefix>_<type>.<ext>``."""
    return dataset_dir / file_type / f"{prefix}_{file_type}.{detail.extension}"
