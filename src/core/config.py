"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

DEFAULT_HIERARCHY: tuple[str, ...] = (
    "datatype",
    "production",
    "aggregation",
    "period",
    "lead",
    "timescale",
    "extent",
    "fill",
)

DEFAULT_TIMEZONES: dict[str, str] = {
    "hawaii": "Pacific/Honolulu",
    "american_samoa": "Pacific/Pago_Pago",
}


@dataclass(frozen=True)
class FileTypeDetail:
    """Date encoding and extension for one file-type tag.

    ``aggregation_depth`` is None for undated files, 0 for files dated at the
    dataset period and n for files dated n levels coarser than the period.
    """

    aggregation_depth: int | None
    extension: str


DEFAULT_FILE_TYPES: dict[str, FileTypeDetail] = {
    "metadata": FileTypeDetail(aggregation_depth=0, extension="txt"),
    "data_map": FileTypeDetail(aggregation_depth=0, extension="tif"),
    "se": FileTypeDetail(aggregation_depth=0, extension="tif"),
    "anom": FileTypeDetail(aggregation_depth=0, extension="tif"),
    "anom_se": FileTypeDetail(aggregation_depth=0, extension="tif"),
    "station_metadata": FileTypeDetail(aggregation_depth=None, extension="csv"),
    "station_data": FileTypeDetail(aggregation_depth=1, extension="csv"),
}


@dataclass(frozen=True)
class ArchiveConfig:
    """Immutable archive layout shared by every resolution."""

    production_dirs: Mapping[str, Path]
    default_location: str
    empty_root: Path
    hierarchy: tuple[str, ...] = DEFAULT_HIERARCHY
    file_types: Mapping[str, FileTypeDetail] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_FILE_TYPES))
    )
    timezones: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(DEFAULT_TIMEZONES)))
    collapse: bool = True

    @property
    def locations(self) -> tuple[str, ...]:
        """Locations with a production root."""
        return tuple(self.production_dirs)

    def production_root(self, location: str) -> Path:
        """Return the production root for a location."""
        if location not in self.production_dirs:
            raise KeyError(f"No production directory configured for location: {location}")
        return self.production_dirs[location]

    def file_type(self, tag: str) -> FileTypeDetail:
        """Return the file-type detail for a tag."""
        if tag not in self.file_types:
            raise KeyError(f"Unknown file type: {tag}")
        return self.file_types[tag]


def _resolve_path(value: str, base_dir: Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else (base_dir / path).resolve()


def _get_required(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise KeyError(f"Missing required config key: {key}")
    return data[key]


def _parse_file_types(raw: Any) -> dict[str, FileTypeDetail]:
    if raw is None:
        return dict(DEFAULT_FILE_TYPES)
    if not isinstance(raw, dict):
        raise ValueError("file_types must be a mapping of tag -> {aggregation, extension}.")

    parsed: dict[str, FileTypeDetail] = {}
    for tag, detail in raw.items():
        if not isinstance(detail, dict):
            raise ValueError(f"file_types.{tag} must be a mapping.")
        depth = detail.get("aggregation")
        parsed[str(tag)] = FileTypeDetail(
            aggregation_depth=None if depth is None else int(depth),
            extension=str(detail.get("extension", "")),
        )
    return parsed


def build_config(raw: Mapping[str, Any], base_dir: Path) -> ArchiveConfig:
    """Build and validate config from an already-parsed mapping."""
    data = dict(raw)
    production_raw = _get_required(data, "production_dirs")
    if not isinstance(production_raw, dict):
        raise ValueError("production_dirs must be a mapping of location -> directory.")

    production_dirs = {str(loc): _resolve_path(str(path), base_dir) for loc, path in production_raw.items()}
    timezones = dict(DEFAULT_TIMEZONES)
    timezones.update({str(loc): str(tz) for loc, tz in (data.get("timezones") or {}).items()})

    cfg = ArchiveConfig(
        production_dirs=MappingProxyType(production_dirs),
        default_location=str(data.get("default_location", "hawaii")),
        empty_root=_resolve_path(str(data.get("empty_root", "empty")), base_dir),
        hierarchy=tuple(str(item) for item in data.get("hierarchy", DEFAULT_HIERARCHY)),
        file_types=MappingProxyType(_parse_file_types(data.get("file_types"))),
        timezones=MappingProxyType(timezones),
        collapse=bool(data.get("collapse", True)),
    )
    validate_config(cfg)
    return cfg


def load_config(path: Path) -> ArchiveConfig:
    """Load and validate archive config from YAML."""
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a mapping: {path}")
    return build_config(raw, path.resolve().parent)


def validate_config(cfg: ArchiveConfig) -> None:
    """Validate config fields and semantic constraints."""
    if not cfg.production_dirs:
        raise ValueError("production_dirs cannot be empty.")
    if cfg.default_location not in cfg.production_dirs:
        raise ValueError(f"default_location has no production directory: {cfg.default_location}")
    if not cfg.hierarchy:
        raise ValueError("hierarchy cannot be empty.")
    if len(set(cfg.hierarchy)) != len(cfg.hierarchy):
        raise ValueError(f"hierarchy contains duplicate attributes: {list(cfg.hierarchy)}")
    for tag, detail in cfg.file_types.items():
        if detail.aggregation_depth is not None and detail.aggregation_depth < 0:
            raise ValueError(f"file_types.{tag}.aggregation must be >= 0.")
        if not detail.extension.strip() or not detail.extension.isalnum():
            raise ValueError(f"file_types.{tag}.extension must be a non-empty alphanumeric string.")
