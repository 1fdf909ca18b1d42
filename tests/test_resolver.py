"""Tests for batch descriptor resolution against a temporary archive."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from pathlib import Path

import pandas as pd
import pytest

from archive.descriptor import DatasetDescriptor, apply_defaults
from archive.families import climatology_period
from archive.resolver import STRATEGY_CONSTRUCT, STRATEGY_WALK, PathResolver, resolve_paths
from core.config import ArchiveConfig, build_config
from core.status import summarize_statuses

PREFIX = "rainfall_new_day_statewide"


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


@pytest.fixture()
def cfg(tmp_path: Path) -> ArchiveConfig:
    return build_config(
        {
            "production_dirs": {"hawaii": "production/hawaii", "american_samoa": "production/american_samoa"},
            "empty_root": "empty",
        },
        tmp_path,
    )


@pytest.fixture()
def dataset_dir(cfg: ArchiveConfig) -> Path:
    root = cfg.production_root("hawaii") / "rainfall" / "new" / "day" / "statewide"
    day = date(2021, 11, 1)
    while day <= date(2021, 12, 31):
        _touch(root / "data_map" / f"{day:%Y}" / f"{day:%m}" / f"{PREFIX}_data_map_{day:%Y_%m_%d}.tif")
        day += timedelta(days=1)
    return root


def _rainfall(start: str, end: str, files: list[str] | None = None) -> dict[str, object]:
    return {
        "datatype": "rainfall",
        "production": "new",
        "period": "day",
        "range": {"start": start, "end": end},
        "files": files or ["data_map"],
    }


def test_partial_months_resolve_to_individual_files(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    batch = resolve_paths(cfg, [_rainfall("2021-11-29", "2021-12-02")])

    assert sorted(Path(path).name for path in batch.paths) == [
        f"{PREFIX}_data_map_2021_11_29.tif",
        f"{PREFIX}_data_map_2021_11_30.tif",
        f"{PREFIX}_data_map_2021_12_01.tif",
        f"{PREFIX}_data_map_2021_12_02.tif",
    ]
    assert batch.num_files == 4
    assert batch.statuses[0].resolved


@pytest.mark.parametrize("strategy", [STRATEGY_WALK, STRATEGY_CONSTRUCT])
def test_whole_month_collapses_under_both_strategies(cfg: ArchiveConfig, dataset_dir: Path, strategy: str) -> None:
    batch = resolve_paths(cfg, [_rainfall("2021-11-01", "2021-11-30")], strategy=strategy)

    assert batch.paths == [str(dataset_dir / "data_map" / "2021" / "11")]
    assert batch.num_files == 30
    assert batch.statuses[0].collapsed is True


def test_construct_strategy_lists_edge_days(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    batch = resolve_paths(cfg, [_rainfall("2021-11-30", "2021-12-31")], strategy=STRATEGY_CONSTRUCT)

    assert batch.paths == [
        str(dataset_dir / "data_map" / "2021" / "12"),
        str(dataset_dir / "data_map" / "2021" / "11" / f"{PREFIX}_data_map_2021_11_30.tif"),
    ]
    assert batch.num_files == 32


def test_no_collapse_lists_every_file(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    batch = resolve_paths(cfg, [_rainfall("2021-11-01", "2021-11-30")], collapse=False)

    assert len(batch.paths) == 30
    assert batch.num_files == 30
    assert all(path.endswith(".tif") for path in batch.paths)


def test_missing_hierarchy_path_does_not_affect_valid_descriptor(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    missing = _rainfall("2021-11-29", "2021-12-02")
    missing["production"] = "legacy"

    batch = resolve_paths(cfg, [missing, _rainfall("2021-11-29", "2021-12-02")])

    assert batch.num_files == 4
    assert len(batch.paths) == 4
    assert all("/new/" in path for path in batch.paths)
    assert batch.to_dict() == {"numFiles": 4, "paths": batch.paths}
    assert batch.statuses[0].resolved and batch.statuses[0].num_files == 0


def test_invalid_descriptors_are_skipped_with_reasons(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    items = [
        {"files": ["data_map"]},
        _rainfall("2021-12-02", "2021-11-29"),
        {"datatype": "..", "files": ["data_map"]},
        {"datatype": "rainfall", "production": "new", "period": "day", "files": ["bogus"]},
        _rainfall("2021-12-01", "2021-12-01"),
    ]

    batch = resolve_paths(cfg, items)
    codes = [status.errors[0].code if status.errors else None for status in batch.statuses]

    assert codes == ["MISSING_DATATYPE", "INVALID_DESCRIPTOR", "INVALID_DESCRIPTOR", "UNKNOWN_FILE_TYPE", None]
    assert batch.statuses[1].errors[0].stage == "parse"
    assert batch.num_files == 1

    summary = summarize_statuses(batch.statuses)
    assert summary["total_descriptors"] == 5
    assert summary["resolved_descriptors"] == 1
    assert summary["skipped_indices"] == [0, 1, 2, 3]
    assert summary["skip_codes"] == ["INVALID_DESCRIPTOR", "MISSING_DATATYPE", "UNKNOWN_FILE_TYPE"]


def test_undated_file_type_resolves_static_path(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    station = _touch(dataset_dir / "station_metadata" / f"{PREFIX}_station_metadata.csv")

    batch = resolve_paths(cfg, [_rainfall("2021-11-01", "2021-11-02", files=["station_metadata"])])

    assert batch.paths == [str(station)]
    assert batch.num_files == 1


def test_undated_descriptor_resolves_static_paths(cfg: ArchiveConfig) -> None:
    root = cfg.production_root("hawaii") / "rainfall" / "new" / "statewide"
    station = _touch(root / "station_data" / "rainfall_new_statewide_station_data.csv")

    batch = resolve_paths(cfg, [{"datatype": "rainfall", "production": "new", "files": ["station_data", "metadata"]}])

    assert batch.paths == [str(station)]
    assert batch.num_files == 1
    assert all(status.resolved for status in batch.statuses)


def test_ignition_metadata_lists_metadata_folder(cfg: ArchiveConfig) -> None:
    meta_dir = cfg.production_root("hawaii") / "ignition_probability" / "day" / "lead00" / "statewide" / "metadata"
    created = [_touch(meta_dir / "b.txt"), _touch(meta_dir / "a.txt")]

    batch = resolve_paths(cfg, [{"datatype": "ignition_probability", "period": "day", "files": ["metadata"]}])

    assert sorted(batch.paths) == sorted(str(path) for path in created)
    assert batch.num_files == 2


def test_downscaling_paths_keep_existing_candidates(cfg: ArchiveConfig) -> None:
    root = cfg.production_root("hawaii") / "downscaling_temperature" / "dynamical" / "end-of-century"
    values = "downscaling_temperature_dynamical_end-of-century_rcp45"
    prediction = _touch(root / "rcp45" / f"{values}_prediction_celcius.tif")

    batch = resolve_paths(
        cfg,
        [
            {
                "datatype": "downscaling_temperature",
                "dsm": "dynamical",
                "period": "end-of-century",
                "model": "rcp45",
                "files": ["data_map", "data_map_change"],
            }
        ],
    )

    assert batch.paths == [str(prediction)]
    assert batch.num_files == 1


def test_downscaling_missing_attribute_is_skipped(cfg: ArchiveConfig) -> None:
    batch = resolve_paths(cfg, [{"datatype": "downscaling_rainfall", "period": "present", "files": ["data_map"]}])

    assert batch.paths == []
    assert batch.statuses[0].errors[0].code == "INVALID_DESCRIPTOR"


def test_climatology_paths_derive_period_from_date(cfg: ArchiveConfig) -> None:
    root = cfg.production_root("hawaii") / "prism_climatology"
    metadata = _touch(root / "rainfall" / "prism_climatology_rainfall_metadata.pdf")
    data_map = _touch(
        root
        / "rainfall"
        / "month"
        / "mean_monthly"
        / "statewide"
        / "prism_climatology_month_rainfall_mean_monthly_statewide_march_mm.tif"
    )

    batch = resolve_paths(
        cfg,
        [
            {
                "datatype": "prism_climatology",
                "variable": "rainfall",
                "aggregation": "month",
                "mean_type": "mean_monthly",
                "units": "mm",
                "date": "2021-03-05",
                "files": ["metadata", "data_map"],
            }
        ],
    )

    assert batch.paths == [str(metadata), str(data_map)]


def test_climatology_period_labels() -> None:
    assert climatology_period("mean_30yr_annual", pd.Timestamp("2021-06-01").to_pydatetime()) == "2021-2050"
    assert climatology_period("mean_30yr_annual", pd.Timestamp("2020-06-01").to_pydatetime()) == "1991-2020"
    assert climatology_period("mean_annual_decadal", pd.Timestamp("2015-06-01").to_pydatetime()) == "2011-2020"
    assert climatology_period("mean_monthly", pd.Timestamp("2015-11-01").to_pydatetime()) == "november"
    assert climatology_period("other", pd.Timestamp("2015-11-01").to_pydatetime()) is None


def test_legacy_request_is_converted_before_resolution(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    legacy = {
        "params": {"datatype": "rainfall", "production": "new", "period": "day"},
        "dates": {"start": "2021-11-29", "end": "2021-12-02"},
        "fileData": [{"files": ["data_map"], "fileParams": {"extent": ["statewide", "bi"]}}],
    }

    batch = resolve_paths(cfg, [legacy])

    assert len(batch.statuses) == 2
    assert batch.num_files == 4
    assert batch.statuses[1].num_files == 0


def test_repeated_resolution_is_identical(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    items = [_rainfall("2021-10-15", "2021-12-31"), _rainfall("2021-11-29", "2021-12-02")]

    first = resolve_paths(cfg, items)
    second = resolve_paths(cfg, items)

    assert first.to_dict() == second.to_dict()
    # the first descriptor covers every file, so the whole type folder collapses
    assert first.paths[0] == str(dataset_dir / "data_map")
    assert first.num_files == 61 + 4


def test_defaults_fill_location_extent_lead_and_units(cfg: ArchiveConfig) -> None:
    hawaii = apply_defaults(DatasetDescriptor.from_mapping({"datatype": "rainfall", "location": "mars"}), cfg)
    assert hawaii.location == "hawaii"
    assert hawaii.extent == "statewide"

    samoa = apply_defaults(
        DatasetDescriptor.from_mapping(
            {"datatype": "prism_climatology", "location": "american_samoa", "variable": "air_temperature"}
        ),
        cfg,
    )
    assert samoa.extent is None
    assert samoa.extras["units"] == "celcius"

    ignition = apply_defaults(DatasetDescriptor.from_mapping({"datatype": "ignition_probability"}), cfg)
    assert ignition.lead == "lead00"


def test_dataset_date_range_reads_first_and_last_maps(cfg: ArchiveConfig) -> None:
    maps = cfg.production_root("hawaii") / "rainfall" / "new" / "month" / "statewide" / "data_map"
    for stamp in ("2020_01", "2020_02", "2021_11", "2021_12"):
        _touch(maps / stamp[:4] / f"rainfall_new_month_statewide_data_map_{stamp}.tif")
    resolver = PathResolver(cfg)

    extent = asyncio.run(resolver.dataset_date_range({"datatype": "rainfall", "production": "new", "period": "month"}))

    assert extent == (
        pd.Timestamp("2020-01-01", tz="Pacific/Honolulu"),
        pd.Timestamp("2021-12-01", tz="Pacific/Honolulu"),
    )


def test_dataset_date_range_without_maps_is_none(cfg: ArchiveConfig) -> None:
    resolver = PathResolver(cfg)

    assert asyncio.run(resolver.dataset_date_range({"datatype": "rainfall", "period": "month"})) is None
    assert asyncio.run(resolver.dataset_date_range({"datatype": "rainfall"})) is None


def test_empty_file_placeholder(cfg: ArchiveConfig) -> None:
    resolver = PathResolver(cfg)

    assert resolver.empty_file("hawaii", "bi") == cfg.empty_root / "hawaii" / "bi_empty.tif"
    assert resolver.empty_file("american_samoa") == cfg.empty_root / "american_samoa" / "empty.tif"


def test_unknown_strategy_is_rejected(cfg: ArchiveConfig) -> None:
    with pytest.raises(ValueError, match="Unknown strategy"):
        PathResolver(cfg, strategy="guess")


def test_construct_counts_deep_aggregated_files_once(tmp_path: Path) -> None:
    cfg = build_config(
        {
            "production_dirs": {"hawaii": "production/hawaii"},
            "file_types": {"station_data": {"aggregation": 2, "extension": "csv"}},
        },
        tmp_path,
    )
    type_dir = cfg.production_root("hawaii") / "rainfall" / "new" / "day" / "statewide" / "station_data"
    _touch(type_dir / "2021" / "01" / "a.csv")
    _touch(type_dir / "2021" / "02" / "b.csv")
    _touch(type_dir / "2021" / f"{PREFIX}_station_data_2021.csv")

    batch = resolve_paths(
        cfg, [_rainfall("2021-01-01", "2021-06-15", files=["station_data"])], strategy=STRATEGY_CONSTRUCT
    )

    assert batch.paths == [str(type_dir / "2021")]
    assert batch.num_files == 3


def test_bounds_within_one_day_resolve_regardless_of_time(cfg: ArchiveConfig, dataset_dir: Path) -> None:
    batch = resolve_paths(cfg, [_rainfall("2021-12-01T10:00", "2021-12-01T05:00")])

    assert batch.statuses[0].resolved
    assert [Path(path).name for path in batch.paths] == [f"{PREFIX}_data_map_2021_12_01.tif"]
    assert batch.num_files == 1
