"""Conversion of the nested package request shape into flat descriptors.

Older clients group several file types with a map of parameter variants:

    {"params": {...shared...},
     "dates": {"start": ..., "end": ...},
     "fileData": [{"files": [...], "fileParams": {"extent": ["statewide", "bi"], ...}}]}

Every combination of variants becomes its own flat descriptor mapping.
"""

from __future__ import annotations

from itertools import product
from typing import Any, Mapping, Sequence


def is_legacy_request(items: Sequence[Any]) -> bool:
    """True when the first item uses the nested ``fileData`` shape."""
    return bool(items) and isinstance(items[0], Mapping) and "fileData" in items[0]


def expand_variants(variants: Mapping[str, Sequence[Any]]) -> list[dict[str, Any]]:
    """Cartesian product of a variant map, first key varying slowest."""
    keys = list(variants)
    return [dict(zip(keys, values)) for values in product(*(variants[key] for key in keys))]


def convert_legacy_request(items: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Flatten legacy items; malformed shapes raise KeyError/TypeError to the caller."""
    converted: list[dict[str, Any]] = []
    for item in items:
        dates = item.get("dates") or {}
        for file_item in item["fileData"]:
            for combination in expand_variants(file_item["fileParams"]):
                converted.append(
                    {
                        "files": file_item["files"],
                        "range": {"start": dates.get("start"), "end": dates.get("end")},
                        **(item.get("params") or {}),
                        **combination,
                    }
                )
    return converted
