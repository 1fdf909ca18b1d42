"""Atomic file writing utilities."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable


def _tmp_path(dest: Path) -> Path:
    """Return deterministic temp path next to destination."""
    return dest.with_suffix(f"{dest.suffix}.tmp")


def _atomic_write_text(text: str, dest: Path, kind: str) -> None:
    tmp = _tmp_path(dest)
    tmp.parent.mkdir(parents=True, exist_ok=True)

    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, dest)
    except Exception as exc:
        if tmp.exists():
            tmp.unlink()
        raise RuntimeError(f"Failed to atomically write {kind}: {dest}") from exc


def atomic_write_json(payload: dict[str, Any], dest: Path) -> None:
    """Atomically write a dictionary to JSON."""
    _atomic_write_text(json.dumps(payload, indent=2, ensure_ascii=False), dest, "json")


def atomic_write_manifest(paths: Iterable[str], dest: Path) -> None:
    """Atomically write one path per line, the input format of the packaging tools."""
    lines = [str(path) for path in paths]
    _atomic_write_text("\n".join(lines) + ("\n" if lines else ""), dest, "manifest")
