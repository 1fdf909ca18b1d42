"""CLI entrypoint reporting the first and last map dates of a dataset."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from archive.resolver import PathResolver
from core.config import load_config
from core.logging import setup_logging


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Report the date extent of a dataset's maps.")
    parser.add_argument("--config", type=Path, default=PROJECT_ROOT / "configs" / "archive.yaml", help="YAML config path.")
    parser.add_argument("--dataset", type=Path, required=True, help="JSON file holding one dataset descriptor.")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level.")
    return parser.parse_args()


def main() -> int:
    """Print the dataset date extent and return process exit code."""
    args = parse_args()
    setup_logging(args.log_level)

    cfg = load_config(args.config)
    dataset = json.loads(args.dataset.read_text(encoding="utf-8"))
    extent = asyncio.run(PathResolver(cfg).dataset_date_range(dataset))
    if extent is None:
        sys.stdout.write("no dated maps found\n")
        return 1

    first, last = extent
    sys.stdout.write(json.dumps({"start": first.isoformat(), "end": last.isoformat()}) + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
