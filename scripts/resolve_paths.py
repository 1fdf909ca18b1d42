"""CLI entrypoint for resolving dataset requests into archive paths."""

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

from archive.resolver import STRATEGIES, STRATEGY_WALK, PathResolver
from core.config import load_config
from core.io_atomic import atomic_write_json, atomic_write_manifest
from core.logging import get_logger, setup_logging
from core.status import summarize_statuses

LOGGER = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Resolve dataset requests into archive paths.")
    parser.add_argument("--config", type=Path, default=PROJECT_ROOT / "configs" / "archive.yaml", help="YAML config path.")
    parser.add_argument("--request", type=Path, required=True, help="JSON file holding a list of dataset descriptors.")
    parser.add_argument("--strategy", choices=STRATEGIES, default=STRATEGY_WALK, help="Resolution strategy.")
    parser.add_argument("--no-collapse", action="store_true", help="Always list individual files.")
    parser.add_argument("--output", type=Path, default=None, help="Write the JSON report here instead of stdout.")
    parser.add_argument("--manifest", type=Path, default=None, help="Write one resolved path per line.")
    parser.add_argument("--progress", action="store_true", help="Show a progress bar over descriptors.")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level.")
    parser.add_argument("--trace-walk", action="store_true", help="Log unreadable and non-date directories met by the walk at DEBUG.")
    return parser.parse_args()


def _load_request(path: Path) -> list[dict[str, object]]:
    if not path.exists():
        raise FileNotFoundError(f"Request not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise ValueError(f"Request must be a JSON list of descriptors: {path}")
    return payload


def main() -> int:
    """Resolve the request and return process exit code."""
    args = parse_args()
    setup_logging(args.log_level, trace_walk=args.trace_walk)

    cfg = load_config(args.config)
    items = _load_request(args.request)
    resolver = PathResolver(
        cfg,
        collapse=False if args.no_collapse else None,
        strategy=args.strategy,
        progress=args.progress,
    )
    batch = asyncio.run(resolver.resolve(items))

    report = {
        **batch.to_dict(),
        "summary": summarize_statuses(batch.statuses),
        "descriptors": [status.to_dict() for status in batch.statuses],
    }
    if args.output is not None:
        atomic_write_json(report, args.output)
        LOGGER.info("Wrote report | path=%s", args.output)
    else:
        sys.stdout.write(json.dumps(report, indent=2) + "\n")

    if args.manifest is not None:
        atomic_write_manifest(batch.paths, args.manifest)
        LOGGER.info("Wrote manifest | path=%s paths=%d", args.manifest, len(batch.paths))

    return 0 if all(status.resolved for status in batch.statuses) else 1


if __name__ == "__main__":
    raise SystemExit(main())
