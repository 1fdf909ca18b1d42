"""Per-descriptor resolution status and batch summaries."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

STATUS_RESOLVED = "resolved"
STATUS_SKIPPED = "skipped"


@dataclass
class SkipReason:
    """Structured reason a descriptor contributed nothing to a batch."""

    stage: str
    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass
class DescriptorStatus:
    """Outcome of one descriptor inside a batch resolution."""

    index: int
    datatype: str | None = None
    location: str | None = None
    num_files: int = 0
    num_paths: int = 0
    collapsed: bool = False
    status: str = STATUS_SKIPPED
    errors: list[SkipReason] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.status == STATUS_RESOLVED

    def to_dict(self) -> dict[str, Any]:
        """Serialize status as a JSON-ready dictionary."""
        return asdict(self)


def add_skip_reason(status: DescriptorStatus, stage: str, code: str, message: str, **context: Any) -> None:
    """Append a structured skip reason into status."""
    status.errors.append(SkipReason(stage=stage, code=code, message=message, context=context))


def finalize_status(status: DescriptorStatus) -> DescriptorStatus:
    """Mark the status resolved unless a skip reason was recorded."""
    status.status = STATUS_SKIPPED if status.errors else STATUS_RESOLVED
    return status


def summarize_statuses(statuses: list[DescriptorStatus]) -> dict[str, Any]:
    """Build global summary across all descriptors of a batch."""
    total = len(statuses)
    resolved = sum(1 for item in statuses if item.resolved)

    return {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "total_descriptors": total,
        "resolved_descriptors": resolved,
        "skipped_descriptors": total - resolved,
        "total_files": sum(item.num_files for item in statuses),
        "total_paths": sum(item.num_paths for item in statuses),
        "skipped_indices": [item.index for item in statuses if not item.resolved],
        "skip_codes": sorted({error.code for item in statuses for error in item.errors}),
    }
