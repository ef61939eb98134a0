"""Pure attendance arithmetic; no I/O."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from ..core.constants import ATTENDANCE_WARNING_THRESHOLD
from .model import AttendanceRecord, AttendanceSummary


def percentage(records: Sequence[AttendanceRecord]) -> float:
    """100 x present / total, or 0.0 for no records."""
    if not records:
        return 0.0
    present = sum(1 for r in records if r.is_present)
    return present / len(records) * 100


def summarize(records: Sequence[AttendanceRecord], *, threshold: float = ATTENDANCE_WARNING_THRESHOLD) -> AttendanceSummary:
    present = sum(1 for r in records if r.is_present)
    pct = percentage(records)
    return AttendanceSummary(
        total=len(records),
        present=present,
        absent=len(records) - present,
        percentage=pct,
        below_threshold=pct < threshold,
    )


def history(records: Iterable[AttendanceRecord], *, limit: Optional[int] = None) -> List[AttendanceRecord]:
    """Newest first; ``limit`` keeps only the most recent entries."""
    ordered = sorted(records, key=lambda r: r.date, reverse=True)
    return ordered if limit is None else ordered[:limit]
