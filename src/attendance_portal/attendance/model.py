from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One persisted mark; at most one per (student_id, date)."""

    id: str
    student_id: str
    date: date
    status: AttendanceStatus
    created_at: Optional[datetime] = None

    @property
    def is_present(self) -> bool:
        return self.status == AttendanceStatus.PRESENT


@dataclass(frozen=True)
class AttendanceSummary:
    """Read-model for the dashboards' summary cards."""

    total: int
    present: int
    absent: int
    percentage: float
    below_threshold: bool
