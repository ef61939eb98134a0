from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..common.results import FetchResult
from ..core.constants import RECENT_HISTORY_LIMIT
from ..core.exceptions import RetrievalFailure
from .aggregator import history, summarize
from .model import AttendanceRecord, AttendanceSummary
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentOverview:
    """Summary and history computed from the same fetch."""

    summary: AttendanceSummary
    records: Tuple[AttendanceRecord, ...]
    error: Optional[RetrievalFailure] = None


class AttendanceHistoryService:
    """Use case: per-student history for both dashboards."""

    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    async def student_history(self, student_id: str, *, limit: Optional[int] = None) -> FetchResult[AttendanceRecord]:
        try:
            records = await self._attendance.fetch_by_student(student_id)
        except RetrievalFailure as e:
            logger.error("history fetch failed for %s: %s", student_id, e)
            return FetchResult.failed(e)
        return FetchResult(items=tuple(history(records, limit=limit)))

    async def student_overview(self, student_id: str, *, limit: Optional[int] = RECENT_HISTORY_LIMIT) -> StudentOverview:
        fetched = await self.student_history(student_id)
        return StudentOverview(
            summary=summarize(fetched.items),
            records=fetched.items if limit is None else fetched.items[:limit],
            error=fetched.error,
        )
