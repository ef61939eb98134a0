from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """The only component that talks to the attendance table.

    Executes single reads and writes; merging drafts with stored rows is the
    reconciler's job. Reads raise ``RetrievalFailure``; writes raise
    ``WriteConflict`` for a duplicate (student_id, date) insert and
    ``WriteFailure`` for any other rejection.
    """

    async def fetch_by_student(self, student_id: str) -> Sequence[AttendanceRecord]:
        """All records of a student, in no particular order."""

        raise NotImplementedError

    async def fetch_by_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def find_for_student_and_date(self, student_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    async def upsert_record(
        self,
        student_id: str,
        work_date: date,
        status: AttendanceStatus,
        *,
        existing_id: Optional[str] = None,
    ) -> AttendanceRecord:
        """Update ``existing_id``'s status when given, otherwise insert one row."""

        raise NotImplementedError
