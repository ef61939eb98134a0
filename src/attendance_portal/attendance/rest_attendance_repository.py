from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..common.datetime_utils import coerce_date
from ..core.enums import AttendanceStatus
from ..core.exceptions import RetrievalFailure, WriteConflict, WriteFailure
from ..database.rest_client import RestClient, RestStoreError
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = ("id", "student_id", "date", "status", "created_at")


def _to_record(r: dict) -> AttendanceRecord:
    created_at = r.get("created_at")
    return AttendanceRecord(
        id=str(r["id"]),
        student_id=str(r["student_id"]),
        date=coerce_date(r["date"]),
        status=AttendanceStatus(r["status"]),
        created_at=datetime.fromisoformat(created_at) if created_at else None,
    )


class RestAttendanceRepository(AttendanceRepository):
    """Adapter for a PostgREST/Supabase ``attendance`` table."""

    def __init__(self, client: RestClient):
        self._client = client

    async def _select(self, **eq) -> list[AttendanceRecord]:
        try:
            rows = await self._client.select("attendance", columns=_COLUMNS, eq=eq)
        except RestStoreError as e:
            raise RetrievalFailure(f"Could not load attendance: {e}") from e
        return [_to_record(r) for r in rows]

    async def fetch_by_student(self, student_id: str) -> Sequence[AttendanceRecord]:
        return await self._select(student_id=student_id)

    async def fetch_by_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        return await self._select(date=work_date.isoformat())

    async def find_for_student_and_date(self, student_id: str, work_date: date) -> Optional[AttendanceRecord]:
        rows = await self._select(student_id=student_id, date=work_date.isoformat())
        return rows[0] if rows else None

    async def upsert_record(
        self,
        student_id: str,
        work_date: date,
        status: AttendanceStatus,
        *,
        existing_id: Optional[str] = None,
    ) -> AttendanceRecord:
        if existing_id is not None:
            try:
                rows = await self._client.update("attendance", {"status": status.value}, eq={"id": existing_id})
            except RestStoreError as e:
                raise WriteFailure(f"Could not update attendance: {e}") from e
            if not rows:
                raise WriteFailure(f"attendance record {existing_id} not found")
            return _to_record(rows[0])

        try:
            row = await self._client.insert(
                "attendance",
                {"student_id": student_id, "date": work_date.isoformat(), "status": status.value},
            )
        except RestStoreError as e:
            if e.is_unique_violation:
                raise WriteConflict(f"attendance for {student_id} on {work_date} already exists") from e
            raise WriteFailure(f"Could not insert attendance: {e}") from e
        return _to_record(row)
