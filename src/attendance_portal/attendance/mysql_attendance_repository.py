from __future__ import annotations

import asyncio
import uuid
from datetime import date
from typing import Optional, Sequence

from mysql.connector import Error as MySQLError

from ..core.enums import AttendanceStatus
from ..core.exceptions import RetrievalFailure, WriteConflict, WriteFailure
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord
from .repository import AttendanceRepository

_SELECT = "SELECT id, student_id, date, status, created_at FROM attendance"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        id=str(r["id"]),
        student_id=str(r["student_id"]),
        date=r["date"],
        status=AttendanceStatus(r["status"]),
        created_at=r.get("created_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    """mysql-connector adapter; blocking calls run in a worker thread."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def fetch_by_student(self, student_id: str) -> Sequence[AttendanceRecord]:
        return await asyncio.to_thread(self._select_many, f"{_SELECT} WHERE student_id=%s", (student_id,))

    async def fetch_by_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        return await asyncio.to_thread(self._select_many, f"{_SELECT} WHERE date=%s", (work_date,))

    async def find_for_student_and_date(self, student_id: str, work_date: date) -> Optional[AttendanceRecord]:
        rows = await asyncio.to_thread(
            self._select_many, f"{_SELECT} WHERE student_id=%s AND date=%s", (student_id, work_date)
        )
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
            return await asyncio.to_thread(self._update_status, existing_id, status)
        return await asyncio.to_thread(self._insert, student_id, work_date, status)

    def _select_many(self, sql: str, params: tuple) -> list[AttendanceRecord]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(sql, params)
                rows = fetchall(cur)
        except MySQLError as e:
            raise RetrievalFailure(f"Could not load attendance: {e}") from e
        return [_to_record(r) for r in rows]

    def _insert(self, student_id: str, work_date: date, status: AttendanceStatus) -> AttendanceRecord:
        record_id = str(uuid.uuid4())
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO attendance(id, student_id, date, status) VALUES(%s,%s,%s,%s)",
                    (record_id, student_id, work_date, status.value),
                )
                cur.execute(f"{_SELECT} WHERE id=%s", (record_id,))
                row = fetchone(cur)
        except MySQLError as e:
            if is_duplicate_key(e):
                raise WriteConflict(f"attendance for {student_id} on {work_date} already exists") from e
            raise WriteFailure(f"Could not insert attendance: {e}") from e
        return _to_record(row)

    def _update_status(self, record_id: str, status: AttendanceStatus) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("UPDATE attendance SET status=%s WHERE id=%s", (status.value, record_id))
                if cur.rowcount == 0:
                    raise WriteFailure(f"attendance record {record_id} not found")
                cur.execute(f"{_SELECT} WHERE id=%s", (record_id,))
                row = fetchone(cur)
        except MySQLError as e:
            raise WriteFailure(f"Could not update attendance: {e}") from e
        return _to_record(row)
