from __future__ import annotations

import asyncio
from datetime import date, datetime

import pytest
from mysql.connector import errorcode
from mysql.connector import errors as mysql_errors

from attendance_portal.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from attendance_portal.core.enums import AttendanceStatus
from attendance_portal.core.exceptions import RetrievalFailure, WriteConflict, WriteFailure
from attendance_portal.database.bootstrap import SCHEMA_PATH, _strip_create_db_and_use, iter_sql_statements
from attendance_portal.database.mysql_base import is_duplicate_key


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = 0
        self._result = []

    def execute(self, sql, params=()):
        self.conn.statements.append((sql, params))
        if self.conn.error is not None:
            raise self.conn.error
        if sql.startswith("UPDATE"):
            self.rowcount = self.conn.update_rowcount
        self._result = list(self.conn.rows) if sql.startswith("SELECT") else []

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return self._result

    def close(self):
        pass


class FakeConnection:
    def __init__(self, rows=(), error=None, update_rowcount=1):
        self.rows = rows
        self.error = error
        self.update_rowcount = update_rowcount
        self.statements = []
        self.committed = False
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeFactory:
    def __init__(self, conn):
        self.conn = conn

    def connect(self):
        return self.conn


ROW = {
    "id": "r1",
    "student_id": "a1",
    "date": date(2024, 1, 10),
    "status": "present",
    "created_at": datetime(2024, 1, 10, 9, 0),
}


def test_duplicate_entry_is_detected():
    dup = mysql_errors.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)
    fk = mysql_errors.IntegrityError(msg="Cannot add row", errno=errorcode.ER_NO_REFERENCED_ROW_2)

    assert is_duplicate_key(dup)
    assert not is_duplicate_key(fk)
    assert not is_duplicate_key(ValueError("nope"))


def test_insert_rejected_by_unique_key_is_a_conflict():
    conn = FakeConnection(error=mysql_errors.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY))
    repo = MySQLAttendanceRepository(FakeFactory(conn))

    with pytest.raises(WriteConflict):
        asyncio.run(repo.upsert_record("a1", date(2024, 1, 10), AttendanceStatus.PRESENT))
    assert conn.rolled_back


def test_insert_returns_stored_row():
    conn = FakeConnection(rows=[ROW])
    repo = MySQLAttendanceRepository(FakeFactory(conn))

    record = asyncio.run(repo.upsert_record("a1", date(2024, 1, 10), AttendanceStatus.PRESENT))

    assert record.id == "r1" and record.status == AttendanceStatus.PRESENT
    assert conn.statements[0][0].startswith("INSERT INTO attendance")
    assert conn.committed


def test_update_of_unknown_id_is_write_failure():
    conn = FakeConnection(update_rowcount=0)
    repo = MySQLAttendanceRepository(FakeFactory(conn))

    with pytest.raises(WriteFailure) as excinfo:
        asyncio.run(repo.upsert_record("a1", date(2024, 1, 10), AttendanceStatus.ABSENT, existing_id="gone"))
    assert not isinstance(excinfo.value, WriteConflict)


def test_read_error_is_retrieval_failure():
    conn = FakeConnection(error=mysql_errors.OperationalError(msg="server has gone away"))
    repo = MySQLAttendanceRepository(FakeFactory(conn))

    with pytest.raises(RetrievalFailure):
        asyncio.run(repo.fetch_by_date(date(2024, 1, 10)))


def test_schema_declares_one_record_per_student_and_date():
    sql = _strip_create_db_and_use(SCHEMA_PATH.read_text(encoding="utf-8"))
    statements = list(iter_sql_statements(sql))

    assert len(statements) == 2
    assert not any(s.upper().startswith(("CREATE DATABASE", "USE")) for s in statements)
    attendance = next(s for s in statements if "TABLE IF NOT EXISTS attendance" in s)
    assert "UNIQUE KEY uq_attendance_student_date (student_id, date)" in attendance


def test_statement_splitter_ignores_semicolons_in_quotes():
    assert list(iter_sql_statements("INSERT INTO t VALUES ('a;b'); SELECT 1;")) == [
        "INSERT INTO t VALUES ('a;b')",
        "SELECT 1",
    ]
