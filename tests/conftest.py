from __future__ import annotations

import asyncio
import itertools
from datetime import date, datetime
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from attendance_portal.attendance.model import AttendanceRecord
from attendance_portal.core.enums import AttendanceStatus, Role
from attendance_portal.core.exceptions import RetrievalFailure, WriteConflict, WriteFailure
from attendance_portal.users.model import Principal, UserAccount


class InMemoryUsers:
    def __init__(self, principals, passwords=None):
        self.principals = {p.id: p for p in principals}
        self.passwords = dict(passwords or {})
        self.fail = False

    async def get_by_id(self, user_id: str) -> Optional[Principal]:
        await asyncio.sleep(0)
        if self.fail:
            raise RetrievalFailure("users table unavailable")
        return self.principals.get(user_id)

    async def get_account_by_email(self, email: str) -> Optional[UserAccount]:
        await asyncio.sleep(0)
        if self.fail:
            raise RetrievalFailure("users table unavailable")
        for p in self.principals.values():
            if p.email == email:
                return UserAccount(principal=p, password_hash=self.passwords.get(p.id, ""))
        return None

    async def list_by_role(self, role: Role):
        await asyncio.sleep(0)
        if self.fail:
            raise RetrievalFailure("users table unavailable")
        return sorted((p for p in self.principals.values() if p.role == role), key=lambda p: p.name)


class InMemoryAttendance:
    """Attendance table with a UNIQUE (student_id, date) constraint.

    Every call yields to the event loop before touching the rows so that
    concurrent writers interleave the way they would against a remote store.
    """

    def __init__(self, *, enforce_unique: bool = True):
        self.rows: dict[str, AttendanceRecord] = {}
        self.writes: list[tuple] = []
        self.conflicts = 0
        self.enforce_unique = enforce_unique
        self.fail_reads = False
        self.fail_writes_for: set[str] = set()
        # writes for these students blow up with a non-domain error
        self.broken_writes_for: set[str] = set()
        # when set, existence checks wait for each other before returning
        self.find_barrier: Optional[asyncio.Barrier] = None
        self._ids = itertools.count(1)

    def seed(self, student_id: str, work_date: date, status: AttendanceStatus) -> AttendanceRecord:
        record = AttendanceRecord(
            id=f"r{next(self._ids)}",
            student_id=student_id,
            date=work_date,
            status=status,
            created_at=datetime(2024, 1, 1, 8, 0, 0),
        )
        self.rows[record.id] = record
        return record

    def records_for(self, student_id: str, work_date: date) -> list[AttendanceRecord]:
        return [r for r in self.rows.values() if r.student_id == student_id and r.date == work_date]

    async def _read(self):
        await asyncio.sleep(0)
        if self.fail_reads:
            raise RetrievalFailure("attendance table unavailable")

    async def fetch_by_student(self, student_id: str):
        await self._read()
        return [r for r in self.rows.values() if r.student_id == student_id]

    async def fetch_by_date(self, work_date: date):
        await self._read()
        return [r for r in self.rows.values() if r.date == work_date]

    async def find_for_student_and_date(self, student_id: str, work_date: date):
        await self._read()
        found = self.records_for(student_id, work_date)
        if self.find_barrier is not None:
            barrier = self.find_barrier
            await barrier.wait()
            self.find_barrier = None
        return found[0] if found else None

    async def upsert_record(self, student_id, work_date, status, *, existing_id=None):
        await asyncio.sleep(0)
        if student_id in self.fail_writes_for:
            raise WriteFailure(f"write rejected for {student_id}")
        if student_id in self.broken_writes_for:
            raise RuntimeError(f"store returned garbage for {student_id}")

        if existing_id is not None:
            current = self.rows.get(existing_id)
            if current is None:
                raise WriteFailure(f"attendance record {existing_id} not found")
            updated = AttendanceRecord(
                id=current.id,
                student_id=current.student_id,
                date=current.date,
                status=status,
                created_at=current.created_at,
            )
            self.rows[existing_id] = updated
            self.writes.append(("update", student_id, work_date, status))
            return updated

        if self.enforce_unique and self.records_for(student_id, work_date):
            self.conflicts += 1
            raise WriteConflict(f"duplicate ({student_id}, {work_date})")

        record = AttendanceRecord(
            id=f"r{next(self._ids)}",
            student_id=student_id,
            date=work_date,
            status=status,
            created_at=datetime(2024, 1, 10, 9, 0, 0),
        )
        self.rows[record.id] = record
        self.writes.append(("insert", student_id, work_date, status))
        return record


@pytest.fixture
def teacher() -> Principal:
    return Principal(id="t1", name="Tess Teacher", email="tess@example.com", role=Role.TEACHER)


@pytest.fixture
def alice() -> Principal:
    return Principal(id="a1", name="Alice", email="alice@example.com", role=Role.STUDENT)


@pytest.fixture
def bob() -> Principal:
    return Principal(id="b1", name="Bob", email="bob@example.com", role=Role.STUDENT)


@pytest.fixture
def users(teacher, alice, bob) -> InMemoryUsers:
    # bob first on purpose: the roster must come back sorted by name
    return InMemoryUsers(
        [teacher, bob, alice],
        passwords={
            teacher.id: generate_password_hash("teacher123"),
            alice.id: generate_password_hash("student123"),
            bob.id: generate_password_hash("student123"),
        },
    )


@pytest.fixture
def make_store():
    return InMemoryAttendance


@pytest.fixture
def store() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def fixed_date() -> date:
    return date(2024, 1, 10)
