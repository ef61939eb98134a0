from __future__ import annotations

import asyncio
import json
from datetime import date

import httpx
import pytest

from attendance_portal.attendance.reconciler import AttendanceReconciler
from attendance_portal.attendance.rest_attendance_repository import RestAttendanceRepository
from attendance_portal.core.enums import AttendanceStatus, DraftStatus, Role
from attendance_portal.core.exceptions import RetrievalFailure, WriteConflict, WriteFailure
from attendance_portal.database.rest_client import RestClient, RestConfig
from attendance_portal.users.rest_user_repository import RestUserRepository

ROW = {
    "id": "r1",
    "student_id": "a1",
    "date": "2024-01-10",
    "status": "present",
    "created_at": "2024-01-10T09:00:00+00:00",
}


def _client(handler) -> RestClient:
    return RestClient(
        RestConfig(url="http://store.test/rest/v1/", key="secret"),
        transport=httpx.MockTransport(handler),
    )


def test_select_sends_equality_filters_and_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(200, json=[ROW])

    repo = RestAttendanceRepository(_client(handler))
    found = asyncio.run(repo.find_for_student_and_date("a1", date(2024, 1, 10)))

    assert found.id == "r1"
    assert found.date == date(2024, 1, 10)
    assert found.status == AttendanceStatus.PRESENT
    assert seen["path"] == "/rest/v1/attendance"
    assert seen["params"]["student_id"] == "eq.a1"
    assert seen["params"]["date"] == "eq.2024-01-10"
    assert seen["apikey"] == "secret"


def test_insert_duplicate_maps_to_write_conflict():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        return httpx.Response(409, json={"code": "23505", "message": "duplicate key value"})

    repo = RestAttendanceRepository(_client(handler))

    with pytest.raises(WriteConflict):
        asyncio.run(repo.upsert_record("a1", date(2024, 1, 10), AttendanceStatus.PRESENT))


def test_insert_other_rejection_maps_to_write_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"code": "42501", "message": "permission denied"})

    repo = RestAttendanceRepository(_client(handler))

    with pytest.raises(WriteFailure) as excinfo:
        asyncio.run(repo.upsert_record("a1", date(2024, 1, 10), AttendanceStatus.PRESENT))
    assert not isinstance(excinfo.value, WriteConflict)


def test_update_patches_status_by_id():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["params"] = dict(request.url.params)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[dict(ROW, status="absent")])

    repo = RestAttendanceRepository(_client(handler))
    record = asyncio.run(repo.upsert_record("a1", date(2024, 1, 10), AttendanceStatus.ABSENT, existing_id="r1"))

    assert seen == {"method": "PATCH", "params": {"id": "eq.r1"}, "body": {"status": "absent"}}
    assert record.status == AttendanceStatus.ABSENT


def test_update_of_missing_row_is_write_failure():
    repo = RestAttendanceRepository(_client(lambda request: httpx.Response(200, json=[])))

    with pytest.raises(WriteFailure):
        asyncio.run(repo.upsert_record("a1", date(2024, 1, 10), AttendanceStatus.ABSENT, existing_id="gone"))


def test_read_errors_are_retrieval_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("store unreachable", request=request)

    with pytest.raises(RetrievalFailure):
        asyncio.run(RestAttendanceRepository(_client(handler)).fetch_by_date(date(2024, 1, 10)))


def test_students_are_requested_ordered_by_name():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json=[
                {"id": "a1", "name": "Alice", "email": "alice@example.com", "role": "student"},
                {"id": "b1", "name": "Bob", "email": "bob@example.com", "role": "student"},
            ],
        )

    students = asyncio.run(RestUserRepository(_client(handler)).list_by_role(Role.STUDENT))

    assert [s.name for s in students] == ["Alice", "Bob"]
    assert seen["params"]["role"] == "eq.student"
    assert seen["params"]["order"] == "name.asc"


def test_non_json_success_body_fails_only_that_student(alice, bob):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=[])
        row = json.loads(request.content)[0]
        if row["student_id"] == bob.id:
            return httpx.Response(201, text="<html>gateway</html>")
        return httpx.Response(201, json=[dict(ROW, student_id=row["student_id"])])

    engine = AttendanceReconciler(RestAttendanceRepository(_client(handler)))
    draft = asyncio.run(engine.open_draft([alice, bob], date(2024, 1, 10)))
    draft.mark_all(DraftStatus.PRESENT)
    result = asyncio.run(engine.save(draft))

    assert result.partial
    assert [o.student.id for o in result.failed] == [bob.id]
    assert "non-JSON" in str(result.failed[0].error)


def test_foreign_key_409_is_not_a_duplicate():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"code": "23503", "message": "violates foreign key constraint"})

    repo = RestAttendanceRepository(_client(handler))

    with pytest.raises(WriteFailure) as excinfo:
        asyncio.run(repo.upsert_record("nobody", date(2024, 1, 10), AttendanceStatus.PRESENT))
    assert not isinstance(excinfo.value, WriteConflict)


def test_409_without_code_counts_as_duplicate():
    repo = RestAttendanceRepository(_client(lambda request: httpx.Response(409, text="conflict")))

    with pytest.raises(WriteConflict):
        asyncio.run(repo.upsert_record("a1", date(2024, 1, 10), AttendanceStatus.PRESENT))
