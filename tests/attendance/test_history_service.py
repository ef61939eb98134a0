import asyncio
from datetime import date

from attendance_portal.attendance.service import AttendanceHistoryService
from attendance_portal.core.enums import AttendanceStatus


def test_overview_uses_full_history_for_percentage(store, alice):
    for day in range(1, 13):
        status = AttendanceStatus.ABSENT if day <= 3 else AttendanceStatus.PRESENT
        store.seed(alice.id, date(2024, 1, day), status)

    overview = asyncio.run(AttendanceHistoryService(store).student_overview(alice.id, limit=10))

    assert overview.error is None
    assert overview.summary.total == 12
    assert overview.summary.percentage == 75.0
    assert len(overview.records) == 10
    assert overview.records[0].date == date(2024, 1, 12)


def test_history_failure_falls_back_to_empty(store, alice):
    store.seed(alice.id, date(2024, 1, 1), AttendanceStatus.PRESENT)
    store.fail_reads = True

    fetched = asyncio.run(AttendanceHistoryService(store).student_history(alice.id))

    assert not fetched.ok
    assert fetched.items == ()


def test_overview_on_failure_reports_zero(store, alice):
    store.fail_reads = True

    overview = asyncio.run(AttendanceHistoryService(store).student_overview(alice.id))

    assert overview.error is not None
    assert overview.summary.percentage == 0.0
    assert overview.records == ()
