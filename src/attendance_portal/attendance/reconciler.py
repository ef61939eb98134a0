from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Tuple

from ..core.enums import AttendanceStatus
from ..core.exceptions import RetrievalFailure, WriteConflict, WriteFailure
from ..users.model import Principal
from .draft import AttendanceDraft, DraftEntry
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentSaveOutcome:
    student: Principal
    status: AttendanceStatus
    record: Optional[AttendanceRecord] = None
    error: Optional[WriteFailure] = None
    # True when the insert lost a race and was replayed as an update
    retried: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchSaveResult:
    work_date: date
    outcomes: Tuple[StudentSaveOutcome, ...] = ()

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def succeeded(self) -> Tuple[StudentSaveOutcome, ...]:
        return tuple(o for o in self.outcomes if o.ok)

    @property
    def failed(self) -> Tuple[StudentSaveOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok)

    @property
    def partial(self) -> bool:
        """Some writes committed and some did not."""
        return bool(self.succeeded) and bool(self.failed)

    @property
    def written(self) -> int:
        return len(self.succeeded)


class AttendanceReconciler:
    """Brings a draft into the store, one record per (student, date).

    The store only offers separate read, insert and update calls, so the
    existence check and the insert can interleave with another writer. The
    store's UNIQUE (student_id, date) constraint settles such races: a
    rejected insert is re-read and replayed as an update.
    """

    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    async def open_draft(self, roster: Iterable[Principal], work_date: date) -> AttendanceDraft:
        """Draft for ``work_date`` prefilled from what is already stored.

        Raises ``RetrievalFailure`` if the snapshot cannot be read.
        """
        records = await self._attendance.fetch_by_date(work_date)
        return AttendanceDraft.from_snapshot(work_date, roster, records)

    async def upsert(
        self,
        student_id: str,
        work_date: date,
        status: AttendanceStatus,
        *,
        existing_id: Optional[str] = None,
    ) -> Tuple[AttendanceRecord, bool]:
        """Create-or-update one record; returns ``(record, retried)``."""
        if existing_id is None:
            existing = await self._attendance.find_for_student_and_date(student_id, work_date)
            existing_id = existing.id if existing else None

        try:
            record = await self._attendance.upsert_record(student_id, work_date, status, existing_id=existing_id)
            return record, False
        except WriteConflict:
            logger.info("duplicate insert for (%s, %s); retrying as update", student_id, work_date)

        existing = await self._attendance.find_for_student_and_date(student_id, work_date)
        if existing is None:
            raise WriteFailure(f"insert for {student_id} on {work_date} was rejected but no record exists")
        record = await self._attendance.upsert_record(student_id, work_date, status, existing_id=existing.id)
        return record, True

    async def save(self, draft: AttendanceDraft) -> BatchSaveResult:
        pending = draft.pending()
        if not pending:
            logger.debug("nothing marked for %s; no writes issued", draft.work_date)
            return BatchSaveResult(work_date=draft.work_date)

        outcomes = await asyncio.gather(*(self._save_entry(draft.work_date, e) for e in pending))

        for outcome in outcomes:
            if outcome.ok:
                draft.mark_persisted(outcome.record)

        result = BatchSaveResult(work_date=draft.work_date, outcomes=tuple(outcomes))
        logger.info(
            "attendance saved for %s: %d written, %d failed",
            draft.work_date,
            result.written,
            len(result.failed),
        )
        return result

    async def _save_entry(self, work_date: date, entry: DraftEntry) -> StudentSaveOutcome:
        status = entry.status.to_attendance()
        try:
            record, retried = await self.upsert(entry.student.id, work_date, status, existing_id=entry.record_id)
        except WriteFailure as e:
            logger.warning("could not save %s for %s on %s: %s", status.value, entry.student.id, work_date, e)
            return StudentSaveOutcome(student=entry.student, status=status, error=e)
        except RetrievalFailure as e:
            logger.warning("existence check failed for %s on %s: %s", entry.student.id, work_date, e)
            return StudentSaveOutcome(student=entry.student, status=status, error=WriteFailure(str(e)))
        except Exception as e:
            logger.exception("unexpected error saving %s for %s on %s", status.value, entry.student.id, work_date)
            return StudentSaveOutcome(student=entry.student, status=status, error=WriteFailure(str(e)))

        return StudentSaveOutcome(student=entry.student, status=status, record=record, retried=retried)
