from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from ..core.enums import DraftStatus
from ..core.exceptions import ValidationError
from ..users.model import Principal
from .model import AttendanceRecord


@dataclass
class DraftEntry:
    student: Principal
    status: DraftStatus = DraftStatus.UNMARKED
    had_existing_record: bool = False
    record_id: Optional[str] = None

    @property
    def is_marked(self) -> bool:
        return self.status is not DraftStatus.UNMARKED


class AttendanceDraft:
    """Unsaved marks for one date, owned by a single editing session.

    Only the owner mutates it; the reconciler reads the pending entries and
    reports back through ``mark_persisted`` once every write has settled.
    """

    def __init__(self, work_date: date, entries: Iterable[DraftEntry] = ()):
        self.work_date = work_date
        self._entries: Dict[str, DraftEntry] = {}
        for entry in entries:
            self._entries[entry.student.id] = entry

    @classmethod
    def from_snapshot(
        cls,
        work_date: date,
        roster: Iterable[Principal],
        records: Iterable[AttendanceRecord],
    ) -> "AttendanceDraft":
        by_student = {r.student_id: r for r in records if r.date == work_date}
        entries = []
        for student in roster:
            record = by_student.get(student.id)
            if record is None:
                entries.append(DraftEntry(student=student))
            else:
                entries.append(
                    DraftEntry(
                        student=student,
                        status=DraftStatus.from_record(record.status),
                        had_existing_record=True,
                        record_id=record.id,
                    )
                )
        return cls(work_date, entries)

    @property
    def entries(self) -> List[DraftEntry]:
        return list(self._entries.values())

    def entry(self, student_id: str) -> DraftEntry:
        try:
            return self._entries[student_id]
        except KeyError:
            raise ValidationError(f"Student {student_id} is not on this roster")

    def mark(self, student_id: str, status: DraftStatus) -> None:
        self.entry(student_id).status = DraftStatus(status)

    def mark_all(self, status: DraftStatus) -> None:
        """Bulk set; touches the draft only, nothing is written until save."""
        for entry in self._entries.values():
            entry.status = DraftStatus(status)

    def pending(self) -> List[DraftEntry]:
        return [e for e in self._entries.values() if e.is_marked]

    @property
    def has_pending(self) -> bool:
        return any(e.is_marked for e in self._entries.values())

    def marks(self) -> Dict[str, str]:
        """Marked statuses keyed by student id (what the web session keeps)."""
        return {sid: e.status.value for sid, e in self._entries.items() if e.is_marked}

    def apply_marks(self, marks: Mapping[str, str]) -> None:
        # students that left the roster since the marks were taken are skipped
        for student_id, status in marks.items():
            if student_id in self._entries:
                self._entries[student_id].status = DraftStatus(status)

    def mark_persisted(self, record: AttendanceRecord) -> None:
        entry = self._entries.get(record.student_id)
        if entry is None:
            return
        entry.had_existing_record = True
        entry.record_id = record.id
        entry.status = DraftStatus.from_record(record.status)
