from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role of a principal; authoritative for every access decision."""

    STUDENT = "student"
    TEACHER = "teacher"


class AttendanceStatus(str, Enum):
    """Status persisted in the attendance table."""

    PRESENT = "present"
    ABSENT = "absent"


class DraftStatus(str, Enum):
    """Status of a draft entry while a teacher is still editing."""

    PRESENT = "present"
    ABSENT = "absent"
    UNMARKED = "unmarked"

    @classmethod
    def from_record(cls, status: AttendanceStatus) -> "DraftStatus":
        return cls(status.value)

    def to_attendance(self) -> AttendanceStatus:
        if self is DraftStatus.UNMARKED:
            raise ValueError("unmarked entries have no persisted status")
        return AttendanceStatus(self.value)
