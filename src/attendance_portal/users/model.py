from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class Principal:
    """Authenticated identity with a resolved role.

    Immutable for the lifetime of a session; ``role`` decides every access check.
    """

    id: str
    name: str
    email: str
    role: Role

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT


@dataclass(frozen=True)
class UserAccount:
    """A users row as needed by the login form (principal + password hash)."""

    principal: Principal
    password_hash: str
