from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.reconciler import AttendanceReconciler
from .attendance.repository import AttendanceRepository
from .attendance.rest_attendance_repository import RestAttendanceRepository
from .attendance.service import AttendanceHistoryService
from .core.exceptions import ValidationError
from .database.bootstrap import as_db_config
from .database.connection import DatabaseConnection
from .database.rest_client import RestClient, RestConfig
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.rest_user_repository import RestUserRepository
from .users.roster import RosterProvider
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    attendance_repo: AttendanceRepository

    auth_service: AuthService
    roster: RosterProvider
    reconciler: AttendanceReconciler
    history_service: AttendanceHistoryService


def build_services(users_repo: UserRepository, attendance_repo: AttendanceRepository) -> Container:
    return Container(
        users_repo=users_repo,
        attendance_repo=attendance_repo,
        auth_service=AuthService(users_repo),
        roster=RosterProvider(users_repo),
        reconciler=AttendanceReconciler(attendance_repo),
        history_service=AttendanceHistoryService(attendance_repo),
    )


def build_container(
    *,
    store_backend: str = "mysql",
    db_config: Optional[dict] = None,
    rest_config: Optional[dict] = None,
) -> Container:
    if store_backend == "mysql":
        conn = DatabaseConnection.get_instance(as_db_config(db_config or {}))
        return build_services(MySQLUserRepository(conn), MySQLAttendanceRepository(conn))

    if store_backend == "rest":
        rest_config = rest_config or {}
        client = RestClient(
            RestConfig(
                url=str(rest_config["url"]),
                key=str(rest_config.get("key", "")),
                timeout=float(rest_config.get("timeout", 10)),
            )
        )
        return build_services(RestUserRepository(client), RestAttendanceRepository(client))

    raise ValidationError(f"Unknown STORE_BACKEND: {store_backend!r}")
