from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from mysql.connector import Error as MySQLError

from ..core.enums import Role
from ..core.exceptions import RetrievalFailure
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Principal, UserAccount
from .repository import UserRepository


def _to_principal(row: dict) -> Principal:
    return Principal(
        id=str(row["id"]),
        name=row["name"],
        email=row["email"],
        role=Role(row["role"]),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    async def get_by_id(self, user_id: str) -> Optional[Principal]:
        return await asyncio.to_thread(self._get_by_id, user_id)

    async def get_account_by_email(self, email: str) -> Optional[UserAccount]:
        return await asyncio.to_thread(self._get_account_by_email, email)

    async def list_by_role(self, role: Role) -> Sequence[Principal]:
        return await asyncio.to_thread(self._list_by_role, role)

    def _get_by_id(self, user_id: str) -> Optional[Principal]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("SELECT id, name, email, role FROM users WHERE id=%s", (user_id,))
                row = fetchone(cur)
        except MySQLError as e:
            raise RetrievalFailure(f"Could not load user {user_id}: {e}") from e
        return _to_principal(row) if row else None

    def _get_account_by_email(self, email: str) -> Optional[UserAccount]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "SELECT id, name, email, role, password_hash FROM users WHERE email=%s",
                    (email,),
                )
                row = fetchone(cur)
        except MySQLError as e:
            raise RetrievalFailure(f"Could not load account: {e}") from e
        if not row:
            return None
        return UserAccount(principal=_to_principal(row), password_hash=row.get("password_hash") or "")

    def _list_by_role(self, role: Role) -> Sequence[Principal]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "SELECT id, name, email, role FROM users WHERE role=%s ORDER BY name ASC",
                    (role.value,),
                )
                rows = fetchall(cur)
        except MySQLError as e:
            raise RetrievalFailure(f"Could not list {role.value}s: {e}") from e
        return [_to_principal(r) for r in rows]
