from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..core.exceptions import RetrievalFailure
from ..database.rest_client import RestClient, RestStoreError
from .model import Principal, UserAccount
from .repository import UserRepository

_COLUMNS = ("id", "name", "email", "role")


def _to_principal(row: dict) -> Principal:
    return Principal(id=str(row["id"]), name=row["name"], email=row["email"], role=Role(row["role"]))


class RestUserRepository(UserRepository):
    def __init__(self, client: RestClient):
        self._client = client

    async def get_by_id(self, user_id: str) -> Optional[Principal]:
        try:
            rows = await self._client.select("users", columns=_COLUMNS, eq={"id": user_id})
        except RestStoreError as e:
            raise RetrievalFailure(f"Could not load user {user_id}: {e}") from e
        return _to_principal(rows[0]) if rows else None

    async def get_account_by_email(self, email: str) -> Optional[UserAccount]:
        try:
            rows = await self._client.select("users", columns=_COLUMNS + ("password_hash",), eq={"email": email})
        except RestStoreError as e:
            raise RetrievalFailure(f"Could not load account: {e}") from e
        if not rows:
            return None
        return UserAccount(principal=_to_principal(rows[0]), password_hash=rows[0].get("password_hash") or "")

    async def list_by_role(self, role: Role) -> Sequence[Principal]:
        try:
            rows = await self._client.select("users", columns=_COLUMNS, eq={"role": role.value}, order="name")
        except RestStoreError as e:
            raise RetrievalFailure(f"Could not list {role.value}s: {e}") from e
        return [_to_principal(r) for r in rows]
