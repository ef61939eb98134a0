from __future__ import annotations

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.exceptions import AuthenticationError
from .model import Principal
from .repository import UserRepository


class AuthService:
    """Use case: authenticate a user (login form)."""

    def __init__(self, users: UserRepository):
        self._users = users

    async def authenticate(self, email: str, password: str) -> Principal:
        email = require_non_empty(email, "Email").lower()
        account = await self._users.get_account_by_email(email)
        if not account or not account.password_hash:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(account.password_hash, password or "")
        except ValueError:
            # e.g. placeholder or corrupted hashes
            ok = False

        if not ok:
            raise AuthenticationError("Invalid email or password")
        return account.principal
