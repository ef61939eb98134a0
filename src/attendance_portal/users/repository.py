from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Principal, UserAccount


class UserRepository(Protocol):
    """Read access to the users table.

    Adapters raise ``RetrievalFailure`` when the store cannot be read.
    """

    async def get_by_id(self, user_id: str) -> Optional[Principal]:
        raise NotImplementedError

    async def get_account_by_email(self, email: str) -> Optional[UserAccount]:
        raise NotImplementedError

    async def list_by_role(self, role: Role) -> Sequence[Principal]:
        """Principals with ``role``, ordered by name ascending."""

        raise NotImplementedError
