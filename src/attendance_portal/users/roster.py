from __future__ import annotations

import logging

from ..common.results import FetchResult
from ..core.enums import Role
from ..core.exceptions import RetrievalFailure
from .model import Principal
from .repository import UserRepository

logger = logging.getLogger(__name__)


class RosterProvider:
    """Lists every student, ordered by name."""

    def __init__(self, users: UserRepository):
        self._users = users

    async def list_students(self) -> FetchResult[Principal]:
        try:
            students = await self._users.list_by_role(Role.STUDENT)
        except RetrievalFailure as e:
            logger.error("roster fetch failed: %s", e)
            return FetchResult.failed(e)

        ordered = sorted((s for s in students if s.is_student), key=lambda s: s.name)
        return FetchResult(items=tuple(ordered))
