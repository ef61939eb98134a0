from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..auth.boundary import AuthBoundary, AuthSession
from ..core.exceptions import AuthResolutionFailure, RetrievalFailure
from .model import Principal
from .repository import UserRepository

logger = logging.getLogger(__name__)

PrincipalListener = Callable[[Optional[Principal]], None]


class IdentityResolver:
    """Turns the auth boundary's opaque session into a typed Principal.

    Subscribers are pushed the resolved Principal (or None) on every session
    change. When notifications overlap, only the most recent one is
    delivered; a lookup that completes after a newer change has started is
    dropped.
    """

    def __init__(self, auth: AuthBoundary, users: UserRepository):
        self._auth = auth
        self._users = users
        self._listeners: List[PrincipalListener] = []
        self._unsubscribe_auth: Optional[Callable[[], None]] = None
        self._generation = 0

    async def resolve_current_principal(self) -> Optional[Principal]:
        auth_session = await self._auth.get_current_session()
        try:
            return await self._lookup(auth_session)
        except AuthResolutionFailure as e:
            logger.debug("treating visitor as anonymous: %s", e)
            return None

    def subscribe(self, listener: PrincipalListener) -> Callable[[], None]:
        self._listeners.append(listener)
        if self._unsubscribe_auth is None:
            self._unsubscribe_auth = self._auth.on_session_change(self._on_session_change)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
            if not self._listeners and self._unsubscribe_auth is not None:
                self._unsubscribe_auth()
                self._unsubscribe_auth = None

        return unsubscribe

    async def refresh(self) -> None:
        """Resolve the current session and push the result to subscribers."""
        await self._on_session_change(await self._auth.get_current_session())

    async def _on_session_change(self, auth_session: Optional[AuthSession]) -> None:
        self._generation += 1
        generation = self._generation

        try:
            principal = await self._lookup(auth_session)
        except AuthResolutionFailure as e:
            logger.debug("treating visitor as anonymous: %s", e)
            principal = None

        if generation != self._generation:
            logger.debug("dropping stale identity result (generation %d < %d)", generation, self._generation)
            return

        for listener in list(self._listeners):
            listener(principal)

    async def _lookup(self, auth_session: Optional[AuthSession]) -> Principal:
        if auth_session is None:
            raise AuthResolutionFailure("no active session")

        try:
            principal = await self._users.get_by_id(auth_session.user_id)
        except RetrievalFailure as e:
            raise AuthResolutionFailure(str(e)) from e

        if principal is None:
            raise AuthResolutionFailure(f"no users row for session {auth_session.user_id}")
        return principal
