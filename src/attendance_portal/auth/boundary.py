from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, List, MutableMapping, Optional, Protocol

from flask import session as flask_session

from ..common.datetime_utils import now_utc

SESSION_USER_KEY = "user_id"
SESSION_ISSUED_KEY = "issued_at"

SessionCallback = Callable[[Optional["AuthSession"]], Awaitable[None]]


@dataclass(frozen=True)
class AuthSession:
    """Opaque session handed out by the auth boundary."""

    user_id: str
    issued_at: Optional[str] = None


class AuthBoundary(Protocol):
    async def get_current_session(self) -> Optional[AuthSession]:
        raise NotImplementedError

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""

        raise NotImplementedError

    async def sign_out(self) -> None:
        raise NotImplementedError


class FlaskSessionAuth(AuthBoundary):
    """Auth boundary backed by the signed Flask cookie session.

    One instance per request. ``sign_in``/``sign_out`` notify listeners
    before returning, so a gate subscribed through the identity resolver is
    already in its new state when the view decides where to go next.
    """

    def __init__(self, store: Optional[MutableMapping] = None):
        self._store = store if store is not None else flask_session
        self._listeners: List[SessionCallback] = []

    async def get_current_session(self) -> Optional[AuthSession]:
        user_id = self._store.get(SESSION_USER_KEY)
        if not user_id:
            return None
        return AuthSession(user_id=str(user_id), issued_at=self._store.get(SESSION_ISSUED_KEY))

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def sign_in(self, user_id: str) -> AuthSession:
        issued_at = now_utc().isoformat()
        self._store[SESSION_USER_KEY] = user_id
        self._store[SESSION_ISSUED_KEY] = issued_at
        auth_session = AuthSession(user_id=user_id, issued_at=issued_at)
        await self._notify(auth_session)
        return auth_session

    async def sign_out(self) -> None:
        self._store.clear()
        await self._notify(None)

    async def _notify(self, auth_session: Optional[AuthSession]) -> None:
        for callback in list(self._listeners):
            await callback(auth_session)

