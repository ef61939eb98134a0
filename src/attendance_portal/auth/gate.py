from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional, Type, TypeVar, Union

from ..core.enums import Role
from ..users.model import Principal

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCESS_DENIED_NOTICE = "Access denied: you don't have permission to access this page."


class Route(str, Enum):
    ROOT = "/"
    LOGIN = "/login"
    TEACHER_DASHBOARD = "/teacher-dashboard"
    STUDENT_DASHBOARD = "/student-dashboard"


# None marks a public route (login surface)
ROUTE_ROLES: Dict[Route, Optional[Role]] = {
    Route.ROOT: None,
    Route.LOGIN: None,
    Route.TEACHER_DASHBOARD: Role.TEACHER,
    Route.STUDENT_DASHBOARD: Role.STUDENT,
}

HOME_ROUTES: Dict[Role, Route] = {
    Role.TEACHER: Route.TEACHER_DASHBOARD,
    Role.STUDENT: Route.STUDENT_DASHBOARD,
}


# --- states ---------------------------------------------------------------


@dataclass(frozen=True)
class Resolving:
    """First resolution still in flight."""


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class AuthenticatedTeacher:
    principal: Principal


@dataclass(frozen=True)
class AuthenticatedStudent:
    principal: Principal


GateState = Union[Resolving, Anonymous, AuthenticatedTeacher, AuthenticatedStudent]

_RESOLVED: FrozenSet[type] = frozenset({Anonymous, AuthenticatedTeacher, AuthenticatedStudent})

# Nothing ever goes back to Resolving.
TRANSITIONS: Dict[type, FrozenSet[type]] = {
    Resolving: _RESOLVED,
    Anonymous: _RESOLVED,
    AuthenticatedTeacher: _RESOLVED,
    AuthenticatedStudent: _RESOLVED,
}


# --- decisions ------------------------------------------------------------


@dataclass(frozen=True)
class ShowLoading:
    pass


@dataclass(frozen=True)
class Render:
    principal: Optional[Principal]


@dataclass(frozen=True)
class RedirectToLogin:
    pass


@dataclass(frozen=True)
class RedirectHome:
    route: Route
    notice: Optional[str] = None


Decision = Union[ShowLoading, Render, RedirectToLogin, RedirectHome]


def state_for(principal: Optional[Principal]) -> GateState:
    if principal is None:
        return Anonymous()
    if principal.is_teacher:
        return AuthenticatedTeacher(principal)
    return AuthenticatedStudent(principal)


class SessionGate:
    """Decides, per route, whether to render, send to login, or send home.

    Driven only by identity notifications (``on_principal``). Hooks added
    with ``add_sign_out_hook`` run whenever the current principal goes away
    (logout or switch to a different user), which is where cached draft
    state gets cleared.
    """

    def __init__(self) -> None:
        self._state: GateState = Resolving()
        self._sign_out_hooks: List[Callable[[], None]] = []
        self._handlers: Dict[Type, Callable[[Route], Decision]] = {
            Resolving: self._decide_resolving,
            Anonymous: self._decide_anonymous,
            AuthenticatedTeacher: self._decide_authenticated,
            AuthenticatedStudent: self._decide_authenticated,
        }

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def principal(self) -> Optional[Principal]:
        return getattr(self._state, "principal", None)

    def add_sign_out_hook(self, hook: Callable[[], None]) -> None:
        self._sign_out_hooks.append(hook)

    def on_principal(self, principal: Optional[Principal]) -> None:
        previous = self.principal
        new_state = state_for(principal)
        if type(new_state) not in TRANSITIONS[type(self._state)]:
            raise RuntimeError(f"illegal gate transition {type(self._state).__name__} -> {type(new_state).__name__}")

        self._state = new_state
        logger.debug("session gate -> %s", type(new_state).__name__)

        if previous is not None and previous != principal:
            for hook in list(self._sign_out_hooks):
                hook()

    def decide(self, route: Route) -> Decision:
        return self._handlers[type(self._state)](route)

    def is_current(self, principal: Optional[Principal]) -> bool:
        return self.principal == principal

    async def fetch_for(self, principal: Optional[Principal], awaitable: Awaitable[T], default: T) -> T:
        """Await ``awaitable``; return ``default`` if the principal changed meanwhile."""
        result = await awaitable
        if not self.is_current(principal):
            logger.debug("discarding data fetched for a principal that is no longer current")
            return default
        return result

    # One handler per state.

    def _decide_resolving(self, route: Route) -> Decision:
        return ShowLoading()

    def _decide_anonymous(self, route: Route) -> Decision:
        if ROUTE_ROLES[route] is None:
            return Render(None)
        return RedirectToLogin()

    def _decide_authenticated(self, route: Route) -> Decision:
        principal = self._state.principal
        home = HOME_ROUTES[principal.role]
        required = ROUTE_ROLES[route]

        if required is None:
            return RedirectHome(home)
        if required == principal.role:
            return Render(principal)

        logger.info("role %s denied access to %s", principal.role.value, route.value)
        return RedirectHome(home, ACCESS_DENIED_NOTICE)
