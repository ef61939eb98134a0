from __future__ import annotations

import asyncio
from dataclasses import dataclass
from functools import wraps
from typing import Awaitable, Optional, TypeVar

from flask import Flask, flash, g, redirect, render_template, request, session, url_for

from ..users.identity import IdentityResolver
from ..users.model import Principal
from ..users.repository import UserRepository
from .boundary import FlaskSessionAuth
from .gate import Render, RedirectHome, RedirectToLogin, Route, SessionGate

T = TypeVar("T")

DRAFT_DATE_KEY = "draft_date"
DRAFT_MARKS_KEY = "draft_marks"

ENDPOINTS = {
    Route.ROOT: "root",
    Route.LOGIN: "login",
    Route.TEACHER_DASHBOARD: "teacher_dashboard",
    Route.STUDENT_DASHBOARD: "student_dashboard",
}


def clear_draft_state() -> None:
    session.pop(DRAFT_DATE_KEY, None)
    session.pop(DRAFT_MARKS_KEY, None)


@dataclass
class SessionContext:
    """Per-request owner of the auth boundary, identity resolver and gate."""

    auth: FlaskSessionAuth
    resolver: IdentityResolver
    gate: SessionGate

    @classmethod
    def open(cls, users: UserRepository) -> "SessionContext":
        auth = FlaskSessionAuth()
        resolver = IdentityResolver(auth, users)
        gate = SessionGate()
        gate.add_sign_out_hook(clear_draft_state)
        resolver.subscribe(gate.on_principal)
        return cls(auth=auth, resolver=resolver, gate=gate)

    @property
    def principal(self) -> Optional[Principal]:
        return self.gate.principal

    def run(self, awaitable: Awaitable[T]) -> T:
        return asyncio.run(awaitable)

    def fetch_for(self, principal: Optional[Principal], awaitable: Awaitable[T], default: T) -> T:
        """Run a load keyed to ``principal``; stale results become ``default``."""
        return asyncio.run(self.gate.fetch_for(principal, awaitable, default))

    def sign_in(self, user_id: str) -> None:
        asyncio.run(self.auth.sign_in(user_id))

    def sign_out(self) -> None:
        asyncio.run(self.auth.sign_out())


def current_context() -> SessionContext:
    return g.session_ctx


def install(app: Flask, users: UserRepository) -> None:
    @app.before_request
    def _open_session_context():
        if request.endpoint == "static":
            return None
        ctx = SessionContext.open(users)
        asyncio.run(ctx.resolver.refresh())
        g.session_ctx = ctx
        return None

    @app.context_processor
    def _inject_principal():
        ctx = g.get("session_ctx")
        return {"current_principal": ctx.principal if ctx else None}


def home_endpoint(route: Route) -> str:
    return ENDPOINTS[route]


def gated(route: Route):
    """Apply the gate's decision for ``route``; the view receives the principal."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            decision = current_context().gate.decide(route)

            if isinstance(decision, Render):
                return view(decision.principal, *args, **kwargs)

            if isinstance(decision, RedirectToLogin):
                flash("Please log in to continue.", "warning")
                return redirect(url_for("login"))

            if isinstance(decision, RedirectHome):
                if decision.notice:
                    flash(decision.notice, "danger")
                return redirect(url_for(home_endpoint(decision.route)))

            return render_template("loading.html")

        return wrapper

    return decorator
