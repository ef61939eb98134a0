from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..auth.gate import Route
from ..auth.web import current_context, gated
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.exceptions import AuthenticationError, DomainError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/", endpoint="root")
    @gated(Route.ROOT)
    def root(_principal):
        return render_template("login.html")

    @app.route("/login", methods=["GET", "POST"], endpoint="login")
    @gated(Route.LOGIN)
    def login(_principal):
        if request.method == "POST":
            email = request.form.get("email", "")
            password = request.form.get("password", "")
            remember = request.form.get("remember_me")
            ctx = current_context()

            try:
                principal = ctx.run(container.auth_service.authenticate(email, password))

                session.permanent = bool(remember)
                app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)
                ctx.sign_in(principal.id)

                if ctx.principal is None:
                    # signed in but the users row could not be resolved
                    flash("Could not load your profile. Please try again.", "danger")
                    ctx.sign_out()
                    return render_template("login.html"), 503

                flash(f"Welcome, {principal.name}!", "success")
                return redirect(url_for("root"))
            except (AuthenticationError, ValidationError) as e:
                flash(str(e), "danger")
            except DomainError as e:
                logger.error("login failed: %s", e)
                flash("The attendance store is unavailable. Please try again.", "danger")
            except Exception as e:
                logger.exception("unexpected error during login")
                if bool(app.config.get("DEBUG", False)):
                    flash(f"System error during login: {e}", "danger")
                else:
                    flash("System error during login", "danger")

        return render_template("login.html")

    @app.route("/logout", methods=["GET", "POST"], endpoint="logout")
    def logout():
        current_context().sign_out()
        flash("You have been logged out.", "info")
        return redirect(url_for("login"))
