from __future__ import annotations

import logging
from datetime import date

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..auth.gate import Route
from ..auth.web import DRAFT_DATE_KEY, DRAFT_MARKS_KEY, clear_draft_state, current_context, gated
from ..common.datetime_utils import parse_iso_date, today_local
from ..core.constants import RECENT_HISTORY_LIMIT
from ..core.enums import DraftStatus
from ..core.exceptions import RetrievalFailure, ValidationError
from ..container import Container
from .draft import AttendanceDraft
from .reconciler import BatchSaveResult

logger = logging.getLogger(__name__)

BULK_ACTIONS = {
    "mark_all_present": DraftStatus.PRESENT,
    "mark_all_absent": DraftStatus.ABSENT,
}


def _parse_status(value: str) -> DraftStatus:
    try:
        return DraftStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {value!r}")


def _flash_save_result(result: BatchSaveResult) -> None:
    if result.ok:
        flash(f"Attendance saved for {result.written} student(s).", "success")
        return

    names = ", ".join(o.student.name for o in result.failed)
    if result.partial:
        flash(
            f"Saved {result.written} of {len(result.outcomes)} students; failed for: {names}. Please retry.",
            "warning",
        )
    else:
        flash(f"Failed to save attendance data for: {names}.", "danger")


def register(app: Flask, container: Container) -> None:
    def load_draft(principal, roster, work_date) -> AttendanceDraft:
        ctx = current_context()
        try:
            draft = ctx.fetch_for(principal, container.reconciler.open_draft(roster, work_date), None)
        except RetrievalFailure as e:
            logger.error("attendance snapshot for %s failed: %s", work_date, e)
            flash("Failed to load existing attendance data.", "danger")
            draft = None

        if draft is None:
            draft = AttendanceDraft.from_snapshot(work_date, roster, ())

        if session.get(DRAFT_DATE_KEY) == work_date.isoformat():
            draft.apply_marks(session.get(DRAFT_MARKS_KEY) or {})
        else:
            # switching dates discards the previous draft
            clear_draft_state()
        return draft

    def load_roster(principal):
        ctx = current_context()
        fetched = ctx.fetch_for(principal, container.roster.list_students(), None)
        if fetched is None:
            return ()
        if fetched.error:
            flash("Failed to load students.", "danger")
        return fetched.items

    def requested_date(source) -> date:
        raw = source.get("date")
        return parse_iso_date(raw) if raw else today_local()

    @app.route("/teacher-dashboard", endpoint="teacher_dashboard")
    @gated(Route.TEACHER_DASHBOARD)
    def teacher_dashboard(principal):
        ctx = current_context()
        try:
            work_date = requested_date(request.args)
        except ValidationError as e:
            flash(str(e), "danger")
            return redirect(url_for("teacher_dashboard"))

        roster = load_roster(principal)
        draft = load_draft(principal, roster, work_date)

        selected = None
        overview = None
        student_id = request.args.get("student")
        if student_id:
            selected = next((s for s in roster if s.id == student_id), None)
            if selected is None:
                flash("Student not found.", "warning")
            else:
                overview = ctx.fetch_for(
                    principal,
                    container.history_service.student_overview(selected.id, limit=None),
                    None,
                )
                if overview is not None and overview.error:
                    flash("Failed to load attendance records.", "danger")

        return render_template(
            "teacher/dashboard.html",
            teacher=principal,
            work_date=work_date,
            entries=draft.entries,
            has_pending=draft.has_pending,
            selected=selected,
            overview=overview,
        )

    @app.route("/teacher-dashboard/attendance", methods=["POST"], endpoint="update_attendance")
    @gated(Route.TEACHER_DASHBOARD)
    def update_attendance(principal):
        ctx = current_context()
        try:
            work_date = requested_date(request.form)
            roster = load_roster(principal)
            draft = load_draft(principal, roster, work_date)

            for entry in draft.entries:
                value = request.form.get(f"status-{entry.student.id}")
                if value:
                    draft.mark(entry.student.id, _parse_status(value))

            action = request.form.get("action", "update")
            if action in BULK_ACTIONS:
                draft.mark_all(BULK_ACTIONS[action])
            elif action == "save":
                if not draft.has_pending:
                    flash("Nothing to save: no student is marked.", "info")
                else:
                    result = ctx.run(container.reconciler.save(draft))
                    _flash_save_result(result)
                    if result.ok:
                        clear_draft_state()
                        return redirect(url_for("teacher_dashboard", date=work_date.isoformat()))
                    # keep the marks that did not make it so the teacher can retry
                    session[DRAFT_DATE_KEY] = work_date.isoformat()
                    session[DRAFT_MARKS_KEY] = {o.student.id: o.status.value for o in result.failed}
                    return redirect(url_for("teacher_dashboard", date=work_date.isoformat()))

            session[DRAFT_DATE_KEY] = work_date.isoformat()
            session[DRAFT_MARKS_KEY] = draft.marks()
            return redirect(url_for("teacher_dashboard", date=work_date.isoformat()))
        except ValidationError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("unexpected error while updating attendance")
            flash("System error while saving attendance", "danger")

        return redirect(url_for("teacher_dashboard"))

    @app.route("/student-dashboard", endpoint="student_dashboard")
    @gated(Route.STUDENT_DASHBOARD)
    def student_dashboard(principal):
        ctx = current_context()
        overview = ctx.fetch_for(
            principal,
            container.history_service.student_overview(principal.id, limit=RECENT_HISTORY_LIMIT),
            None,
        )
        if overview is not None and overview.error:
            flash("Failed to load attendance data.", "danger")

        return render_template("student/dashboard.html", student=principal, overview=overview)
