from __future__ import annotations

from flask import Flask, request

from ..common.http import current_context, login_required, ok
from ..core.enums import ChangeStatus
from ..core.exceptions import ValidationError
from ..storage.receipts import Upload
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def receipt():
        f = request.files.get("receipt")
        return Upload.from_file_storage(f) if f is not None and f.filename else None

    def course_id():
        try:
            return int(request.form.get("course_id"))
        except (TypeError, ValueError):
            raise ValidationError("course_id is required")

    @app.route("/api/students/<int:student_id>/renewals", methods=["POST"], endpoint="request_renewal")
    @login_required
    def request_renewal(student_id: int):
        outcome = container.change_service.request_renewal(
            current_context(),
            student_id=student_id,
            course_id=course_id(),
            hours=request.form.get("hours"),
            receipt=receipt(),
        )
        return ok(outcome=outcome.to_dict()), 201

    @app.route("/api/students/<int:student_id>/course-adds", methods=["POST"], endpoint="request_course_add")
    @login_required
    def request_course_add(student_id: int):
        outcome = container.change_service.request_course_add(
            current_context(),
            student_id=student_id,
            course_id=course_id(),
            day=request.form.get("day", ""),
            time=request.form.get("time", ""),
            hours=request.form.get("hours"),
            receipt=receipt(),
        )
        return ok(outcome=outcome.to_dict()), 201

    @app.route("/api/changes", endpoint="list_changes")
    @login_required
    def list_changes():
        raw = request.args.get("status")
        try:
            status = ChangeStatus(raw) if raw else None
        except ValueError:
            raise ValidationError("Unknown change status")
        student_id = request.args.get("student_id", type=int)
        changes = container.change_service.list_changes(current_context(), status=status, student_id=student_id)
        return ok(changes=[c.to_dict() for c in changes])
