from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..common.datetime_utils import parse_optional_date
from ..common.http import current_context, fail, login_required, ok
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def body():
        return request.get_json(silent=True) or request.form

    @app.route("/api/attendance/toggle", methods=["POST"], endpoint="toggle_checkin")
    @login_required
    def toggle_checkin():
        data = body()
        try:
            student_id = int(data.get("student_id"))
            course_id = int(data.get("course_id"))
        except (TypeError, ValueError):
            raise ValidationError("student_id and course_id are required")

        result = container.attendance_service.toggle_checkin(
            current_context(),
            student_id=student_id,
            course_id=course_id,
        )
        return ok(result=result.to_dict())

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="scan_checkin")
    @login_required
    def scan_checkin():
        pending = container.attendance_service.scan(current_context(), str(body().get("code") or ""))
        return ok(pending=pending.to_dict()), 201

    @app.route("/api/attendance/scan/image", methods=["POST"], endpoint="scan_checkin_image")
    @login_required
    def scan_checkin_image():
        file = request.files.get("image")
        if file is None:
            return fail("Image file is missing", 400)
        pending = container.attendance_service.decode_qr_image(current_context(), file.stream)
        return ok(pending=pending.to_dict()), 201

    @app.route("/api/attendance/board", endpoint="attendance_board")
    @login_required
    def attendance_board():
        try:
            course_id = int(request.args.get("course_id", ""))
            on = parse_optional_date(request.args.get("date"))
        except ValueError:
            raise ValidationError("course_id and a YYYY-MM-DD date are expected")

        rows = container.attendance_service.course_board(
            current_context(),
            course_id=course_id,
            day=request.args.get("day") or None,
            on=on,
        )
        return ok(students=[r.to_dict() for r in rows])

    @app.route("/api/attendance/pending", endpoint="pending_checkins")
    @login_required
    def pending_checkins():
        return ok(pending=[p.to_dict() for p in container.attendance_service.list_pending(current_context())])

    @app.route("/api/attendance/pending/<int:attendance_id>/approve", methods=["POST"], endpoint="approve_pending")
    @login_required
    def approve_pending(attendance_id: int):
        data = request.get_json(silent=True) or {}
        ids = container.attendance_service.approve_pending(
            current_context(),
            attendance_id=attendance_id,
            course_ids=data.get("course_ids") or request.form.getlist("course_ids"),
        )
        return ok(attendance_ids=ids)

    @app.route("/api/attendance/pending/<int:attendance_id>", methods=["DELETE"], endpoint="discard_pending")
    @login_required
    def discard_pending(attendance_id: int):
        container.attendance_service.discard_pending(current_context(), attendance_id)
        return ok()

    @app.route("/api/students/<int:student_id>/attendance", endpoint="student_attendance")
    @login_required
    def student_attendance(student_id: int):
        records = container.attendance_service.history(current_context(), student_id)
        return ok(attendance=[r.to_dict() for r in records])

    @app.route("/api/students/<int:student_id>/qr", endpoint="student_qr")
    @login_required
    def student_qr(student_id: int):
        png = container.attendance_service.qr_png(current_context(), student_id)
        return send_file(io.BytesIO(png), mimetype="image/png", download_name=f"student-{student_id}-qr.png")
