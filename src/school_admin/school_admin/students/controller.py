from __future__ import annotations

from flask import Flask, request

from ..common.http import admin_required, current_context, login_required, ok
from ..core.enums import StudentStatus
from ..core.exceptions import ValidationError
from ..container import Container


def _int(data, name: str) -> int:
    try:
        return int(data.get(name))
    except (TypeError, ValueError):
        raise ValidationError(f"{name} is required")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/students", endpoint="list_students")
    @login_required
    def list_students():
        raw = request.args.get("status")
        try:
            status = StudentStatus(raw) if raw else None
        except ValueError:
            raise ValidationError("Unknown student status")
        students = container.student_service.list_students(current_context(), status=status)
        return ok(students=[s.to_dict() for s in students])

    @app.route("/api/students/<int:student_id>", endpoint="student_profile")
    @login_required
    def student_profile(student_id: int):
        return ok(profile=container.student_service.get_profile(current_context(), student_id).to_dict())

    @app.route("/api/students/<int:student_id>/move-day", methods=["POST"], endpoint="move_student_day")
    @login_required
    def move_student_day(student_id: int):
        data = request.get_json(silent=True) or {}
        student = container.student_service.move_day(
            current_context(),
            student_id=student_id,
            course_id=_int(data, "course_id"),
            old_day=str(data.get("old_day") or ""),
            new_day=str(data.get("new_day") or ""),
        )
        return ok(student=student.to_dict())

    @app.route("/api/students/<int:student_id>/replace-time", methods=["POST"], endpoint="replace_student_time")
    @login_required
    def replace_student_time(student_id: int):
        data = request.get_json(silent=True) or {}
        student = container.student_service.replace_time(
            current_context(),
            student_id=student_id,
            course_id=_int(data, "course_id"),
            day=str(data.get("day") or ""),
            old_time=str(data.get("old_time") or ""),
            new_time=str(data.get("new_time") or ""),
        )
        return ok(student=student.to_dict())

    @app.route("/api/students/<int:student_id>/cancel-course", methods=["POST"], endpoint="cancel_student_course")
    @login_required
    def cancel_student_course(student_id: int):
        data = request.get_json(silent=True) or {}
        student = container.student_service.cancel_course(
            current_context(),
            student_id=student_id,
            course_id=_int(data, "course_id"),
        )
        return ok(student=student.to_dict())

    @app.route("/api/students/<int:student_id>", methods=["DELETE"], endpoint="delete_student")
    @admin_required
    def delete_student(student_id: int):
        container.student_service.delete_student(current_context(), student_id)
        return ok()
