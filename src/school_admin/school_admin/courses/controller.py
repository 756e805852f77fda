from __future__ import annotations

from flask import Flask, request

from ..common.http import admin_required, current_context, login_required, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/courses", endpoint="list_courses")
    @login_required
    def list_courses():
        return ok(courses=[c.to_dict() for c in container.course_service.list_courses()])

    @app.route("/api/courses", methods=["POST"], endpoint="create_course")
    @admin_required
    def create_course():
        draft = container.course_service.build_draft(request.get_json(silent=True) or {})
        course_id = container.course_service.save_course(current_context(), draft)
        return ok(course_id=course_id), 201

    @app.route("/api/courses/<int:course_id>", methods=["PUT"], endpoint="update_course")
    @admin_required
    def update_course(course_id: int):
        draft = container.course_service.build_draft(request.get_json(silent=True) or {}, course_id=course_id)
        container.course_service.save_course(current_context(), draft)
        return ok(course_id=course_id)

    @app.route("/api/courses/<int:course_id>", methods=["DELETE"], endpoint="delete_course")
    @admin_required
    def delete_course(course_id: int):
        container.course_service.delete_course(current_context(), course_id)
        return ok()

    @app.route("/api/courses/<int:course_id>/students", endpoint="course_students")
    @login_required
    def course_students(course_id: int):
        students = container.course_service.students_in_slot(
            current_context(),
            course_id=course_id,
            day=request.args.get("day"),
            time=request.args.get("time"),
        )
        return ok(students=[s.to_dict() for s in students])
