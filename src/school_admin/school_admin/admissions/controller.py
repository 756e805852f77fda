from __future__ import annotations

from flask import Flask, current_app, request, send_from_directory

from ..common.datetime_utils import now_local
from ..common.http import admin_required, current_context, json_field, login_required, ok
from ..core.context import RequestContext
from ..core.enums import ApplicationStatus, Role
from ..core.exceptions import ValidationError
from ..courses.schedule import EnrollmentSchedule
from ..storage.receipts import Upload
from ..students.model import ApplicantIdentity
from ..container import Container


def _status(value) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        raise ValidationError("Unknown application status")


def register(app: Flask, container: Container) -> None:
    def submit(ctx: RequestContext, link_token=None):
        data = request.get_json(silent=True) or request.form
        result = container.admissions_service.submit(
            ctx,
            identity=ApplicantIdentity.from_form(data),
            schedule=EnrollmentSchedule.from_mapping(json_field(data, "courses", {})),
            course_limits=json_field(data, "course_limits", {}),
            receipts=[Upload.from_file_storage(f) for f in request.files.getlist("receipts") if f.filename],
            link_token=link_token,
        )
        return ok(result=result.to_dict()), 201

    # ===== PUBLIC INTAKE =====

    @app.route("/apply/<token>", endpoint="public_apply_form")
    def public_apply_form(token: str):
        """Check a public link; signed-in staff get the current link back for a stale token."""

        courses = [c.to_dict() for c in container.course_service.list_courses()]
        valid = container.link_service.is_valid(token, now=now_local())
        if not valid and current_context().role == Role.PUBLIC:
            return ok(valid=False, courses=courses)
        link = container.link_service.resolve(token)
        return ok(valid=link.token == token, link=link.to_dict(), courses=courses)

    @app.route("/apply/<token>", methods=["POST"], endpoint="public_apply_submit")
    def public_apply_submit(token: str):
        return submit(RequestContext.public(), link_token=token)

    # ===== STAFF =====

    @app.route("/api/applications", endpoint="list_applications")
    @login_required
    def list_applications():
        status = request.args.get("status")
        apps = container.admissions_service.list_applications(
            current_context(),
            status=_status(status) if status else None,
        )
        return ok(applications=[a.to_dict() for a in apps])

    @app.route("/api/applications", methods=["POST"], endpoint="create_application")
    @login_required
    def create_application():
        return submit(current_context())

    @app.route("/api/applications/<int:application_id>/status", methods=["POST"], endpoint="set_application_status")
    @admin_required
    def set_application_status(application_id: int):
        data = request.get_json(silent=True) or request.form
        container.admissions_service.set_status(current_context(), application_id, _status(data.get("status")))
        return ok()

    @app.route("/api/admissions/link", endpoint="admissions_link")
    @login_required
    def admissions_link():
        return ok(link=container.link_service.current_link(current_context()).to_dict())

    @app.route("/api/admissions/link/rotate", methods=["POST"], endpoint="rotate_admissions_link")
    @login_required
    def rotate_admissions_link():
        return ok(link=container.link_service.rotate(current_context()).to_dict())

    @app.route("/receipts/<path:name>", endpoint="receipt_file")
    @login_required
    def receipt_file(name: str):
        return send_from_directory(current_app.config["RECEIPTS_DIR"], name)
