from __future__ import annotations

from flask import Flask, request

from ..common.http import admin_required, current_context, login_required, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def selected_ids():
        data = request.get_json(silent=True) or {}
        return data.get("ids") or request.form.getlist("ids")

    @app.route("/api/review", endpoint="review_queue")
    @login_required
    def review_queue():
        return ok(queue=container.review_service.list_pending(current_context()).to_dict())

    @app.route("/api/review/count", endpoint="review_count")
    @login_required
    def review_count():
        return ok(count=container.review_service.pending_count(current_context()))

    @app.route("/api/review/applications/approve", methods=["POST"], endpoint="approve_applications")
    @admin_required
    def approve_applications():
        outcome = container.review_service.approve_applications(current_context(), selected_ids())
        return ok(outcome=outcome.to_dict())

    @app.route("/api/review/applications/reject", methods=["POST"], endpoint="reject_applications")
    @admin_required
    def reject_applications():
        outcome = container.review_service.reject_applications(current_context(), selected_ids())
        return ok(outcome=outcome.to_dict())

    @app.route("/api/review/changes/approve", methods=["POST"], endpoint="approve_changes")
    @admin_required
    def approve_changes():
        outcome = container.review_service.approve_changes(current_context(), selected_ids())
        return ok(outcome=outcome.to_dict())

    @app.route("/api/review/changes/reject", methods=["POST"], endpoint="reject_changes")
    @admin_required
    def reject_changes():
        outcome = container.review_service.reject_changes(current_context(), selected_ids())
        return ok(outcome=outcome.to_dict())
