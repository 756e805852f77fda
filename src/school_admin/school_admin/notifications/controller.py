from __future__ import annotations

from flask import Flask, request, session

from ..common.http import current_context, login_required, ok
from ..core.constants import DEFAULT_NOTIFICATION_LIMIT
from ..container import Container


def register(app: Flask, container: Container) -> None:
    hub = container.hub

    @app.route("/api/notifications", endpoint="list_notifications")
    @login_required
    def list_notifications():
        limit = request.args.get("limit", DEFAULT_NOTIFICATION_LIMIT, type=int)
        items = container.notification_service.list_recent(current_context(), limit=limit)
        return ok(notifications=[n.to_dict() for n in items])

    @app.route("/api/notifications/unread", endpoint="unread_notifications")
    @login_required
    def unread_notifications():
        return ok(count=container.notification_service.unread_count(current_context()))

    @app.route("/api/notifications/<int:notification_id>/read", methods=["POST"], endpoint="mark_notification_read")
    @login_required
    def mark_notification_read(notification_id: int):
        container.notification_service.mark_read(current_context(), notification_id)
        return ok()

    @app.route("/api/notifications/subscribe", methods=["POST"], endpoint="subscribe_notifications")
    @login_required
    def subscribe_notifications():
        hub.subscribe(session["sid"])
        return ok(subscribed=True)

    @app.route("/api/notifications/subscribe", methods=["DELETE"], endpoint="unsubscribe_notifications")
    @login_required
    def unsubscribe_notifications():
        hub.unsubscribe(session["sid"])
        return ok(subscribed=False)

    @app.route("/api/notifications/poll", endpoint="poll_notifications")
    @login_required
    def poll_notifications():
        """New notifications since the last poll; subscribes on first use."""

        sid = session["sid"]
        if not hub.is_subscribed(sid):
            hub.subscribe(sid)
        return ok(
            notifications=[n.to_dict() for n in hub.drain(sid)],
            unread=container.notification_service.unread_count(current_context()),
        )
