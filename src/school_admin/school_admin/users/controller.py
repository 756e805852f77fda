from __future__ import annotations

import uuid
from datetime import timedelta

from flask import Flask, request, session

from ..common.http import admin_required, current_context, login_required, ok
from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/login", methods=["POST"], endpoint="login")
    def login():
        data = request.get_json(silent=True) or request.form
        s_user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        session["sid"] = uuid.uuid4().hex
        return ok(user={"user_id": s_user.user_id, "name": s_user.full_name, "role": s_user.role.value})

    @app.route("/api/logout", methods=["POST"], endpoint="logout")
    def logout():
        sid = session.get("sid")
        if sid:
            container.hub.unsubscribe(sid)
        session.clear()
        return ok()

    @app.route("/api/me", endpoint="me")
    @login_required
    def me():
        return ok(user={"user_id": session["user_id"], "name": session.get("name"), "role": session["role"]})

    @app.route("/api/users", endpoint="list_users")
    @login_required
    def list_users():
        users = container.user_service.list_profiles(current_context())
        return ok(users=[u.to_dict() for u in users])

    @app.route("/api/users", methods=["POST"], endpoint="invite_user")
    @admin_required
    def invite_user():
        data = request.get_json(silent=True) or {}
        try:
            role = Role(data.get("role", Role.STAFF.value))
        except ValueError:
            raise ValidationError("Role must be admin or staff")

        user_id = container.user_service.invite(
            current_context(),
            email=data.get("email", ""),
            full_name=data.get("full_name", ""),
            password=data.get("password", ""),
            role=role,
        )
        return ok(user_id=user_id), 201

    @app.route("/api/users/<int:user_id>", methods=["PATCH"], endpoint="update_user")
    @login_required
    def update_user(user_id: int):
        data = request.get_json(silent=True) or {}
        container.user_service.update_profile(
            current_context(),
            user_id=user_id,
            full_name=data.get("full_name"),
            password=data.get("password"),
        )
        if user_id == session["user_id"] and data.get("full_name"):
            session["name"] = data["full_name"].strip()
        return ok()

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="delete_user")
    @admin_required
    def delete_user(user_id: int):
        container.user_service.delete_user(current_context(), user_id)
        return ok()
