from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from src.school_admin.school_admin.core.context import RequestContext
from src.school_admin.school_admin.core.enums import Role
from src.school_admin.school_admin.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)
from src.school_admin.school_admin.users.model import User


@pytest.fixture
def seeded(repos):
    repos.users.items[1] = User(1, "admin@example.com", "Admin", generate_password_hash("admin123"), Role.ADMIN)
    repos.users.items[2] = User(2, "staff@example.com", "Staff", generate_password_hash("staff123"), Role.STAFF)
    repos.users.items[3] = User(3, "gone@example.com", "Gone", "CHANGE_ME", Role.STAFF, is_active=False)
    return repos.users


def test_authenticate(container, seeded):
    s_user = container.auth_service.authenticate(" Admin@Example.com ", "admin123")
    assert (s_user.user_id, s_user.role) == (1, Role.ADMIN)
    assert s_user.context().is_operator

    for email, pw in [("admin@example.com", "wrong"), ("nobody@example.com", "x"), ("gone@example.com", "x")]:
        with pytest.raises(AuthenticationError):
            container.auth_service.authenticate(email, pw)


def test_invite_is_admin_only(container, seeded, admin_ctx, staff_ctx):
    svc = container.user_service
    with pytest.raises(AuthorizationError):
        svc.invite(staff_ctx, email="new@example.com", full_name="New", password="secret1")

    uid = svc.invite(admin_ctx, email="New@Example.com", full_name="New", password="secret1")
    assert seeded.get_by_id(uid).email == "new@example.com"
    assert container.auth_service.authenticate("new@example.com", "secret1").role == Role.STAFF

    with pytest.raises(ValidationError):
        svc.invite(admin_ctx, email="new@example.com", full_name="Again", password="secret1")


def test_staff_see_and_edit_only_themselves(container, seeded, staff_ctx):
    svc = container.user_service
    assert [u.user_id for u in svc.list_profiles(staff_ctx)] == [2]

    svc.update_profile(staff_ctx, user_id=2, full_name="Staff Two")
    assert seeded.get_by_id(2).full_name == "Staff Two"
    with pytest.raises(AuthorizationError):
        svc.update_profile(staff_ctx, user_id=1, full_name="Hacked")


def test_admin_accounts_cannot_be_deleted(container, seeded, admin_ctx):
    with pytest.raises(ValidationError):
        container.user_service.delete_user(admin_ctx, 1)
    container.user_service.delete_user(admin_ctx, 2)
    assert seeded.get_by_id(2) is None
    with pytest.raises(AuthorizationError):
        container.user_service.delete_user(RequestContext(user_id=2, role=Role.STAFF), 3)
