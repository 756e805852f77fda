from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.context import RequestContext
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    email: str
    full_name: str
    role: Role

    def context(self) -> RequestContext:
        return RequestContext(user_id=self.user_id, role=self.role)


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user or not user.is_active:
            raise AuthenticationError("Wrong email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder hashes like 'CHANGE_ME'
            ok = False

        if not ok:
            logger.warning("Failed login for %s", user.email)
            raise AuthenticationError("Wrong email or password")

        return SessionUser(
            user_id=user.user_id,
            email=user.email,
            full_name=user.full_name or user.email,
            role=user.role,
        )


class UserService:
    """Use case: manage staff profiles."""

    def __init__(self, users: UserRepository):
        self._users = users

    def invite(
        self,
        ctx: RequestContext,
        *,
        email: str,
        full_name: str,
        password: str,
        role: Role = Role.STAFF,
    ) -> int:
        ctx.require_admin()
        email = require_non_empty(email, "Email").lower()
        full_name = require_non_empty(full_name, "Full name")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        if "@" not in email:
            raise ValidationError("Email is not valid")
        if role not in (Role.ADMIN, Role.STAFF):
            raise ValidationError("Role must be admin or staff")
        if self._users.get_by_email(email):
            raise ValidationError("This email already has an account")

        user_id = self._users.create_user(
            email=email,
            full_name=full_name,
            password_hash=generate_password_hash(password),
            role=role,
        )
        logger.info("User %s (%s) invited by %s", user_id, role.value, ctx.user_id)
        return user_id

    def list_profiles(self, ctx: RequestContext) -> Sequence[User]:
        ctx.require_staff()
        if ctx.is_operator:
            return self._users.list_all()
        user = self._users.get_by_id(int(ctx.user_id)) if ctx.user_id is not None else None
        return [user] if user else []

    def update_profile(
        self,
        ctx: RequestContext,
        *,
        user_id: int,
        full_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        ctx.require_staff()
        if not ctx.is_operator and ctx.user_id != int(user_id):
            raise AuthorizationError("You can only edit your own profile")

        if full_name is not None:
            full_name = require_non_empty(full_name, "Full name")
        password_hash = None
        if password:
            require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
            password_hash = generate_password_hash(password)
        if full_name is None and password_hash is None:
            raise ValidationError("Nothing to update")

        if not self._users.update_profile(int(user_id), full_name=full_name, password_hash=password_hash):
            raise NotFoundError("User not found")

    def delete_user(self, ctx: RequestContext, user_id: int) -> None:
        ctx.require_admin()
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        if user.role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be deleted")

        if not self._users.delete_by_id(user.user_id):
            raise ValidationError("Deleting the user failed")
        logger.info("User %s deleted by %s", user.user_id, ctx.user_id)
