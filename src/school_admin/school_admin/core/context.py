from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import Role
from .exceptions import AuthorizationError


@dataclass(frozen=True)
class RequestContext:
    """Who is calling. Built per request by controllers and passed into services."""

    user_id: Optional[int]
    role: Role

    @classmethod
    def public(cls) -> "RequestContext":
        return cls(user_id=None, role=Role.PUBLIC)

    @property
    def is_operator(self) -> bool:
        return self.role == Role.ADMIN

    def require(self, *roles: Role) -> None:
        if self.role not in roles:
            raise AuthorizationError("You do not have permission for this action")

    def require_staff(self) -> None:
        self.require(Role.ADMIN, Role.STAFF)

    def require_admin(self) -> None:
        self.require(Role.ADMIN)
