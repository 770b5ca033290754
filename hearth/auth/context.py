"""
Auth context - the "who can do what" for each request.

Built fresh by the authorization middleware on every request from the
stored member and role, never from token contents, so a role edit or
reassignment applies on the member's very next request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from hearth.auth.permissions import SYSTEM_ADMIN_ROLE, Permission
from hearth.core.errors import ForbiddenError
from hearth.core.models import MemberInDB, Role

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """
    Resolved permission context for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require(Permission.EXPENSES_VIEW))):
            rows = await storage.query("transactions", ctx.scope())
            if ctx.can(Permission.EXPENSES_EDIT):
                ...
    """

    member: MemberInDB
    role: Role
    permissions: frozenset[Permission] | None = field(default=None, repr=False)

    def __post_init__(self):
        """Copy permissions from the role as it is stored right now."""
        if self.permissions is None:
            self.permissions = frozenset(self.role.permissions)

    @property
    def member_id(self) -> str:
        return self.member.id

    @property
    def family_id(self) -> str | None:
        return self.member.family_id

    @property
    def tenant_id(self) -> str:
        """Family new documents are written into. The system admin has none."""
        if self.family_id is None:
            raise ForbiddenError("family_required", "This action requires a family account")
        return self.family_id

    @property
    def is_system_admin(self) -> bool:
        """The family-less super role sees across every tenant."""
        return (
            self.role.is_system
            and self.role.name == SYSTEM_ADMIN_ROLE
            and self.member.family_id is None
        )

    def can(self, permission: Permission) -> bool:
        return permission in self.permissions

    def can_any(self, *permissions: Permission) -> bool:
        return any(self.can(p) for p in permissions)

    def can_all(self, *permissions: Permission) -> bool:
        return all(self.can(p) for p in permissions)

    def require(self, permission: Permission) -> None:
        """
        Raise ForbiddenError if the member lacks the permission.

        Usage:
            ctx.require(Permission.INCOME_EDIT)
        """
        if not self.can(permission):
            logger.info("Member %s denied %s", self.member_id, permission.value)
            raise ForbiddenError("forbidden", "Forbidden")

    def owns(self, resource: dict[str, Any], owner_field: str = "member_id") -> bool:
        return resource.get(owner_field) == self.member_id

    def can_act(self, permission: Permission, resource: dict[str, Any], owner_field: str = "member_id") -> bool:
        """Blanket permission, or the resource's own creator."""
        return self.can(permission) or self.owns(resource, owner_field)

    def scope(self, filters: dict[str, Any] | None = None) -> dict[str, Any]:
        """Restrict a store filter to the caller's family."""
        scoped = dict(filters or {})
        if not self.is_system_admin:
            scoped["family_id"] = self.family_id
        return scoped

    def in_scope(self, resource: dict[str, Any] | None) -> bool:
        """Whether a loaded document is visible to the caller."""
        if resource is None:
            return False
        return self.is_system_admin or resource.get("family_id") == self.family_id
