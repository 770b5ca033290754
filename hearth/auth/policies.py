"""
Policies - the clean interface for route authorization.

Just use: `ctx: AuthContext = Depends(require(Permission.EXPENSES_VIEW))`

Design:
- `require()` returns a FastAPI dependency that resolves to AuthContext
- Identity comes from the authorization middleware
- If a permission is missing, raises 403 automatically
- Ownership fallback (`owner_or`) is a separate predicate, not a permission
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import Depends

from hearth.auth.context import AuthContext
from hearth.auth.middleware import get_auth_context
from hearth.auth.permissions import Permission
from hearth.core.errors import ForbiddenError

logger = logging.getLogger(__name__)


# =============================================================================
# Policy - the core authorization type
# =============================================================================


class Policy:
    """
    A policy that can be checked.

    Policies are composable:
        require(Permission.EXPENSES_VIEW)                           # single
        require_any(Permission.EXPENSES_VIEW, Permission.INCOME_VIEW)  # any of
        require(Permission.MEMBERS_EDIT, Permission.ROLES_MANAGE)    # all of
    """

    def __init__(
        self,
        permissions: list[Permission] | None = None,
        require_all: bool = True,
        system_admin_only: bool = False,
    ):
        for perm in permissions or []:
            if not isinstance(perm, Permission):
                raise TypeError(f"Policies take Permission members, got {perm!r}")
        self.permissions = permissions or []
        self.require_all = require_all
        self.system_admin_only = system_admin_only

    def check(self, ctx: AuthContext) -> bool:
        if self.system_admin_only and not ctx.is_system_admin:
            return False
        if not self.permissions:
            return True
        if self.require_all:
            return ctx.can_all(*self.permissions)
        return ctx.can_any(*self.permissions)


def _create_dependency(policy: Policy) -> Callable:
    """Create a FastAPI dependency from a policy."""

    async def dependency(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if not policy.check(ctx):
            logger.info(
                "Member %s denied; needs %s",
                ctx.member_id,
                [p.value for p in policy.permissions] or "system admin",
            )
            raise ForbiddenError("forbidden", "Forbidden")
        return ctx

    return dependency


# =============================================================================
# Main Interface
# =============================================================================


def require(*permissions: Permission) -> Callable:
    """
    Require every listed permission.

    Usage:
        @router.get("/budgets")
        async def list_budgets(ctx: AuthContext = Depends(require(Permission.BUDGETS_VIEW))):
            ...
    """
    return _create_dependency(Policy(list(permissions), require_all=True))


def require_any(*permissions: Permission) -> Callable:
    """Require ANY of the listed permissions."""
    return _create_dependency(Policy(list(permissions), require_all=False))


def require_auth() -> Callable:
    """Just require a valid session, no specific permission."""
    return _create_dependency(Policy())


def require_system_admin() -> Callable:
    """Only the family-less System Administrator."""
    return _create_dependency(Policy(system_admin_only=True))


# =============================================================================
# Ownership fallback
# =============================================================================


def owner_or(permission: Permission, owner_field: str = "member_id") -> Callable[[AuthContext, dict[str, Any]], None]:
    """
    Build a check that passes for holders of `permission` OR the member who
    owns the resource.

    Usage:
        can_edit_trip = owner_or(Permission.TRIPS_MANAGE)
        can_edit_trip(ctx, trip_doc)  # raises ForbiddenError if neither
    """
    if not isinstance(permission, Permission):
        raise TypeError(f"owner_or takes a Permission member, got {permission!r}")

    def check(ctx: AuthContext, resource: dict[str, Any]) -> None:
        if not ctx.can_act(permission, resource, owner_field):
            logger.info("Member %s is neither owner nor holds %s", ctx.member_id, permission.value)
            raise ForbiddenError("forbidden", "Forbidden")

    return check
