"""
Permissions, starter roles and the permission catalog.

This defines WHAT members can do, not HOW we check it.
The actual checking happens in context.py and policies.py.

The taxonomy is closed: anything that is not a Permission member cannot be
stored on a role or required by a route.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from hearth.core.errors import ValidationError


class Permission(str, Enum):
    """Every action a role can grant."""

    DASHBOARD_VIEW = "dashboard:view"

    EXPENSES_VIEW = "expenses:view"
    EXPENSES_CREATE = "expenses:create"
    EXPENSES_EDIT = "expenses:edit"
    EXPENSES_DELETE = "expenses:delete"

    INCOME_VIEW = "income:view"
    INCOME_CREATE = "income:create"
    INCOME_EDIT = "income:edit"
    INCOME_DELETE = "income:delete"

    APPROVALS_REQUEST = "approvals:request"
    APPROVALS_MANAGE = "approvals:manage"

    BUDGETS_VIEW = "budgets:view"
    BUDGETS_MANAGE = "budgets:manage"

    CATEGORIES_VIEW = "categories:view"
    CATEGORIES_CREATE = "categories:create"
    CATEGORIES_EDIT = "categories:edit"
    CATEGORIES_DELETE = "categories:delete"

    MEMBERS_VIEW = "members:view"
    MEMBERS_CREATE = "members:create"
    MEMBERS_EDIT = "members:edit"
    MEMBERS_DELETE = "members:delete"

    ROLES_MANAGE = "roles:manage"
    CALENDAR_VIEW = "calendar:view"
    AUDIT_VIEW = "audit:view"
    SUBSCRIPTIONS_MANAGE = "subscriptions:manage"

    TRIPS_VIEW = "trips:view"
    TRIPS_CREATE = "trips:create"
    TRIPS_MANAGE = "trips:manage"


# =============================================================================
# Catalog (grouping is for display only)
# =============================================================================


PERMISSION_GROUPS: list[tuple[str, list[tuple[Permission, str]]]] = [
    ("Dashboard", [(Permission.DASHBOARD_VIEW, "View Dashboard")]),
    ("Expenses", [
        (Permission.EXPENSES_VIEW, "View Expenses"),
        (Permission.EXPENSES_CREATE, "Create Expenses"),
        (Permission.EXPENSES_EDIT, "Edit Expenses"),
        (Permission.EXPENSES_DELETE, "Delete Expenses"),
    ]),
    ("Income", [
        (Permission.INCOME_VIEW, "View Income"),
        (Permission.INCOME_CREATE, "Create Income"),
        (Permission.INCOME_EDIT, "Edit Income"),
        (Permission.INCOME_DELETE, "Delete Income"),
    ]),
    ("Trips", [
        (Permission.TRIPS_VIEW, "View Trips"),
        (Permission.TRIPS_CREATE, "Create Trips"),
        (Permission.TRIPS_MANAGE, "Manage All Trips"),
    ]),
    ("Approvals", [
        (Permission.APPROVALS_REQUEST, "Request Approvals"),
        (Permission.APPROVALS_MANAGE, "Manage Approvals"),
    ]),
    ("Budgets", [
        (Permission.BUDGETS_VIEW, "View Budgets"),
        (Permission.BUDGETS_MANAGE, "Manage Budgets"),
    ]),
    ("Categories", [
        (Permission.CATEGORIES_VIEW, "View Categories"),
        (Permission.CATEGORIES_CREATE, "Create Categories"),
        (Permission.CATEGORIES_EDIT, "Edit Categories"),
        (Permission.CATEGORIES_DELETE, "Delete Categories"),
    ]),
    ("Members", [
        (Permission.MEMBERS_VIEW, "View Members"),
        (Permission.MEMBERS_CREATE, "Create Members"),
        (Permission.MEMBERS_EDIT, "Edit Members"),
        (Permission.MEMBERS_DELETE, "Delete Members"),
    ]),
    ("Roles", [(Permission.ROLES_MANAGE, "Manage Roles & Permissions")]),
    ("Calendar", [(Permission.CALENDAR_VIEW, "View Calendar")]),
    ("Subscriptions", [(Permission.SUBSCRIPTIONS_MANAGE, "Manage Subscriptions")]),
    ("Audit", [(Permission.AUDIT_VIEW, "View Audit Log")]),
]


def _check_catalog() -> None:
    listed = [perm for _, perms in PERMISSION_GROUPS for perm, _ in perms]
    missing = set(Permission) - set(listed)
    if missing or len(listed) != len(set(listed)):
        raise RuntimeError(
            f"Permission catalog out of sync with taxonomy: missing={sorted(p.value for p in missing)}"
        )


_check_catalog()


def catalog() -> list[dict]:
    """Catalog in the shape the admin UI renders."""
    return [
        {
            "group": group,
            "permissions": [{"id": perm.value, "label": label} for perm, label in perms],
        }
        for group, perms in PERMISSION_GROUPS
    ]


# =============================================================================
# Starter roles
# =============================================================================


SYSTEM_ADMIN_ROLE = "System Administrator"
HEAD_ROLE = "Head"
MANAGER_ROLE = "Manager"
MEMBER_ROLE = "Member"


STARTER_ROLES: dict[str, frozenset[Permission]] = {
    HEAD_ROLE: frozenset(Permission),
    MANAGER_ROLE: frozenset({
        Permission.DASHBOARD_VIEW,
        Permission.EXPENSES_VIEW,
        Permission.EXPENSES_CREATE,
        Permission.EXPENSES_EDIT,
        Permission.INCOME_VIEW,
        Permission.INCOME_CREATE,
        Permission.INCOME_EDIT,
        Permission.TRIPS_VIEW,
        Permission.TRIPS_CREATE,
        Permission.TRIPS_MANAGE,
        Permission.APPROVALS_REQUEST,
        Permission.APPROVALS_MANAGE,
        Permission.BUDGETS_VIEW,
        Permission.BUDGETS_MANAGE,
        Permission.CATEGORIES_VIEW,
        Permission.MEMBERS_VIEW,
        Permission.CALENDAR_VIEW,
        Permission.SUBSCRIPTIONS_MANAGE,
    }),
    MEMBER_ROLE: frozenset({
        Permission.DASHBOARD_VIEW,
        Permission.EXPENSES_VIEW,
        Permission.EXPENSES_CREATE,
        Permission.INCOME_VIEW,
        Permission.INCOME_CREATE,
        Permission.TRIPS_VIEW,
        Permission.TRIPS_CREATE,
        Permission.APPROVALS_REQUEST,
        Permission.BUDGETS_VIEW,
        Permission.CATEGORIES_VIEW,
        Permission.CALENDAR_VIEW,
    }),
}


def parse_permissions(values: Iterable[str | Permission]) -> frozenset[Permission]:
    """
    Turn raw permission strings into a set of Permission members.

    Raises ValidationError on the first unknown value.
    """
    parsed: set[Permission] = set()
    for value in values:
        try:
            parsed.add(Permission(value))
        except ValueError:
            raise ValidationError("unknown_permission", f"Unknown permission: {value}")
    return frozenset(parsed)
