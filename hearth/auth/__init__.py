"""
Authorization system.

Layers, leaves first:
- permissions: closed permission taxonomy and starter roles
- credentials: password policy, hashing, member records
- roles: role registry with tenancy guard
- tokens: signed session tokens
- context: per-request resolved permissions
- middleware: token -> member -> role -> AuthContext
- policies: require()/require_any()/owner_or() for routes
- routes: /auth endpoints

Import from the submodules directly; this package only re-exports the
taxonomy so model modules can depend on it without import cycles.
"""

from hearth.auth.permissions import (
    Permission,
    STARTER_ROLES,
    SYSTEM_ADMIN_ROLE,
    parse_permissions,
)

__all__ = [
    "Permission",
    "STARTER_ROLES",
    "SYSTEM_ADMIN_ROLE",
    "parse_permissions",
]
