"""
Role registry - CRUD over roles with a tenancy guard.

Roles belong to one family, except the global System Administrator role.
A role is never handed to a member of a different family, and a role that
members still reference cannot be deleted.
"""

from __future__ import annotations

import logging
from typing import Iterable

from hearth.auth.permissions import SYSTEM_ADMIN_ROLE, STARTER_ROLES, Permission, parse_permissions
from hearth.core.errors import ConflictError, ForbiddenError, IntegrityError, NotFoundError
from hearth.core.models import MemberInDB, Role
from hearth.storage import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class RoleRegistry:
    """Persistence and lookup for roles."""

    def __init__(self, storage: MetadataStorage):
        self.storage = storage

    async def get_role(self, role_id: str) -> Role | None:
        data = await self.storage.get(Collections.ROLES, role_id)
        return Role.model_validate(data) if data else None

    async def find_role_for_member(self, member: MemberInDB) -> Role | None:
        """
        Load the member's role.

        Returns None when the role no longer exists. Raises IntegrityError
        when the role belongs to a different family than the member; that
        is corrupted data and must never resolve to some default role.
        """
        role = await self.get_role(member.role_id)
        if role is None:
            return None
        if role.family_id != member.family_id:
            logger.error(
                "Role %s (family %s) referenced by member %s (family %s)",
                role.id, role.family_id, member.id, member.family_id,
            )
            raise IntegrityError("role_family_mismatch", "User role is not valid for this family")
        return role

    async def list_roles(self, family_id: str | None) -> list[Role]:
        docs = await self.storage.query(Collections.ROLES, {"family_id": family_id})
        return sorted((Role.model_validate(d) for d in docs), key=lambda r: r.name)

    async def _ensure_name_free(self, name: str, family_id: str | None, exclude_id: str | None = None) -> None:
        clash = await self.storage.query(Collections.ROLES, {"family_id": family_id, "name": name})
        if any(doc["id"] != exclude_id for doc in clash):
            raise ConflictError("role_name_taken", f"A role named '{name}' already exists")

    async def create_role(
        self,
        name: str,
        permissions: Iterable[str | Permission],
        family_id: str,
    ) -> Role:
        """Create a family role. Global roles only come from create_system_role."""
        if family_id is None:
            raise ForbiddenError("family_required", "Roles must belong to a family")
        return await self._save_new(name, parse_permissions(permissions), family_id)

    async def create_system_role(self) -> Role:
        """The family-less System Administrator role, holding every permission."""
        return await self._save_new(SYSTEM_ADMIN_ROLE, frozenset(Permission), None)

    async def _save_new(self, name: str, permissions: frozenset[Permission], family_id: str | None) -> Role:
        await self._ensure_name_free(name, family_id)
        role = Role(name=name, permissions=permissions, family_id=family_id)
        await self.storage.save(Collections.ROLES, role.id, role.model_dump(mode="json"))
        logger.info("Created role %s (%s) in family %s", role.id, role.name, family_id)
        return role

    async def update_role(
        self,
        role_id: str,
        family_id: str | None,
        name: str | None = None,
        permissions: Iterable[str | Permission] | None = None,
    ) -> Role:
        role = await self.get_role(role_id)
        if role is None or role.is_system or role.family_id != family_id:
            raise NotFoundError("role_not_found", "Role not found")

        changes: dict = {}
        if name is not None and name != role.name:
            await self._ensure_name_free(name, family_id, exclude_id=role_id)
            changes["name"] = name
        if permissions is not None:
            changes["permissions"] = parse_permissions(permissions)

        role = role.model_copy(update=changes)
        await self.storage.save(Collections.ROLES, role.id, role.model_dump(mode="json"))
        return role

    async def delete_role(self, role_id: str, family_id: str | None) -> None:
        """Delete a role nobody is using."""
        role = await self.get_role(role_id)
        if role is None or role.is_system or role.family_id != family_id:
            raise NotFoundError("role_not_found", "Role not found")

        in_use = await self.storage.count(Collections.MEMBERS, {"role_id": role_id})
        if in_use:
            raise ConflictError(
                "role_in_use",
                f"Cannot delete role '{role.name}': it is assigned to {in_use} member(s)",
            )
        await self.storage.delete(Collections.ROLES, role_id)
        logger.info("Deleted role %s from family %s", role_id, family_id)

    async def seed_family_roles(self, family_id: str) -> dict[str, Role]:
        """Create the starter roles for a new family, keyed by name."""
        seeded = {}
        for name, permissions in STARTER_ROLES.items():
            seeded[name] = await self.create_role(name, permissions, family_id)
        return seeded
