"""
Bootstrap and registration.

Two one-shot setup paths:

- System bootstrap: only while no member exists anywhere. Creates the
  family-less System Administrator role (every permission) and its member.
- Family registration: always open. Creates a family, its starter roles and
  default categories, then the registering member bound to the Head role.
  The store has no transactions, so any failure after the family is written
  is compensated by deleting everything the attempt created.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from hearth.auth.credentials import CredentialStore, check_password_policy
from hearth.auth.permissions import HEAD_ROLE
from hearth.auth.roles import RoleRegistry
from hearth.core.errors import ConflictError, ForbiddenError
from hearth.core.models import Category, Family, MemberInDB
from hearth.services.audit import AuditLog
from hearth.storage import Collections, MetadataStorage

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES: list[tuple[str, str, str]] = [
    ("Income", "Briefcase", "hsl(var(--chart-1))"),
    ("Rent", "Landmark", "hsl(var(--chart-2))"),
    ("Food", "UtensilsCrossed", "hsl(var(--chart-3))"),
    ("Shopping", "ShoppingCart", "hsl(var(--chart-4))"),
    ("Health", "HeartPulse", "hsl(var(--chart-5))"),
    ("Transport", "Car", "hsl(var(--chart-1))"),
    ("Education", "GraduationCap", "hsl(var(--chart-2))"),
    ("Entertainment", "Film", "hsl(var(--chart-3))"),
    ("Supplies", "PenSquare", "hsl(206, 81%, 50%)"),
    ("Travel", "Plane", "hsl(14, 88%, 58%)"),
    ("Accommodation", "Home", "hsl(130, 71%, 48%)"),
    ("News Subscription", "Receipt", "hsl(26, 88%, 58%)"),
    ("Software", "Shapes", "hsl(250, 88%, 58%)"),
    ("Utilities", "Wifi", "hsl(180, 88%, 58%)"),
    ("Subscriptions", "Repeat", "hsl(300, 76%, 60%)"),
]


class Onboarding:
    """Orchestrates system bootstrap and family registration."""

    def __init__(
        self,
        storage: MetadataStorage,
        credentials: CredentialStore,
        roles: RoleRegistry,
        audit: AuditLog,
    ):
        self.storage = storage
        self.credentials = credentials
        self.roles = roles
        self.audit = audit
        self._bootstrap_lock = asyncio.Lock()

    async def setup_status(self) -> dict[str, Any]:
        count = await self.credentials.count_members()
        return {"initialized": count > 0, "member_count": count}

    # -------------------------------------------------------------------------
    # System bootstrap
    # -------------------------------------------------------------------------

    async def bootstrap_system_admin(self, name: str, email: str, password: str) -> MemberInDB:
        async with self._bootstrap_lock:
            if await self.credentials.count_members() > 0:
                raise ForbiddenError("already_initialized", "System has already been initialized")

            check_password_policy(password)
            role = await self.roles.create_system_role()
            try:
                admin = await self.credentials.create_member(
                    name=name,
                    email=email,
                    password=password,
                    role_id=role.id,
                    family_id=None,
                )
            except Exception:
                await self.storage.delete(Collections.ROLES, role.id)
                raise

        logger.info("System bootstrapped; administrator %s", admin.id)
        await self.audit.record(admin, "SYSTEM_BOOTSTRAP", {"email": admin.email})
        return admin

    # -------------------------------------------------------------------------
    # Family registration
    # -------------------------------------------------------------------------

    async def register_family(
        self,
        family_name: str,
        name: str,
        email: str,
        password: str,
        **profile: Any,
    ) -> tuple[Family, MemberInDB]:
        """Create a family and its head member as one unit."""
        # Fail before writing anything when the request itself is bad
        check_password_policy(password)
        if await self.credentials.get_member_by_email(email):
            raise ConflictError("email_taken", "Email already registered")

        family = Family(name=family_name)
        await self.storage.save(Collections.FAMILIES, family.id, family.model_dump(mode="json"))

        try:
            seeded = await self.roles.seed_family_roles(family.id)
            await self.seed_categories(family.id)
            head = await self.credentials.create_member(
                name=name,
                email=email,
                password=password,
                role_id=seeded[HEAD_ROLE].id,
                family_id=family.id,
                **profile,
            )
        except Exception:
            logger.exception("Registration of family %s failed; rolling back", family.id)
            await self._rollback_family(family.id)
            raise

        logger.info("Registered family %s with head %s", family.id, head.id)
        await self.audit.record(head, "FAMILY_REGISTER", {"familyName": family.name})
        return family, head

    async def seed_categories(self, family_id: str) -> list[Category]:
        categories = []
        for order, (name, icon, color) in enumerate(DEFAULT_CATEGORIES):
            category = Category(family_id=family_id, name=name, icon=icon, color=color, order=order)
            await self.storage.save(Collections.CATEGORIES, category.id, category.model_dump(mode="json"))
            categories.append(category)
        return categories

    async def _rollback_family(self, family_id: str) -> None:
        for collection in (Collections.MEMBERS, Collections.CATEGORIES, Collections.ROLES):
            await self.storage.delete_where(collection, {"family_id": family_id})
        await self.storage.delete(Collections.FAMILIES, family_id)
