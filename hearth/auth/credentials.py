# =============================================================================
# Credential Store
# =============================================================================
#
# Owns member identity and the password lifecycle:
#   - Password policy
#   - Password hashing (PBKDF2-SHA256, salted, cost-factored)
#   - Member persistence (create / load / update / delete)
#   - Login authentication
#
# Hashing is CPU-bound, so it runs in a bounded thread pool instead of on
# the event loop.
#
# =============================================================================

from __future__ import annotations

import asyncio
import hashlib
import logging
import secrets
import string
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from hearth.config import Settings
from hearth.core.errors import ConflictError, NotFoundError, ValidationError
from hearth.core.models import MemberInDB
from hearth.core.utils import utc_now
from hearth.storage import Collections, MetadataStorage

logger = logging.getLogger(__name__)


# =============================================================================
# Password Policy
# =============================================================================

PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = frozenset(string.punctuation)


def check_password_policy(password: str) -> None:
    """
    Raise ValidationError unless the password is at least 8 characters with
    an uppercase letter, a lowercase letter, a digit and a symbol.
    """
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"at least {PASSWORD_MIN_LENGTH} characters")
    if not any(c.isupper() for c in password):
        problems.append("an uppercase letter")
    if not any(c.islower() for c in password):
        problems.append("a lowercase letter")
    if not any(c.isdigit() for c in password):
        problems.append("a digit")
    if not any(c in PASSWORD_SYMBOLS for c in password):
        problems.append("a symbol")

    if problems:
        raise ValidationError("weak_password", "Password must contain " + ", ".join(problems))


# =============================================================================
# Password Hashing
# =============================================================================


def hash_password(password: str, iterations: int) -> str:
    """
    Hash a password using PBKDF2-SHA256.

    Returns: salt:iterations:hash format string
    """
    salt = secrets.token_hex(16)
    hash_bytes = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    )
    return f"{salt}:{iterations}:{hash_bytes.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash. Never raises on bad input."""
    try:
        salt, iterations, stored_hash = password_hash.split(":")
        hash_bytes = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            salt.encode("utf-8"),
            int(iterations),
        )
        return secrets.compare_digest(hash_bytes.hex(), stored_hash)
    except (ValueError, AttributeError):
        return False


# =============================================================================
# Credential Store
# =============================================================================

# Fields the generic update path must never touch
PROTECTED_FIELDS = frozenset({"id", "family_id", "password", "password_hash", "created_at"})


class CredentialStore:
    """Member records and their credentials."""

    def __init__(self, storage: MetadataStorage, settings: Settings):
        self.storage = storage
        self.iterations = settings.password_hash_iterations
        self._pool = ThreadPoolExecutor(
            max_workers=settings.hash_workers,
            thread_name_prefix="hearth-hash",
        )
        self._dummy_hash: str | None = None

    def close(self) -> None:
        self._pool.shutdown(wait=False)

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool, func, *args)

    # -------------------------------------------------------------------------
    # Passwords
    # -------------------------------------------------------------------------

    async def hash_new_password(self, plaintext: str) -> str:
        """Check the policy and hash. The only way a hash is produced."""
        check_password_policy(plaintext)
        return await self._run(hash_password, plaintext, self.iterations)

    async def set_password(self, member: MemberInDB, plaintext: str) -> MemberInDB:
        """Replace a member's credential. Nothing is stored if the policy fails."""
        password_hash = await self.hash_new_password(plaintext)
        now = utc_now()
        updated = await self.storage.update(
            Collections.MEMBERS,
            member.id,
            {"password_hash": password_hash, "updated_at": now.isoformat()},
        )
        if not updated:
            raise NotFoundError("member_not_found", "Member not found")
        logger.info("Password changed for member %s", member.id)
        return member.model_copy(update={"password_hash": password_hash, "updated_at": now})

    async def verify_password(self, member: MemberInDB, plaintext: str) -> bool:
        return await self._run(verify_password, plaintext, member.password_hash)

    async def authenticate(self, email: str, password: str) -> MemberInDB | None:
        """
        Return the member if email and password match, else None.

        Unknown emails still pay for one hash so response time does not
        reveal which accounts exist.
        """
        member = await self.get_member_by_email(email)
        if member is None:
            if self._dummy_hash is None:
                self._dummy_hash = await self._run(
                    hash_password, secrets.token_urlsafe(16), self.iterations
                )
            await self._run(verify_password, password, self._dummy_hash)
            return None
        if not await self.verify_password(member, password):
            return None
        return member

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    async def create_member(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role_id: str,
        family_id: str | None,
        **profile: Any,
    ) -> MemberInDB:
        """Create a member. The password is checked and hashed here."""
        if await self.get_member_by_email(email):
            raise ConflictError("email_taken", "Email already registered")

        member = MemberInDB(
            name=name,
            email=email,
            password_hash=await self.hash_new_password(password),
            role_id=role_id,
            family_id=family_id,
            **profile,
        )
        await self.storage.save(Collections.MEMBERS, member.id, member.model_dump(mode="json"))
        logger.info("Created member %s in family %s", member.id, family_id)
        return member

    async def get_member(self, member_id: str) -> MemberInDB | None:
        data = await self.storage.get(Collections.MEMBERS, member_id)
        return MemberInDB.model_validate(data) if data else None

    async def get_member_by_email(self, email: str) -> MemberInDB | None:
        found = await self.storage.query(
            Collections.MEMBERS, {"email": email.strip().lower()}, limit=1
        )
        return MemberInDB.model_validate(found[0]) if found else None

    async def list_members(self, filters: dict[str, Any] | None = None) -> list[MemberInDB]:
        docs = await self.storage.query(Collections.MEMBERS, filters)
        return [MemberInDB.model_validate(d) for d in docs]

    async def count_members(self, filters: dict[str, Any] | None = None) -> int:
        return await self.storage.count(Collections.MEMBERS, filters)

    async def update_member(self, member_id: str, changes: dict[str, Any]) -> MemberInDB:
        """
        Generic profile update.

        Tenancy and credentials are not reachable from here: family_id never
        changes after creation and passwords go through set_password.
        """
        blocked = PROTECTED_FIELDS & changes.keys()
        if blocked:
            raise ValidationError("immutable_field", f"Cannot update: {', '.join(sorted(blocked))}")

        member = await self.get_member(member_id)
        if member is None:
            raise NotFoundError("member_not_found", "Member not found")

        if "email" in changes and changes["email"] is not None:
            changes["email"] = changes["email"].strip().lower()
            existing = await self.get_member_by_email(changes["email"])
            if existing and existing.id != member_id:
                raise ConflictError("email_taken", "Email already registered")

        try:
            updated = MemberInDB.model_validate(
                {**member.model_dump(), **changes, "updated_at": utc_now()}
            )
        except PydanticValidationError as e:
            raise ValidationError("invalid_member", e.errors()[0]["msg"])
        await self.storage.save(Collections.MEMBERS, updated.id, updated.model_dump(mode="json"))
        return updated

    async def delete_member(self, member_id: str) -> bool:
        return await self.storage.delete(Collections.MEMBERS, member_id)
