"""
Audit trail.

Records who did what inside a family. Writing an entry must never undo the
action it describes, so a failed write is logged and the request carries on.
"""

from __future__ import annotations

import logging
from typing import Any

from hearth.core.errors import HearthError
from hearth.core.models import AuditEntry, MemberInDB
from hearth.storage import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class AuditLog:
    """Append-only audit entries, read back newest first."""

    def __init__(self, storage: MetadataStorage):
        self.storage = storage

    async def record(
        self,
        actor: MemberInDB,
        action: str,
        details: dict[str, Any] | None = None,
        family_id: str | None = None,
    ) -> AuditEntry | None:
        entry = AuditEntry(
            family_id=family_id if family_id is not None else actor.family_id,
            member_id=actor.id,
            member_name=actor.name,
            action=action,
            details=details or {},
        )
        try:
            await self.storage.save(Collections.AUDIT_LOG, entry.id, entry.model_dump(mode="json"))
        except HearthError:
            logger.exception("Failed to save audit event %s for member %s", action, actor.id)
            return None
        return entry

    async def list_entries(self, filters: dict[str, Any], limit: int = 200) -> list[AuditEntry]:
        docs = await self.storage.query(Collections.AUDIT_LOG, filters)
        entries = sorted(
            (AuditEntry.model_validate(d) for d in docs),
            key=lambda e: e.timestamp,
            reverse=True,
        )
        return entries[:limit]
