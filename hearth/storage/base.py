"""
Storage abstraction layer.

All persistence goes through MetadataStorage. This allows swapping the
in-memory development store for a real document database without changing
application code.

Every call made on behalf of a request goes through BoundedStorage, which
turns a slow backend into StoreUnavailableError instead of letting it look
like a bad credential.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, TypeVar

from hearth.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Storage Interface
# =============================================================================


class MetadataStorage(ABC):
    """
    Storage for structured documents (members, roles, transactions...).

    Filters are plain equality matches on top-level fields.
    """

    @abstractmethod
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Save (insert or replace) a document in a collection."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents with optional filters."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        """Partial update of a document."""
        pass

    @abstractmethod
    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        """Count documents matching filters."""
        pass

    async def delete_where(self, collection: str, filters: dict[str, Any]) -> int:
        """Delete every document matching filters. Returns how many went."""
        removed = 0
        for doc in await self.query(collection, filters):
            if await self.delete(collection, doc["id"]):
                removed += 1
        return removed


# =============================================================================
# Timeout wrapper
# =============================================================================


class BoundedStorage(MetadataStorage):
    """Wraps another store and bounds every call by a timeout."""

    def __init__(self, inner: MetadataStorage, timeout_seconds: float):
        self.inner = inner
        self.timeout_seconds = timeout_seconds

    async def _bounded(self, op: str, collection: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Store %s on %s timed out after %.1fs", op, collection, self.timeout_seconds)
            raise StoreUnavailableError()

    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        await self._bounded("save", collection, self.inner.save(collection, id, data))

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        return await self._bounded("get", collection, self.inner.get(collection, id))

    async def delete(self, collection: str, id: str) -> bool:
        return await self._bounded("delete", collection, self.inner.delete(collection, id))

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        return await self._bounded(
            "query", collection, self.inner.query(collection, filters, limit, offset)
        )

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        return await self._bounded("update", collection, self.inner.update(collection, id, updates))

    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        return await self._bounded("count", collection, self.inner.count(collection, filters))

    async def delete_where(self, collection: str, filters: dict[str, Any]) -> int:
        return await self._bounded(
            "delete_where", collection, self.inner.delete_where(collection, filters)
        )


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection names."""

    FAMILIES = "families"
    MEMBERS = "members"
    ROLES = "roles"
    CATEGORIES = "categories"
    TRANSACTIONS = "transactions"
    BUDGETS = "budgets"
    TRIPS = "trips"
    SUBSCRIPTIONS = "subscriptions"
    APPROVALS = "approvals"
    MESSAGES = "messages"
    AUDIT_LOG = "audit_log"
