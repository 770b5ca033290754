"""
In-memory storage for development and tests.

Works without any external services. Documents are copied on the way in
and out so callers can never mutate stored state by accident.
"""

from __future__ import annotations

import copy
from typing import Any

from hearth.storage.base import MetadataStorage


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        self._data.setdefault(collection, {})[id] = copy.deepcopy({**data, "id": id})

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return copy.deepcopy(doc) if doc is not None else None

    async def delete(self, collection: str, id: str) -> bool:
        if collection in self._data and id in self._data[collection]:
            del self._data[collection][id]
            return True
        return False

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        results = [
            doc for doc in self._data.get(collection, {}).values()
            if _matches(doc, filters)
        ]
        end = None if limit is None else offset + limit
        return copy.deepcopy(results[offset:end])

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> bool:
        doc = self._data.get(collection, {}).get(id)
        if doc is None:
            return False
        doc.update(copy.deepcopy(updates))
        return True

    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        return sum(1 for doc in self._data.get(collection, {}).values() if _matches(doc, filters))


def _matches(doc: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    return all(doc.get(key) == value for key, value in filters.items())
