"""
Helpers shared by the resource routers.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from hearth.auth.context import AuthContext
from hearth.core.errors import NotFoundError, ValidationError
from hearth.storage import MetadataStorage


async def load_scoped(
    storage: MetadataStorage,
    collection: str,
    doc_id: str,
    ctx: AuthContext,
    label: str = "Resource",
) -> dict[str, Any]:
    """
    Load a document the caller may see.

    Documents of other families are reported exactly like missing ones so
    their existence is never confirmed.
    """
    doc = await storage.get(collection, doc_id)
    if not ctx.in_scope(doc):
        raise NotFoundError("not_found", f"{label} not found")
    return doc


async def list_scoped(
    storage: MetadataStorage,
    collection: str,
    ctx: AuthContext,
    filters: dict[str, Any] | None = None,
    sort_key: str | None = None,
    reverse: bool = False,
) -> list[dict[str, Any]]:
    docs = await storage.query(collection, ctx.scope(filters))
    if sort_key:
        docs.sort(key=lambda d: (d.get(sort_key) is None, d.get(sort_key)), reverse=reverse)
    return docs


M = TypeVar("M", bound=BaseModel)


def apply_changes(model: type[M], doc: dict[str, Any], changes: dict[str, Any]) -> M:
    """
    Merge a partial update into a stored document and revalidate it.

    An explicit null on a required field is a bad request, not a server error.
    """
    try:
        return model.model_validate({**doc, **changes})
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(p) for p in error["loc"])
        raise ValidationError("invalid_update", f"{field}: {error['msg']}")
