"""
Family spending categories, kept in a user-defined order.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hearth.api.common import apply_changes, list_scoped, load_scoped
from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission
from hearth.auth.policies import require
from hearth.core.errors import ConflictError
from hearth.core.models import Category
from hearth.services.container import Container, get_container
from hearth.storage import Collections

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=60)
    icon: str
    color: str
    order: int | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=60)
    icon: str | None = None
    color: str | None = None


class ReorderRequest(BaseModel):
    ordered_ids: list[str]


@router.get("", response_model=list[Category])
async def list_categories(
    ctx: AuthContext = Depends(require(Permission.CATEGORIES_VIEW)),
    container: Container = Depends(get_container),
):
    return await list_scoped(container.storage, Collections.CATEGORIES, ctx, sort_key="order")


@router.post("", response_model=Category, status_code=201)
async def create_category(
    data: CategoryCreate,
    ctx: AuthContext = Depends(require(Permission.CATEGORIES_CREATE)),
    container: Container = Depends(get_container),
):
    family_id = ctx.tenant_id
    order = data.order
    if order is None:
        order = await container.storage.count(Collections.CATEGORIES, {"family_id": family_id})
    category = Category(family_id=family_id, name=data.name, icon=data.icon, color=data.color, order=order)
    await container.storage.save(Collections.CATEGORIES, category.id, category.model_dump(mode="json"))
    return category


@router.put("/{category_id}", response_model=Category)
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    ctx: AuthContext = Depends(require(Permission.CATEGORIES_EDIT)),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.CATEGORIES, category_id, ctx, "Category")
    category = apply_changes(Category, doc, data.model_dump(exclude_unset=True))
    await container.storage.save(Collections.CATEGORIES, category.id, category.model_dump(mode="json"))
    return category


@router.post("/reorder")
async def reorder_categories(
    data: ReorderRequest,
    ctx: AuthContext = Depends(require(Permission.CATEGORIES_EDIT)),
    container: Container = Depends(get_container),
):
    """Ids from other families are skipped silently."""
    for index, category_id in enumerate(data.ordered_ids):
        doc = await container.storage.get(Collections.CATEGORIES, category_id)
        if ctx.in_scope(doc):
            await container.storage.update(Collections.CATEGORIES, category_id, {"order": index})
    return {"message": "Categories reordered successfully"}


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    ctx: AuthContext = Depends(require(Permission.CATEGORIES_DELETE)),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.CATEGORIES, category_id, ctx, "Category")

    in_use = await container.storage.count(
        Collections.TRANSACTIONS, {"family_id": doc["family_id"], "category": doc["name"]}
    )
    if in_use:
        raise ConflictError(
            "category_in_use", "Cannot delete category. It is currently in use by transactions."
        )

    await container.storage.delete(Collections.CATEGORIES, category_id)
    return {"message": "Category deleted"}
