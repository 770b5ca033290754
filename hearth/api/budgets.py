"""
Per-category budgets. A family has at most one budget per category.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hearth.api.common import apply_changes, list_scoped, load_scoped
from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission
from hearth.auth.policies import require
from hearth.core.errors import ConflictError
from hearth.core.models import Budget, BudgetPeriod
from hearth.services.container import Container, get_container
from hearth.storage import Collections

router = APIRouter(prefix="/budgets", tags=["budgets"])


class BudgetCreate(BaseModel):
    category_id: str
    amount: float = Field(gt=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY


class BudgetUpdate(BaseModel):
    amount: float | None = Field(default=None, gt=0)
    period: BudgetPeriod | None = None


@router.get("", response_model=list[Budget])
async def list_budgets(
    ctx: AuthContext = Depends(require(Permission.BUDGETS_VIEW)),
    container: Container = Depends(get_container),
):
    return await list_scoped(container.storage, Collections.BUDGETS, ctx, sort_key="category_name")


@router.post("", response_model=Budget, status_code=201)
async def create_budget(
    data: BudgetCreate,
    ctx: AuthContext = Depends(require(Permission.BUDGETS_MANAGE)),
    container: Container = Depends(get_container),
):
    family_id = ctx.tenant_id
    existing = await container.storage.count(
        Collections.BUDGETS, {"family_id": family_id, "category_id": data.category_id}
    )
    if existing:
        raise ConflictError("budget_exists", "A budget for this category already exists.")

    category = await load_scoped(
        container.storage, Collections.CATEGORIES, data.category_id, ctx, "Category"
    )
    budget = Budget(
        family_id=family_id,
        category_id=category["id"],
        category_name=category["name"],
        amount=data.amount,
        period=data.period,
    )
    await container.storage.save(Collections.BUDGETS, budget.id, budget.model_dump(mode="json"))
    await container.audit.record(
        ctx.member,
        "BUDGET_CREATE",
        {"budgetId": budget.id, "categoryName": budget.category_name, "amount": budget.amount},
    )
    return budget


@router.put("/{budget_id}", response_model=Budget)
async def update_budget(
    budget_id: str,
    data: BudgetUpdate,
    ctx: AuthContext = Depends(require(Permission.BUDGETS_MANAGE)),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.BUDGETS, budget_id, ctx, "Budget")
    changes = data.model_dump(exclude_unset=True, mode="json")
    budget = apply_changes(Budget, doc, changes)
    await container.storage.save(Collections.BUDGETS, budget.id, budget.model_dump(mode="json"))
    await container.audit.record(ctx.member, "BUDGET_UPDATE", {"budgetId": budget.id, "changes": changes})
    return budget


@router.delete("/{budget_id}")
async def delete_budget(
    budget_id: str,
    ctx: AuthContext = Depends(require(Permission.BUDGETS_MANAGE)),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.BUDGETS, budget_id, ctx, "Budget")
    await container.storage.delete(Collections.BUDGETS, budget_id)
    await container.audit.record(
        ctx.member, "BUDGET_DELETE", {"budgetId": budget_id, "categoryName": doc["category_name"]}
    )
    return {"message": "Budget deleted"}
