"""
Recurring subscriptions (streaming, software, news...).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hearth.api.common import apply_changes, list_scoped, load_scoped
from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission
from hearth.auth.policies import require
from hearth.core.models import BillingCycle, Subscription
from hearth.services.container import Container, get_container
from hearth.storage import Collections

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


class SubscriptionCreate(BaseModel):
    name: str = Field(min_length=1)
    icon: str = "Repeat"
    amount: float = Field(gt=0)
    currency: str = "USD"
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    next_payment_date: str
    category: str


class SubscriptionUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    icon: str | None = None
    amount: float | None = Field(default=None, gt=0)
    currency: str | None = None
    billing_cycle: BillingCycle | None = None
    next_payment_date: str | None = None
    category: str | None = None


@router.get("", response_model=list[Subscription])
async def list_subscriptions(
    ctx: AuthContext = Depends(require(Permission.SUBSCRIPTIONS_MANAGE)),
    container: Container = Depends(get_container),
):
    """Soonest payment first."""
    return await list_scoped(container.storage, Collections.SUBSCRIPTIONS, ctx, sort_key="next_payment_date")


@router.post("", response_model=Subscription, status_code=201)
async def create_subscription(
    data: SubscriptionCreate,
    ctx: AuthContext = Depends(require(Permission.SUBSCRIPTIONS_MANAGE)),
    container: Container = Depends(get_container),
):
    sub = Subscription(family_id=ctx.tenant_id, **data.model_dump())
    await container.storage.save(Collections.SUBSCRIPTIONS, sub.id, sub.model_dump(mode="json"))
    return sub


@router.put("/{sub_id}", response_model=Subscription)
async def update_subscription(
    sub_id: str,
    data: SubscriptionUpdate,
    ctx: AuthContext = Depends(require(Permission.SUBSCRIPTIONS_MANAGE)),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.SUBSCRIPTIONS, sub_id, ctx, "Subscription")
    sub = apply_changes(Subscription, doc, data.model_dump(exclude_unset=True, mode="json"))
    await container.storage.save(Collections.SUBSCRIPTIONS, sub.id, sub.model_dump(mode="json"))
    return sub


@router.delete("/{sub_id}")
async def delete_subscription(
    sub_id: str,
    ctx: AuthContext = Depends(require(Permission.SUBSCRIPTIONS_MANAGE)),
    container: Container = Depends(get_container),
):
    await load_scoped(container.storage, Collections.SUBSCRIPTIONS, sub_id, ctx, "Subscription")
    await container.storage.delete(Collections.SUBSCRIPTIONS, sub_id)
    return {"message": "Subscription deleted"}
