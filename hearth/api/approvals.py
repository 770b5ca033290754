"""
Spending approval requests.

Members with approvals:request file requests and see their own; holders of
approvals:manage see the whole family's and decide them. A decision is
final: only Pending moves, and only to Approved or Declined.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hearth.api.common import list_scoped, load_scoped
from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission
from hearth.auth.policies import require, require_any
from hearth.core.errors import ValidationError
from hearth.core.models import Approval, ApprovalFrequency, ApprovalStatus
from hearth.services.container import Container, get_container
from hearth.storage import Collections

router = APIRouter(prefix="/approvals", tags=["approvals"])


ALLOWED_TRANSITIONS: dict[ApprovalStatus, set[ApprovalStatus]] = {
    ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.DECLINED},
    ApprovalStatus.APPROVED: set(),
    ApprovalStatus.DECLINED: set(),
}


class ApprovalCreate(BaseModel):
    category: str
    amount: float = Field(gt=0)
    currency: str = "USD"
    frequency: ApprovalFrequency = ApprovalFrequency.ONCE
    project: str = ""
    description: str = Field(min_length=1)


class StatusUpdate(BaseModel):
    status: ApprovalStatus


@router.get("", response_model=list[Approval])
async def list_approvals(
    ctx: AuthContext = Depends(require_any(Permission.APPROVALS_REQUEST, Permission.APPROVALS_MANAGE)),
    container: Container = Depends(get_container),
):
    filters = None if ctx.can(Permission.APPROVALS_MANAGE) else {"requester_id": ctx.member_id}
    return await list_scoped(
        container.storage, Collections.APPROVALS, ctx, filters, sort_key="created_at", reverse=True
    )


@router.post("", response_model=Approval, status_code=201)
async def request_approval(
    data: ApprovalCreate,
    ctx: AuthContext = Depends(require(Permission.APPROVALS_REQUEST)),
    container: Container = Depends(get_container),
):
    approval = Approval(family_id=ctx.tenant_id, requester_id=ctx.member_id, **data.model_dump())
    await container.storage.save(Collections.APPROVALS, approval.id, approval.model_dump(mode="json"))
    return approval


@router.put("/{approval_id}/status", response_model=Approval)
async def decide_approval(
    approval_id: str,
    data: StatusUpdate,
    ctx: AuthContext = Depends(require(Permission.APPROVALS_MANAGE)),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.APPROVALS, approval_id, ctx, "Approval")
    current = ApprovalStatus(doc["status"])
    if data.status not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(
            "invalid_status_transition",
            f"Cannot move an approval from {current.value} to {data.status.value}",
        )

    await container.storage.update(Collections.APPROVALS, approval_id, {"status": data.status.value})
    await container.audit.record(
        ctx.member, "APPROVAL_DECIDE", {"approvalId": approval_id, "status": data.status.value}
    )
    return Approval.model_validate({**doc, "status": data.status.value})
