"""
Income and expense transactions.

Income and expenses share a collection but not permissions: every action
checks the permission that matches the row's type.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hearth.api.common import apply_changes, list_scoped, load_scoped
from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission
from hearth.auth.policies import require_any
from hearth.core.models import (
    RecurrenceFrequency,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from hearth.services.container import Container, get_container
from hearth.storage import Collections

router = APIRouter(prefix="/transactions", tags=["transactions"])


PERMISSIONS_BY_TYPE: dict[TransactionType, dict[str, Permission]] = {
    TransactionType.EXPENSE: {
        "view": Permission.EXPENSES_VIEW,
        "create": Permission.EXPENSES_CREATE,
        "edit": Permission.EXPENSES_EDIT,
        "delete": Permission.EXPENSES_DELETE,
    },
    TransactionType.INCOME: {
        "view": Permission.INCOME_VIEW,
        "create": Permission.INCOME_CREATE,
        "edit": Permission.INCOME_EDIT,
        "delete": Permission.INCOME_DELETE,
    },
}


def permission_for(txn_type: TransactionType | str, action: str) -> Permission:
    return PERMISSIONS_BY_TYPE[TransactionType(txn_type)][action]


class TransactionCreate(BaseModel):
    type: TransactionType
    category: str
    description: str
    amount: float = Field(gt=0)
    currency: str = "USD"
    date: str
    merchant: str = ""
    receipt_url: str | None = None
    status: TransactionStatus = TransactionStatus.NOT_SUBMITTED
    is_recurring: bool = False
    recurrence_frequency: RecurrenceFrequency | None = None
    reimbursable: bool = False


class TransactionUpdate(BaseModel):
    type: TransactionType | None = None
    category: str | None = None
    description: str | None = None
    amount: float | None = Field(default=None, gt=0)
    currency: str | None = None
    date: str | None = None
    merchant: str | None = None
    receipt_url: str | None = None
    status: TransactionStatus | None = None
    is_recurring: bool | None = None
    recurrence_frequency: RecurrenceFrequency | None = None
    reimbursable: bool | None = None


class BulkDeleteRequest(BaseModel):
    ids: list[str]


@router.get("", response_model=list[Transaction])
async def list_transactions(
    ctx: AuthContext = Depends(require_any(Permission.EXPENSES_VIEW, Permission.INCOME_VIEW)),
    container: Container = Depends(get_container),
):
    """Newest first, only the types the caller may view."""
    docs = await list_scoped(
        container.storage, Collections.TRANSACTIONS, ctx, sort_key="date", reverse=True
    )
    return [d for d in docs if ctx.can(permission_for(d["type"], "view"))]


@router.post("", response_model=Transaction, status_code=201)
async def create_transaction(
    data: TransactionCreate,
    ctx: AuthContext = Depends(require_any(Permission.EXPENSES_CREATE, Permission.INCOME_CREATE)),
    container: Container = Depends(get_container),
):
    ctx.require(permission_for(data.type, "create"))
    txn = Transaction(family_id=ctx.tenant_id, member_id=ctx.member_id, **data.model_dump())
    await container.storage.save(Collections.TRANSACTIONS, txn.id, txn.model_dump(mode="json"))
    return txn


@router.put("/{txn_id}", response_model=Transaction)
async def update_transaction(
    txn_id: str,
    data: TransactionUpdate,
    ctx: AuthContext = Depends(require_any(Permission.EXPENSES_EDIT, Permission.INCOME_EDIT)),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.TRANSACTIONS, txn_id, ctx, "Transaction")
    ctx.require(permission_for(doc["type"], "edit"))

    changes = data.model_dump(exclude_unset=True, mode="json")
    if changes.get("type") is not None:
        ctx.require(permission_for(changes["type"], "edit"))

    txn = apply_changes(Transaction, doc, {**changes, "id": doc["id"], "family_id": doc["family_id"]})
    await container.storage.save(Collections.TRANSACTIONS, txn.id, txn.model_dump(mode="json"))
    return txn


@router.delete("/{txn_id}")
async def delete_transaction(
    txn_id: str,
    ctx: AuthContext = Depends(require_any(Permission.EXPENSES_DELETE, Permission.INCOME_DELETE)),
    container: Container = Depends(get_container),
):
    doc = await load_scoped(container.storage, Collections.TRANSACTIONS, txn_id, ctx, "Transaction")
    ctx.require(permission_for(doc["type"], "delete"))
    await container.storage.delete(Collections.TRANSACTIONS, txn_id)
    return {"message": "Transaction deleted"}


@router.post("/bulk-delete")
async def bulk_delete_transactions(
    data: BulkDeleteRequest,
    ctx: AuthContext = Depends(require_any(Permission.EXPENSES_DELETE, Permission.INCOME_DELETE)),
    container: Container = Depends(get_container),
):
    """All-or-nothing: every visible row must be deletable by the caller."""
    docs = []
    for txn_id in dict.fromkeys(data.ids):
        doc = await container.storage.get(Collections.TRANSACTIONS, txn_id)
        if ctx.in_scope(doc):
            ctx.require(permission_for(doc["type"], "delete"))
            docs.append(doc)

    for doc in docs:
        await container.storage.delete(Collections.TRANSACTIONS, doc["id"])
    await container.audit.record(ctx.member, "TRANSACTION_BULK_DELETE", {"count": len(docs)})
    return {"message": "Transactions deleted successfully.", "deleted": len(docs)}
