"""
Direct messages between members of one family.

Any signed-in member may chat; no permission is needed. Both ends of a
conversation are always in the caller's family: a receiver from another
family is reported as not found.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hearth.api.common import load_scoped
from hearth.auth.context import AuthContext
from hearth.auth.policies import require_auth
from hearth.core.models import Message
from hearth.services.container import Container, get_container
from hearth.storage import Collections

router = APIRouter(prefix="/chat", tags=["chat"])


class MessageCreate(BaseModel):
    receiver_id: str
    text: str = Field(min_length=1, max_length=4000)


class MarkReadRequest(BaseModel):
    partner_id: str


@router.get("/conversations", response_model=list[Message])
async def list_conversations(
    ctx: AuthContext = Depends(require_auth()),
    container: Container = Depends(get_container),
):
    """Every message the caller sent or received, oldest first."""
    storage = container.storage
    sent = await storage.query(Collections.MESSAGES, ctx.scope({"sender_id": ctx.member_id}))
    received = await storage.query(Collections.MESSAGES, ctx.scope({"receiver_id": ctx.member_id}))

    by_id = {doc["id"]: doc for doc in sent + received}
    return sorted(by_id.values(), key=lambda d: d["timestamp"])


@router.post("", response_model=Message, status_code=201)
async def send_message(
    data: MessageCreate,
    ctx: AuthContext = Depends(require_auth()),
    container: Container = Depends(get_container),
):
    family_id = ctx.tenant_id
    receiver = await load_scoped(container.storage, Collections.MEMBERS, data.receiver_id, ctx, "Member")

    message = Message(
        family_id=family_id,
        sender_id=ctx.member_id,
        receiver_id=receiver["id"],
        text=data.text,
    )
    await container.storage.save(Collections.MESSAGES, message.id, message.model_dump(mode="json"))
    return message


@router.post("/mark-as-read")
async def mark_as_read(
    data: MarkReadRequest,
    ctx: AuthContext = Depends(require_auth()),
    container: Container = Depends(get_container),
):
    """Mark everything the partner sent the caller as read."""
    unread = await container.storage.query(
        Collections.MESSAGES,
        ctx.scope({"receiver_id": ctx.member_id, "sender_id": data.partner_id, "is_read": False}),
    )
    for doc in unread:
        await container.storage.update(Collections.MESSAGES, doc["id"], {"is_read": True})
    return {"message": "Messages marked as read", "updated": len(unread)}
