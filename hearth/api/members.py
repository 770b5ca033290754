"""
Member management within a family.

A member can edit their own profile without members:edit, but nobody can
change their own role or delete themself.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission
from hearth.auth.policies import owner_or, require, require_auth
from hearth.core.errors import ForbiddenError, NotFoundError, ValidationError
from hearth.core.models import MemberProfileUpdate, MemberResponse, SocialLink
from hearth.services.container import Container, get_container

router = APIRouter(prefix="/members", tags=["members"])

can_edit_member = owner_or(Permission.MEMBERS_EDIT, owner_field="id")


class MemberCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str
    role_id: str
    avatar: str = ""
    avatar_hint: str = ""
    phone: str | None = None
    address: str | None = None
    bio: str | None = None
    socials: list[SocialLink] = []


async def _check_role_assignable(container: Container, family_id: str | None, role_id: str) -> None:
    """Only roles of the member's own family can be handed out; never the global one."""
    role = await container.roles.get_role(role_id)
    if role is None or role.is_system or role.family_id != family_id:
        raise ValidationError("invalid_role", "Role does not exist in this family")


async def _load_member(container: Container, ctx: AuthContext, member_id: str):
    member = await container.credentials.get_member(member_id)
    if member is None or not ctx.in_scope(member.model_dump()):
        raise NotFoundError("member_not_found", "Member not found")
    return member


@router.get("", response_model=list[MemberResponse])
async def list_members(
    ctx: AuthContext = Depends(require(Permission.MEMBERS_VIEW)),
    container: Container = Depends(get_container),
):
    members = await container.credentials.list_members(ctx.scope())
    return [m.public() for m in sorted(members, key=lambda m: m.name.lower())]


@router.get("/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: str,
    ctx: AuthContext = Depends(require(Permission.MEMBERS_VIEW)),
    container: Container = Depends(get_container),
):
    return (await _load_member(container, ctx, member_id)).public()


@router.post("", response_model=MemberResponse, status_code=201)
async def create_member(
    data: MemberCreate,
    ctx: AuthContext = Depends(require(Permission.MEMBERS_CREATE)),
    container: Container = Depends(get_container),
):
    family_id = ctx.tenant_id
    await _check_role_assignable(container, family_id, data.role_id)
    member = await container.credentials.create_member(
        family_id=family_id,
        **data.model_dump(),
    )
    await container.audit.record(
        ctx.member, "MEMBER_CREATE", {"memberId": member.id, "name": member.name}
    )
    return member.public()


@router.put("/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: str,
    data: MemberProfileUpdate,
    ctx: AuthContext = Depends(require_auth()),
    container: Container = Depends(get_container),
):
    target = await _load_member(container, ctx, member_id)
    can_edit_member(ctx, target.model_dump())

    changes = data.model_dump(exclude_unset=True)
    if "role_id" in changes and changes["role_id"] != target.role_id:
        if target.id == ctx.member_id:
            raise ForbiddenError("cannot_change_own_role", "You cannot change your own role")
        ctx.require(Permission.ROLES_MANAGE)
        await _check_role_assignable(container, target.family_id, changes["role_id"])

    member = await container.credentials.update_member(member_id, changes)
    await container.audit.record(
        ctx.member, "MEMBER_UPDATE", {"memberId": member.id, "fields": sorted(changes)}
    )
    return member.public()


@router.delete("/{member_id}")
async def delete_member(
    member_id: str,
    ctx: AuthContext = Depends(require(Permission.MEMBERS_DELETE)),
    container: Container = Depends(get_container),
):
    if member_id == ctx.member_id:
        raise ForbiddenError("cannot_delete_self", "You cannot delete yourself")
    target = await _load_member(container, ctx, member_id)
    await container.credentials.delete_member(target.id)
    await container.audit.record(
        ctx.member, "MEMBER_DELETE", {"memberId": target.id, "name": target.name}
    )
    return {"message": "Member deleted"}
