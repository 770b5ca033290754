"""
Roles and the permission catalog.

All endpoints need roles:manage. Roles are always read and written within
the caller's own family.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission, catalog
from hearth.auth.policies import require
from hearth.core.models import Role
from hearth.services.container import Container, get_container

router = APIRouter(tags=["roles"])


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=60)
    permissions: list[str] = []


class RoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=60)
    permissions: list[str] | None = None


@router.get("/permissions")
async def list_permissions(ctx: AuthContext = Depends(require(Permission.ROLES_MANAGE))):
    """Grouped catalog for the role editor."""
    return catalog()


@router.get("/roles", response_model=list[Role])
async def list_roles(
    ctx: AuthContext = Depends(require(Permission.ROLES_MANAGE)),
    container: Container = Depends(get_container),
):
    return await container.roles.list_roles(ctx.family_id)


@router.post("/roles", response_model=Role, status_code=201)
async def create_role(
    data: RoleCreate,
    ctx: AuthContext = Depends(require(Permission.ROLES_MANAGE)),
    container: Container = Depends(get_container),
):
    role = await container.roles.create_role(data.name, data.permissions, ctx.tenant_id)
    await container.audit.record(ctx.member, "ROLE_CREATE", {"roleId": role.id, "name": role.name})
    return role


@router.put("/roles/{role_id}", response_model=Role)
async def update_role(
    role_id: str,
    data: RoleUpdate,
    ctx: AuthContext = Depends(require(Permission.ROLES_MANAGE)),
    container: Container = Depends(get_container),
):
    role = await container.roles.update_role(
        role_id, ctx.tenant_id, name=data.name, permissions=data.permissions
    )
    await container.audit.record(
        ctx.member, "ROLE_UPDATE", {"roleId": role.id, "changes": data.model_dump(exclude_none=True)}
    )
    return role


@router.delete("/roles/{role_id}")
async def delete_role(
    role_id: str,
    ctx: AuthContext = Depends(require(Permission.ROLES_MANAGE)),
    container: Container = Depends(get_container),
):
    await container.roles.delete_role(role_id, ctx.tenant_id)
    await container.audit.record(ctx.member, "ROLE_DELETE", {"roleId": role_id})
    return {"message": "Role deleted"}
