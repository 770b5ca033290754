"""
Audit log and cross-family administration.

GET /audit     - latest 200 entries for the caller's family (audit:view)
GET /families  - every family (System Administrator only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from hearth.auth.context import AuthContext
from hearth.auth.permissions import Permission
from hearth.auth.policies import require, require_system_admin
from hearth.core.models import AuditEntry, Family
from hearth.services.container import Container, get_container
from hearth.storage import Collections

router = APIRouter(tags=["admin"])


@router.get("/audit", response_model=list[AuditEntry])
async def list_audit_entries(
    ctx: AuthContext = Depends(require(Permission.AUDIT_VIEW)),
    container: Container = Depends(get_container),
):
    return await container.audit.list_entries(ctx.scope())


@router.get("/families", response_model=list[Family])
async def list_families(
    ctx: AuthContext = Depends(require_system_admin()),
    container: Container = Depends(get_container),
):
    docs = await container.storage.query(Collections.FAMILIES)
    return sorted(docs, key=lambda d: d["name"].lower())
