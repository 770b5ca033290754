"""
System setup endpoints.

GET  /setup/status        - has anyone been created yet?
POST /setup/create-admin  - one-time System Administrator bootstrap
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from hearth.core.models import MemberResponse
from hearth.services.container import Container, get_container

router = APIRouter(prefix="/setup", tags=["setup"])


class CreateAdminRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str


class SetupStatus(BaseModel):
    initialized: bool
    member_count: int


@router.get("/status", response_model=SetupStatus)
async def setup_status(container: Container = Depends(get_container)):
    return await container.onboarding.setup_status()


@router.post("/create-admin", response_model=MemberResponse, status_code=201)
async def create_admin(data: CreateAdminRequest, container: Container = Depends(get_container)):
    """Only allowed while no member exists anywhere."""
    admin = await container.onboarding.bootstrap_system_admin(data.name, data.email, data.password)
    return admin.public()
