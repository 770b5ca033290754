# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /auth/register         - Create a family and its head member
#   POST /auth/login            - Get a session token
#   GET  /auth/me               - Current member + permissions
#   POST /auth/change-password  - Replace own password
#
# Login failures are always "Invalid credentials", whichever part was wrong.
#
# =============================================================================

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from hearth.auth.context import AuthContext
from hearth.auth.policies import require_auth
from hearth.core.errors import AuthError, ForbiddenError, ValidationError
from hearth.core.models import Family, MemberInDB, MemberResponse, Role
from hearth.services.container import Container, get_container

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Request/Response Models
# =============================================================================


class RegisterRequest(BaseModel):
    family_name: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class SessionUser(MemberResponse):
    """Member profile plus what they may do right now."""

    role_name: str
    permissions: list[str]


class SessionResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: SessionUser


class RegisterResponse(SessionResponse):
    family: Family


def session_user(member: MemberInDB, role: Role) -> SessionUser:
    return SessionUser(
        **member.public().model_dump(),
        role_name=role.name,
        permissions=sorted(p.value for p in role.permissions),
    )


async def _session_for(container: Container, member: MemberInDB) -> SessionResponse:
    role = await container.roles.find_role_for_member(member)
    if role is None:
        raise ForbiddenError("role_missing", "User role not found, authorization denied")
    return SessionResponse(
        token=container.tokens.issue(member),
        expires_in=container.tokens.expires_in,
        user=session_user(member, role),
    )


# =============================================================================
# Public Endpoints
# =============================================================================


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(data: RegisterRequest, container: Container = Depends(get_container)):
    """
    Create a new family with the caller as its head.

    Returns a session token on success.
    """
    family, head = await container.onboarding.register_family(
        family_name=data.family_name,
        name=data.name,
        email=data.email,
        password=data.password,
    )
    session = await _session_for(container, head)
    return RegisterResponse(**session.model_dump(), family=family)


@router.post("/login", response_model=SessionResponse)
async def login(data: LoginRequest, container: Container = Depends(get_container)):
    """Authenticate and get a token."""
    member = await container.credentials.authenticate(data.email, data.password)
    if not member:
        raise AuthError("invalid_credentials", "Invalid credentials")
    return await _session_for(container, member)


# =============================================================================
# Protected Endpoints
# =============================================================================


@router.get("/me", response_model=SessionUser)
async def get_current_member(ctx: AuthContext = Depends(require_auth())):
    """The current member, with permissions resolved for this request."""
    return session_user(ctx.member, ctx.role)


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    ctx: AuthContext = Depends(require_auth()),
    container: Container = Depends(get_container),
):
    if not await container.credentials.verify_password(ctx.member, data.current_password):
        raise ValidationError("wrong_password", "Current password is incorrect")
    await container.credentials.set_password(ctx.member, data.new_password)
    await container.audit.record(ctx.member, "PASSWORD_CHANGE")
    return {"message": "Password changed successfully"}
