"""
Authorization middleware - the per-request trust boundary.

For every protected endpoint:
1. Bearer token present?                    no  -> 401 no_token
2. Signature and expiry valid?              no  -> 401 invalid_token
3. Member still exists, same family?        no  -> 401 stale_token
4. Member's role still exists?              no  -> 403 role_missing
   Role in the member's family?             no  -> 500 integrity_error
5. Build AuthContext, attach to request.state.auth

Nothing from the token except identity is trusted; the member and role
are re-read from storage each time.
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hearth.auth.context import AuthContext
from hearth.auth.credentials import CredentialStore
from hearth.auth.roles import RoleRegistry
from hearth.auth.tokens import TokenService
from hearth.core.errors import AuthError, ForbiddenError

logger = logging.getLogger(__name__)


# Doesn't fail by itself; a missing token is reported as no_token below
optional_bearer = HTTPBearer(auto_error=False)


class Authorizer:
    """Turns a bearer token into a fully resolved AuthContext."""

    def __init__(self, tokens: TokenService, credentials: CredentialStore, roles: RoleRegistry):
        self.tokens = tokens
        self.credentials = credentials
        self.roles = roles

    async def resolve(self, token: str | None) -> AuthContext:
        if not token:
            raise AuthError("no_token", "No token, authorization denied")

        claim = self.tokens.verify(token)

        member = await self.credentials.get_member(claim.member.id)
        if member is None or member.family_id != claim.member.family_id:
            logger.warning("Stale token for member %s", claim.member.id)
            raise AuthError("stale_token", "Token is not valid")

        role = await self.roles.find_role_for_member(member)
        if role is None:
            logger.warning("Member %s has no role (role %s missing)", member.id, member.role_id)
            raise ForbiddenError("role_missing", "User role not found, authorization denied")

        return AuthContext(member=member, role=role)


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> AuthContext:
    """FastAPI dependency: authenticate the request or fail it."""
    authorizer: Authorizer = request.app.state.container.authorizer
    token = credentials.credentials if credentials else None

    ctx = await authorizer.resolve(token)
    request.state.auth = ctx
    return ctx
