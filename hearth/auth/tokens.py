# =============================================================================
# Session Tokens
# =============================================================================
#
# Stateless signed JWTs:
#   - issue(): minimal identity claim + iat + fixed expiry
#   - verify(): signature and expiry only
#
# No storage and no business rules live here. Whether the member still
# exists, or still belongs to the same family, is decided by the
# authorization middleware.
#
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import jwt
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from hearth.config import Settings
from hearth.core.errors import AuthError
from hearth.core.models import MemberInDB
from hearth.core.utils import utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================


class TokenIdentity(BaseModel):
    """Who the token was issued to."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    role_id: str = Field(default="", alias="roleId")
    family_id: str | None = Field(default=None, alias="familyId")


class SessionClaim(BaseModel):
    """Decoded session token payload."""

    member: TokenIdentity
    iat: datetime
    exp: datetime


# =============================================================================
# Token Service
# =============================================================================


class TokenService:
    """Issues and verifies session tokens with a server-held secret."""

    def __init__(self, settings: Settings):
        self.secret_key = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.lifetime = timedelta(hours=settings.jwt_expire_hours)

    @property
    def expires_in(self) -> int:
        """Seconds a fresh token stays valid."""
        return int(self.lifetime.total_seconds())

    def issue(self, member: MemberInDB, now: datetime | None = None) -> str:
        """Create a signed token for a member."""
        issued_at = now or utc_now()
        payload = {
            "member": {
                "id": member.id,
                "name": member.name,
                "roleId": member.role_id,
                "familyId": member.family_id,
            },
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> SessionClaim:
        """
        Decode and validate a token.

        Raises:
            AuthError("invalid_token"): bad signature, tampering, expiry,
                or a payload without the identity claim
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat"]},
            )
            return SessionClaim(
                member=TokenIdentity.model_validate(payload["member"]),
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            raise AuthError("invalid_token", "Token has expired")
        except jwt.InvalidTokenError as e:
            logger.info("Rejected invalid token: %s", e)
            raise AuthError("invalid_token", "Token is not valid")
        except (KeyError, TypeError, PydanticValidationError):
            logger.info("Rejected token without identity claim")
            raise AuthError("invalid_token", "Token is not valid")
