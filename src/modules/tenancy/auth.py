"""JWT authentication dependency for FastAPI.

Validates Bearer tokens from the Authorization header and turns the claims
into an :class:`AuthenticatedUser`. The caller's role and tenant scope travel
with the request; nothing about the caller is stored server-side.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.config import settings
from src.database.base import utcnow
from src.exceptions import UnauthorizedException
from src.models.enums import CallerRole

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """The caller of a request, as asserted by its JWT."""

    id: uuid.UUID
    email: str
    role: CallerRole
    tenant_id: uuid.UUID | None = None

    @property
    def is_platform_admin(self) -> bool:
        return self.role == CallerRole.PLATFORM_ADMIN

    @property
    def is_tenant(self) -> bool:
        return self.role == CallerRole.TENANT and self.tenant_id is not None


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    role: CallerRole,
    tenant_id: uuid.UUID | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """Issue a signed token. Used by the seeder and tests; real tokens come from the auth service."""
    expires_at = utcnow() + (expires_in or timedelta(minutes=settings.jwt_expiry_minutes))
    claims = {"sub": str(user_id), "email": email, "role": role.value, "exp": expires_at}
    if tenant_id is not None:
        claims["tenant_id"] = str(tenant_id)
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser:
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    payload = _decode_token(credentials.credentials)

    try:
        tenant_claim = payload.get("tenant_id")
        user = AuthenticatedUser(
            id=uuid.UUID(payload["sub"]),
            email=payload["email"],
            role=CallerRole(payload["role"]),
            tenant_id=uuid.UUID(tenant_claim) if tenant_claim else None,
        )
    except (KeyError, ValueError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc

    if user.role == CallerRole.TENANT and user.tenant_id is None:
        raise UnauthorizedException("Tenant token must carry a tenant_id claim")

    request.state.user = user
    return user
