"""Tenancy module — caller identity and per-request tenant scope."""

from src.modules.tenancy.auth import AuthenticatedUser, create_access_token, get_current_user
from src.modules.tenancy.dependencies import (
    require_platform_admin,
    require_staff,
    require_tenant_user,
)

__all__ = [
    "AuthenticatedUser",
    "create_access_token",
    "get_current_user",
    "require_platform_admin",
    "require_staff",
    "require_tenant_user",
]
