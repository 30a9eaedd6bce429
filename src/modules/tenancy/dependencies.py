"""FastAPI dependencies that gate endpoints by caller role."""

from fastapi import Depends

from src.exceptions import ForbiddenException
from src.modules.tenancy.auth import AuthenticatedUser, get_current_user


def require_platform_admin(
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    if not user.is_platform_admin:
        raise ForbiddenException("Platform admin access required")
    return user


def require_tenant_user(
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    if not user.is_tenant:
        raise ForbiddenException("Tenant access required")
    return user


def require_staff(
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Platform admins and tenant users; customers are refused."""
    if not (user.is_platform_admin or user.is_tenant):
        raise ForbiddenException("Admin or tenant access required")
    return user
