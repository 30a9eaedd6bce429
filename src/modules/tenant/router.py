"""Tenant registry API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.exceptions import ForbiddenException
from src.models.enums import TenantStatus
from src.modules.tenancy.auth import AuthenticatedUser, get_current_user
from src.modules.tenancy.dependencies import require_platform_admin
from src.modules.tenant.schemas import (
    CommissionRateUpdate,
    TenantApply,
    TenantListResponse,
    TenantProfileUpdate,
    TenantRejectRequest,
    TenantResponse,
    TenantStatsResponse,
)
from src.modules.tenant.service import TenantService

router = APIRouter(prefix="/tenants", tags=["tenants"])


def _require_self_or_admin(user: AuthenticatedUser, tenant_id: uuid.UUID) -> None:
    if user.is_platform_admin:
        return
    if user.is_tenant and user.tenant_id == tenant_id:
        return
    raise ForbiddenException("Not authorized to access this tenant")


# ---------------------------------------------------------------------------
# Applications and reads
# ---------------------------------------------------------------------------


@router.post("/apply", response_model=TenantResponse, status_code=201)
async def apply(
    body: TenantApply,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a seller application. It starts out pending review."""
    tenant = await TenantService(db).apply(user.id, body.model_dump())
    return TenantResponse.model_validate(tenant)


@router.get("", response_model=TenantListResponse)
async def list_tenants(
    status: TenantStatus | None = Query(None),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    items, total = await TenantService(db).list_tenants(
        status=status, search=search, limit=limit, offset=offset
    )
    return TenantListResponse(
        items=[TenantResponse.model_validate(t) for t in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_self_or_admin(user, tenant_id)
    return TenantResponse.model_validate(await TenantService(db).get_tenant(tenant_id))


@router.get("/{tenant_id}/stats", response_model=TenantStatsResponse)
async def get_tenant_stats(
    tenant_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_self_or_admin(user, tenant_id)
    return TenantStatsResponse(**await TenantService(db).get_stats(tenant_id))


@router.put("/{tenant_id}", response_model=TenantResponse)
async def update_profile(
    tenant_id: uuid.UUID,
    body: TenantProfileUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_self_or_admin(user, tenant_id)
    tenant = await TenantService(db).update_profile(
        tenant_id, body.model_dump(exclude_unset=True)
    )
    return TenantResponse.model_validate(tenant)


# ---------------------------------------------------------------------------
# Registry status (platform admin)
# ---------------------------------------------------------------------------


@router.put("/{tenant_id}/approve", response_model=TenantResponse)
async def approve_tenant(
    tenant_id: uuid.UUID,
    user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await TenantService(db).change_status(tenant_id, "approve", actor_id=user.id)
    return TenantResponse.model_validate(tenant)


@router.put("/{tenant_id}/reject", response_model=TenantResponse)
async def reject_tenant(
    tenant_id: uuid.UUID,
    body: TenantRejectRequest,
    user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await TenantService(db).change_status(
        tenant_id, "reject", actor_id=user.id, reason=body.reason
    )
    return TenantResponse.model_validate(tenant)


@router.put("/{tenant_id}/suspend", response_model=TenantResponse)
async def suspend_tenant(
    tenant_id: uuid.UUID,
    user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await TenantService(db).change_status(tenant_id, "suspend", actor_id=user.id)
    return TenantResponse.model_validate(tenant)


@router.put("/{tenant_id}/reactivate", response_model=TenantResponse)
async def reactivate_tenant(
    tenant_id: uuid.UUID,
    user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    tenant = await TenantService(db).change_status(tenant_id, "reactivate", actor_id=user.id)
    return TenantResponse.model_validate(tenant)


@router.put("/{tenant_id}/commission", response_model=TenantResponse)
async def update_commission_rate(
    tenant_id: uuid.UUID,
    body: CommissionRateUpdate,
    user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    """Change the rate applied to future settlements. Settled orders keep their snapshot."""
    tenant = await TenantService(db).update_commission_rate(
        tenant_id, body.commission_rate, actor_id=user.id
    )
    return TenantResponse.model_validate(tenant)
