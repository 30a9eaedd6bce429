"""Order API router: checkout, routing, status, notifications and invoices."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.models.enums import CallerRole, OrderStatus
from src.modules.assignment.service import AssignmentResult, AssignmentService
from src.modules.invoice.schemas import InvoiceShareResponse
from src.modules.invoice.service import PDF_CONTENT_TYPE, InvoiceService, invoice_filename
from src.modules.notification import templates
from src.modules.notification.dispatcher import NotificationDispatcher
from src.modules.notification.schemas import NotificationResultResponse, TemplateResponse
from src.modules.order.schemas import (
    AdminStatusUpdate,
    AssignmentResponse,
    AssignTenantRequest,
    CancelOrderRequest,
    CommissionResponse,
    DashboardStatsResponse,
    DeclineResponse,
    NotifyRequest,
    OfferResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    StatusHistoryResponse,
    TenantStatusUpdate,
    TransitionResponse,
)
from src.modules.order.service import OrderService
from src.modules.status.service import StatusStateMachine, TransitionResult
from src.modules.tenancy.auth import AuthenticatedUser, get_current_user
from src.modules.tenancy.dependencies import (
    require_platform_admin,
    require_staff,
    require_tenant_user,
)

router = APIRouter(prefix="/orders", tags=["orders"])
limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _assignment_response(result: AssignmentResult) -> AssignmentResponse:
    return AssignmentResponse(
        mode=result.mode,
        order=OrderResponse.model_validate(result.order),
        tenant_ids=[result.order.tenant_id],
    )


def _transition_response(result: TransitionResult) -> TransitionResponse:
    commission = None
    if result.commission is not None:
        commission = CommissionResponse.model_validate(result.commission)
    return TransitionResponse(
        order=OrderResponse.model_validate(result.order),
        previous_status=result.previous_status,
        changed=result.changed,
        commission=commission,
    )


def _order_list(items, total: int, limit: int, offset: int) -> OrderListResponse:
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in items],
        total=total,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# Creation and reads
# ---------------------------------------------------------------------------


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    body: OrderCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Persist a checked-out order in Pending."""
    customer_id = user.id if user.role == CallerRole.CUSTOMER else None
    data = body.model_dump()
    data["shipping_address"] = body.shipping_address.model_dump(by_alias=True)
    order = await OrderService(db).create_order(data, customer_id=customer_id)
    return OrderResponse.model_validate(order)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status: OrderStatus | None = Query(None),
    tenant_id: uuid.UUID | None = Query(None, alias="tenantId"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Orders in the caller's scope: all for admins, owned for tenants, own for customers."""
    items, total = await OrderService(db).list_orders(
        user, status=status, tenant_id=tenant_id, limit=limit, offset=offset
    )
    return _order_list(items, total, limit, offset)


@router.get("/my-orders", response_model=OrderListResponse)
async def list_my_orders(
    status: OrderStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: AuthenticatedUser = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await OrderService(db).list_orders(
        user, status=status, limit=limit, offset=offset
    )
    return _order_list(items, total, limit, offset)


@router.get("/offers", response_model=list[OfferResponse])
async def list_open_offers(
    user: AuthenticatedUser = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
):
    """Broadcast offers this tenant can still accept."""
    pairs = await OrderService(db).list_open_offers(user.tenant_id)
    return [
        OfferResponse(
            offer_id=offer.id,
            broadcast_id=offer.broadcast_id,
            outcome=offer.outcome,
            expires_at=offer.expires_at,
            order=OrderResponse.model_validate(order),
        )
        for offer, order in pairs
    ]


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    _user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    return DashboardStatsResponse(**await OrderService(db).get_dashboard_stats())


@router.get("/notification-templates", response_model=list[TemplateResponse])
async def list_notification_templates(
    _user: AuthenticatedUser = Depends(require_platform_admin),
):
    return [TemplateResponse.model_validate(t) for t in templates.list_templates()]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).get_order_for_caller(order_id, user)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/history", response_model=list[StatusHistoryResponse])
async def get_order_history(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Assignment and status timeline, visible to anyone who can view the order."""
    rows = await OrderService(db).get_history(order_id, user)
    return [StatusHistoryResponse.model_validate(row) for row in rows]


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


@router.post("/{order_id}/assign-tenant", response_model=AssignmentResponse)
async def assign_tenant(
    order_id: uuid.UUID,
    body: AssignTenantRequest,
    user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    """Assign a tenant directly, or broadcast the order when ``notifyOnly`` is set."""
    svc = AssignmentService(db)
    if body.notify_only:
        result = await svc.broadcast(order_id, body.candidate_ids(), user)
        return AssignmentResponse(
            mode="broadcast",
            order=OrderResponse.model_validate(result.order),
            broadcast_id=result.broadcast_id,
            tenant_ids=result.tenant_ids,
            expires_at=result.expires_at,
        )
    result = await svc.assign_direct(order_id, body.tenant_id, user)
    return _assignment_response(result)


@router.post("/{order_id}/accept", response_model=AssignmentResponse)
async def accept_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
):
    """Claim a broadcast order. Only the first tenant to accept gets it."""
    result = await AssignmentService(db).claim(order_id, user.tenant_id, user)
    return _assignment_response(result)


@router.post("/{order_id}/decline", response_model=DeclineResponse)
async def decline_order(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
):
    offer = await AssignmentService(db).decline(order_id, user.tenant_id)
    return DeclineResponse(order_id=order_id, offer_id=offer.id, outcome=offer.outcome)


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@router.put("/{order_id}/status", response_model=TransitionResponse)
async def update_status(
    order_id: uuid.UUID,
    body: AdminStatusUpdate,
    user: AuthenticatedUser = Depends(require_platform_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await StatusStateMachine(db).transition(
        order_id,
        user,
        body.status,
        tracking_number=body.tracking_number,
        message=body.message,
        expected_status=body.expected_status,
    )
    return _transition_response(result)


@router.put("/{order_id}/tenant-status", response_model=TransitionResponse)
async def update_tenant_status(
    order_id: uuid.UUID,
    body: TenantStatusUpdate,
    user: AuthenticatedUser = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
):
    """Advance an owned order one step, or cancel it."""
    result = await StatusStateMachine(db).transition(
        order_id,
        user,
        body.order_status,
        tracking_number=body.tracking_number,
        message=body.message,
        expected_status=body.expected_status,
    )
    return _transition_response(result)


@router.post("/{order_id}/cancel", response_model=TransitionResponse)
async def cancel_order(
    order_id: uuid.UUID,
    body: CancelOrderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Customer cancellation before the order ships. Staff use the status endpoints."""
    machine = StatusStateMachine(db)
    if user.role == CallerRole.CUSTOMER:
        result = await machine.cancel_for_customer(order_id, user, body.reason)
    else:
        result = await machine.transition(order_id, user, OrderStatus.CANCELLED, message=body.reason)
    return _transition_response(result)


# ---------------------------------------------------------------------------
# Customer communication and invoices
# ---------------------------------------------------------------------------


@router.post("/{order_id}/notify", response_model=NotificationResultResponse)
@limiter.limit("30/minute")
async def notify_customer(
    request: Request,
    order_id: uuid.UUID,
    body: NotifyRequest,
    user: AuthenticatedUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Send the current status by email and/or build a WhatsApp link.

    Per-channel failures are reported in the body; the request itself succeeds.
    """
    orders = OrderService(db)
    order = await orders.get_order(order_id)
    orders.assert_can_manage(order, user)

    result = await NotificationDispatcher(db).notify(
        order.id, body.type, tracking_number=body.tracking_number, requested_by=user.id
    )
    return NotificationResultResponse(
        order_id=result.order_id,
        order_status=result.order_status,
        all_succeeded=result.all_succeeded,
        channels=[
            {**vars(channel), "success": channel.success} for channel in result.channels
        ],
    )


@router.get("/{order_id}/invoice")
async def download_invoice(
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    orders = OrderService(db)
    if user.role == CallerRole.TENANT:
        order = await orders.get_order(order_id)
        orders.assert_can_manage(order, user)
    else:
        order = await orders.get_order_for_caller(order_id, user)

    pdf = await InvoiceService(db).render(order.id)
    return Response(
        content=pdf,
        media_type=PDF_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{invoice_filename(order)}"'},
    )


@router.post("/{order_id}/share-invoice", response_model=InvoiceShareResponse)
@limiter.limit("20/minute")
async def share_invoice(
    request: Request,
    order_id: uuid.UUID,
    user: AuthenticatedUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Upload the invoice and return a shareable link, or the download URL as fallback."""
    orders = OrderService(db)
    order = await orders.get_order(order_id)
    orders.assert_can_manage(order, user)

    result = await InvoiceService(db).share(order.id)
    return InvoiceShareResponse(
        order_id=order.id,
        order_number=order.order_number,
        url=result.url,
        fallback=result.fallback,
        error=result.error,
    )
