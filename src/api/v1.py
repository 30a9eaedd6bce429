"""Centralized v1 API router — all module routers are included here."""

from fastapi import APIRouter

from src.modules.order.router import router as order_router
from src.modules.tenant.router import router as tenant_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(order_router)
v1_router.include_router(tenant_router)
