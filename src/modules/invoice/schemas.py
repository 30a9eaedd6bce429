"""Pydantic v2 schemas for invoice endpoints."""

from __future__ import annotations

import uuid

from src.schemas.responses import CamelModel


class InvoiceShareResponse(CamelModel):
    order_id: uuid.UUID
    order_number: str
    url: str
    fallback: bool
    error: str | None = None
