"""Invoice rendering and sharing.

Rendering is delegated to an external PDF renderer. Sharing uploads the PDF
to the object store so the link can be pasted into a WhatsApp message; when
either collaborator fails, the caller still gets a working link to the
on-demand download endpoint.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import NotificationFailureException
from src.models.order import Order
from src.modules.invoice.document import build_invoice_document
from src.modules.invoice.providers.base import InvoiceRendererBase, ObjectStoreBase
from src.modules.invoice.providers.factory import get_object_store, get_renderer
from src.modules.order.service import OrderService

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass
class InvoiceShareResult:
    url: str
    fallback: bool
    error: str | None = None


def invoice_filename(order: Order) -> str:
    return f"invoice-{order.order_number}.pdf"


def download_url(order_id: uuid.UUID) -> str:
    return f"{settings.public_api_url.rstrip('/')}/orders/{order_id}/invoice"


class InvoiceService:
    def __init__(
        self,
        db: AsyncSession,
        renderer: InvoiceRendererBase | None = None,
        store: ObjectStoreBase | None = None,
    ):
        self.db = db
        self.orders = OrderService(db)
        self.renderer = renderer or get_renderer()
        self.store = store or get_object_store()

    async def render(self, order_id: uuid.UUID) -> bytes:
        order = await self.orders.get_order(order_id)
        return await self.renderer.render(build_invoice_document(order))

    async def share(self, order_id: uuid.UUID) -> InvoiceShareResult:
        """Publish the invoice and return a customer-facing link. Never raises on delivery errors."""
        order = await self.orders.get_order(order_id)
        try:
            pdf = await self.renderer.render(build_invoice_document(order))
            url = await self.store.upload(
                pdf,
                folder=settings.storage_invoice_folder,
                name=invoice_filename(order),
                content_type=PDF_CONTENT_TYPE,
            )
        except NotificationFailureException as exc:
            logger.warning(
                "Invoice share for order %s fell back to download link: %s",
                order.order_number,
                exc.message,
            )
            return InvoiceShareResult(url=download_url(order.id), fallback=True, error=exc.message)

        logger.info("Shared invoice for order %s at %s", order.order_number, url)
        return InvoiceShareResult(url=url, fallback=False)
