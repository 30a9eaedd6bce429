"""Tests for invoice document building, the HTTP providers and sharing."""

from decimal import Decimal

import httpx
import pytest

from src.exceptions import NotificationFailureException
from src.models.enums import PaymentMethod
from src.modules.invoice.document import build_invoice_document
from src.modules.invoice.providers.http import HttpInvoiceRenderer, HttpObjectStore
from src.modules.invoice.service import InvoiceService, download_url, invoice_filename
from tests.factories import create_order


class TestInvoiceDocument:
    @pytest.mark.asyncio
    async def test_document_fields(self, db):
        order = await create_order(
            db,
            payment_method=PaymentMethod.COD,
            items=[
                {"product_id": "MUG-1", "name": "Photo Mug", "price": Decimal("300.00"), "quantity": 2},
                {
                    "product_id": "FRAME-A4",
                    "name": "Photo Frame",
                    "price": Decimal("450.00"),
                    "quantity": 1,
                    "size": "A4",
                    "gift_wrap": True,
                },
            ],
            items_price=Decimal("1050.00"),
            shipping_price=Decimal("50.00"),
            coupon_code="DIWALI",
            coupon_discount=Decimal("100.00"),
        )

        document = build_invoice_document(order)

        assert document["orderNumber"] == order.order_number
        assert document["paymentMethod"] == "COD"
        assert document["customer"]["address"]["city"] == "Tiruppur"
        assert document["customer"]["phone"] == "9876543210"
        assert [line["lineTotal"] for line in document["items"]] == ["600.00", "450.00"]
        assert document["items"][1]["giftWrap"] is True
        assert document["subtotal"] == "1050.00"
        assert document["adjustments"] == [
            {"label": "Shipping", "amount": "50.00"},
            {"label": "Coupon (DIWALI)", "amount": "-100.00"},
        ]
        assert document["total"] == "1000.00"

    @pytest.mark.asyncio
    async def test_filename_and_download_url(self, db):
        order = await create_order(db)

        assert invoice_filename(order) == f"invoice-{order.order_number}.pdf"
        assert download_url(order.id).endswith(f"/orders/{order.id}/invoice")


class TestHttpProviders:
    @pytest.mark.asyncio
    async def test_renderer_returns_pdf_bytes(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/render"
            return httpx.Response(200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"})

        renderer = HttpInvoiceRenderer(transport=httpx.MockTransport(handler))

        assert await renderer.render({"orderNumber": "PK1"}) == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_renderer_error_is_a_failure(self):
        renderer = HttpInvoiceRenderer(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )

        with pytest.raises(NotificationFailureException, match="HTTP 503"):
            await renderer.render({"orderNumber": "PK1"})

    @pytest.mark.asyncio
    async def test_renderer_empty_body_is_a_failure(self):
        renderer = HttpInvoiceRenderer(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b""))
        )

        with pytest.raises(NotificationFailureException, match="empty"):
            await renderer.render({"orderNumber": "PK1"})

    @pytest.mark.asyncio
    async def test_store_returns_secure_url(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.read()
            return httpx.Response(
                200, json={"secure_url": "https://cdn.test/a.pdf", "url": "http://cdn.test/a.pdf"}
            )

        store = HttpObjectStore(transport=httpx.MockTransport(handler))

        url = await store.upload(b"%PDF", "invoices", "invoice-PK1.pdf", "application/pdf")

        assert url == "https://cdn.test/a.pdf"
        assert b"invoice-PK1.pdf" in seen["body"]

    @pytest.mark.asyncio
    async def test_store_without_url_is_a_failure(self):
        store = HttpObjectStore(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": True}))
        )

        with pytest.raises(NotificationFailureException):
            await store.upload(b"%PDF", "invoices", "x.pdf", "application/pdf")


class TestInvoiceService:
    @pytest.mark.asyncio
    async def test_render_passes_document(self, db, invoice_providers):
        renderer, _ = invoice_providers
        order = await create_order(db)

        pdf = await InvoiceService(db).render(order.id)

        assert pdf == b"%PDF-1.4 test invoice"
        assert renderer.render.await_args.args[0]["orderNumber"] == order.order_number

    @pytest.mark.asyncio
    async def test_share_uploads_pdf(self, db, invoice_providers):
        _, store = invoice_providers
        order = await create_order(db)

        result = await InvoiceService(db).share(order.id)

        assert result.fallback is False
        assert result.url == "https://cdn.example.com/invoices/invoice.pdf"
        assert store.upload.await_args.kwargs["name"] == invoice_filename(order)
        assert store.upload.await_args.kwargs["content_type"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_share_falls_back_to_download_link(self, db, invoice_providers):
        _, store = invoice_providers
        store.upload.side_effect = NotificationFailureException("Object store timed out")
        order = await create_order(db)

        result = await InvoiceService(db).share(order.id)

        assert result.fallback is True
        assert result.url == download_url(order.id)
        assert result.error == "Object store timed out"

    @pytest.mark.asyncio
    async def test_render_failure_propagates(self, db, invoice_providers):
        renderer, _ = invoice_providers
        renderer.render.side_effect = NotificationFailureException("Invoice renderer timed out")
        order = await create_order(db)

        with pytest.raises(NotificationFailureException):
            await InvoiceService(db).render(order.id)
