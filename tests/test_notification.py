"""Tests for notification templates, providers, the dispatcher and its tasks."""

import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest
from sqlalchemy import select

from src.exceptions import NotificationFailureException
from src.models.enums import NotificationChannel, NotificationOutcome, OrderStatus
from src.models.notification_record import NotificationRecord
from src.modules.assignment.service import AssignmentService
from src.modules.notification import handlers, templates
from src.modules.notification import tasks as notification_tasks
from src.modules.notification.dispatcher import NotificationDispatcher, dedup_key
from src.modules.notification.providers.base import EmailMessage
from src.modules.notification.providers.email_gateway import EmailGatewayProvider
from src.modules.notification.providers.whatsapp import build_link, normalise_phone
from tests.factories import SHIPPING_ADDRESS, admin_user, create_order, create_tenant


def _order(**overrides):
    fields = {
        "id": uuid.uuid4(),
        "order_number": "PK2610170042",
        "customer_name": "Priya",
        "total_price": Decimal("1249.50"),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestTemplates:
    def test_every_status_has_a_template(self):
        assert [t.status for t in templates.list_templates()] == [s.value for s in OrderStatus]

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [("1249.50", "1250"), ("1249.49", "1249"), ("0", "0"), ("99.5", "100")],
    )
    def test_rupees_rounds_half_up(self, amount, expected):
        assert templates.rupees(Decimal(amount)) == expected

    def test_whatsapp_includes_tracking_when_shipped(self):
        text = templates.render_whatsapp(
            _order(), OrderStatus.SHIPPED, "Pokisham", tracking_number="DTDC123"
        )

        assert "*PK2610170042*" in text
        assert "📦 Tracking: DTDC123" in text
        assert "₹1250" in text
        assert "Thank you for shopping with Pokisham!" in text

    def test_whatsapp_without_tracking_leaves_no_gap(self):
        text = templates.render_whatsapp(_order(), OrderStatus.SHIPPED, "Pokisham")

        assert "Tracking" not in text
        assert "\n\n\n" not in text

    def test_email_rendering(self):
        rendered = templates.render_email(
            _order(),
            OrderStatus.DELIVERED,
            store_name="Pokisham",
            order_url="https://shop.test/orders/1",
            support_email="help@shop.test",
        )

        assert rendered.subject == "Your Order Has Been Delivered - PK2610170042"
        assert "Total: ₹1249.50" in rendered.text
        assert "Tracking Number" not in rendered.text
        assert '<a href="https://shop.test/orders/1">' in rendered.html

    def test_email_html_escapes_tenant_supplied_values(self):
        rendered = templates.render_email(
            _order(),
            OrderStatus.SHIPPED,
            store_name="Pokisham <b>Deals</b>",
            order_url="https://shop.test/orders/1",
            support_email="help@shop.test",
            tracking_number='<a href="https://evil.example">AWB</a>',
        )

        assert "evil.example\">" not in rendered.html
        assert "&lt;a href=&quot;https://evil.example&quot;&gt;AWB&lt;/a&gt;" in rendered.html
        assert "<h1>Pokisham &lt;b&gt;Deals&lt;/b&gt;</h1>" in rendered.html
        assert 'Tracking Number: <a href="https://evil.example">AWB</a>' in rendered.text


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class TestWhatsAppLinks:
    @pytest.mark.parametrize(
        "phone", ["9876543210", "98765 43210", "+91-98765-43210", "919876543210"]
    )
    def test_normalises_indian_numbers(self, phone):
        assert normalise_phone(phone) == "919876543210"

    @pytest.mark.parametrize("phone", [None, "", "12345", "1" * 16])
    def test_rejects_invalid_numbers(self, phone):
        with pytest.raises(NotificationFailureException):
            normalise_phone(phone)

    def test_link_encodes_message(self):
        link = build_link("9876543210", "Hi Priya & co\n*Shipped*")

        assert link == "https://wa.me/919876543210?text=Hi%20Priya%20%26%20co%0A%2AShipped%2A"


class TestEmailGatewayProvider:
    MESSAGE = EmailMessage(to="priya@example.com", subject="Hello", text="Body", html="<p>Body</p>")

    @pytest.mark.asyncio
    async def test_returns_message_id(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(202, json={"id": "msg-42"})

        provider = EmailGatewayProvider(transport=httpx.MockTransport(handler))

        assert await provider.send(self.MESSAGE) == "msg-42"
        assert seen["path"].endswith("/messages")
        assert b"priya@example.com" in seen["body"]

    @pytest.mark.asyncio
    async def test_http_error_is_a_notification_failure(self):
        provider = EmailGatewayProvider(
            transport=httpx.MockTransport(lambda request: httpx.Response(500))
        )

        with pytest.raises(NotificationFailureException, match="HTTP 500"):
            await provider.send(self.MESSAGE)

    @pytest.mark.asyncio
    async def test_timeout_is_a_notification_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        provider = EmailGatewayProvider(transport=httpx.MockTransport(handler))

        with pytest.raises(NotificationFailureException, match="timed out"):
            await provider.send(self.MESSAGE)

    @pytest.mark.asyncio
    async def test_missing_message_id_is_a_failure(self):
        provider = EmailGatewayProvider(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        )

        with pytest.raises(NotificationFailureException):
            await provider.send(self.MESSAGE)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [["queued"], None, "msg-1"])
    async def test_non_object_response_is_a_failure(self, payload):
        provider = EmailGatewayProvider(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        )

        with pytest.raises(NotificationFailureException, match="no message id"):
            await provider.send(self.MESSAGE)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_both_channels(self, db, email_provider):
        order = await create_order(db)

        result = await NotificationDispatcher(db).notify(order.id, "both")

        assert result.all_succeeded
        email, whatsapp = result.channels
        assert email.outcome == NotificationOutcome.SENT
        assert email.provider_message_id == "msg-1"
        assert email.dedup_key == dedup_key(order.id, OrderStatus.PENDING, NotificationChannel.EMAIL)
        assert whatsapp.outcome == NotificationOutcome.LINK_GENERATED
        assert whatsapp.link.startswith("https://wa.me/919876543210?text=")
        sent = email_provider.send.await_args.args[0]
        assert sent.to == "priya@example.com"
        assert order.order_number in sent.subject

    @pytest.mark.asyncio
    async def test_resend_is_recorded_as_a_new_attempt(self, db, email_provider):
        order = await create_order(db)
        dispatcher = NotificationDispatcher(db)

        await dispatcher.notify(order.id, "email")
        again = await dispatcher.notify(order.id, "email")

        assert again.channels[0].attempt == 2
        assert email_provider.send.await_count == 2
        records = list(
            await db.scalars(
                select(NotificationRecord).where(NotificationRecord.order_id == order.id)
            )
        )
        assert sorted(r.attempt for r in records) == [1, 2]

    @pytest.mark.asyncio
    async def test_email_failure_does_not_stop_whatsapp(self, db, email_provider):
        order = await create_order(db)
        email_provider.send.side_effect = NotificationFailureException(
            "Email gateway returned HTTP 500"
        )

        result = await NotificationDispatcher(db).notify(order.id, "both")

        assert not result.all_succeeded
        email, whatsapp = result.channels
        assert email.outcome == NotificationOutcome.FAILED
        assert email.error == "Email gateway returned HTTP 500"
        assert whatsapp.success

    @pytest.mark.asyncio
    async def test_order_without_email(self, db, email_provider):
        order = await create_order(db, customer_email=None)

        result = await NotificationDispatcher(db).notify(order.id, "email")

        assert result.channels[0].outcome == NotificationOutcome.FAILED
        assert result.channels[0].error == "No customer email on file"
        email_provider.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_phone_fails_whatsapp(self, db, email_provider):
        order = await create_order(db, shipping_address={**SHIPPING_ADDRESS, "phone": "123"})

        result = await NotificationDispatcher(db).notify(order.id, "whatsapp")

        assert result.channels[0].outcome == NotificationOutcome.FAILED
        assert "Invalid phone number" in result.channels[0].error

    @pytest.mark.asyncio
    async def test_explicit_status_and_tracking(self, db, email_provider):
        order = await create_order(db)

        result = await NotificationDispatcher(db).notify(
            order.id, "email", status=OrderStatus.SHIPPED, tracking_number="DTDC123"
        )

        assert result.order_status == OrderStatus.SHIPPED
        sent = email_provider.send.await_args.args[0]
        assert "Tracking Number: DTDC123" in sent.text

    @pytest.mark.asyncio
    async def test_unknown_channel(self, db, email_provider):
        order = await create_order(db)

        with pytest.raises(ValueError):
            await NotificationDispatcher(db).notify(order.id, "sms")


# ---------------------------------------------------------------------------
# Tasks and outbox handlers
# ---------------------------------------------------------------------------


class TestNotificationTasks:
    @pytest.mark.asyncio
    async def test_customer_status(self, db, email_provider):
        order = await create_order(db)

        result = await notification_tasks.notify_customer_status(db, str(order.id), "Shipped")

        assert result == {"email": "sent"}

    @pytest.mark.asyncio
    async def test_broadcast_candidates_are_emailed(self, db, email_provider):
        first = await create_tenant(db)
        second = await create_tenant(db)
        order = await create_order(db)
        email_provider.send.side_effect = ["msg-1", NotificationFailureException("bounced")]

        result = await notification_tasks.notify_broadcast_candidates(
            db,
            {
                "order_id": str(order.id),
                "tenant_ids": [str(first.id), str(second.id)],
                "expires_at": "2026-10-17T12:30:00+00:00",
            },
        )

        assert result == {"sent": 1, "failed": 1}
        subjects = {call.args[0].subject for call in email_provider.send.await_args_list}
        assert subjects == {f"New order available - {order.order_number}"}

    @pytest.mark.asyncio
    async def test_assignment_notifies_customer_and_losers(self, db, email_provider):
        winner = await create_tenant(db)
        loser = await create_tenant(db)
        order = await create_order(db)
        svc = AssignmentService(db)
        await svc.broadcast(order.id, [winner.id, loser.id], admin_user())
        claimed = await svc.claim(order.id, winner.id)

        result = await notification_tasks.notify_assignment(
            db,
            {
                "order_id": str(order.id),
                "order_number": order.order_number,
                "losing_tenant_ids": [str(t) for t in claimed.losing_tenant_ids],
            },
        )

        assert result == {"sent": 1, "failed": 0, "customer": "sent"}
        recipients = [call.args[0].to for call in email_provider.send.await_args_list]
        assert recipients == ["priya@example.com", loser.email]

    @pytest.mark.asyncio
    async def test_tenant_status_notice_includes_reason(self, db, email_provider):
        tenant = await create_tenant(db)

        await notification_tasks.notify_tenant_status(
            db, {"tenant_id": str(tenant.id), "to_status": "rejected", "reason": "Missing GST"}
        )

        sent = email_provider.send.await_args.args[0]
        assert sent.to == tenant.email
        assert sent.subject == "Your Pokisham seller account is rejected"
        assert "Reason: Missing GST" in sent.text


class TestNotificationHandlers:
    @pytest.mark.parametrize("status", ["Shipped", "Out for Delivery", "Delivered", "Cancelled"])
    def test_customer_facing_statuses_enqueue_email(self, status):
        with patch.object(notification_tasks, "send_customer_status") as task:
            handlers.on_order_status_changed({"order_id": "abc", "to_status": status})

        task.delay.assert_called_once_with("abc", status, "email")

    @pytest.mark.parametrize("status", ["Accepted", "Processing", "Packed"])
    def test_internal_statuses_are_silent(self, status):
        with patch.object(notification_tasks, "send_customer_status") as task:
            handlers.on_order_status_changed({"order_id": "abc", "to_status": status})

        task.delay.assert_not_called()

    def test_broadcast_enqueues_offers(self):
        payload = {"order_id": "abc", "tenant_ids": ["t1"]}
        with patch.object(notification_tasks, "send_broadcast_offers") as task:
            handlers.on_order_broadcast(payload)

        task.delay.assert_called_once_with(payload)
