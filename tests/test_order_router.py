"""Router tests for the order endpoints: wiring plus end-to-end HTTP flows."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from src.exceptions import NotificationFailureException
from src.modules.order.router import router
from tests.factories import (
    SHIPPING_ADDRESS,
    admin_user,
    auth_headers,
    create_order,
    create_tenant,
    customer_user,
    tenant_user,
)

API = "/api/v1/orders"


def _order_json(**overrides) -> dict:
    body = {
        "customerName": "Priya Venkatesh",
        "customerEmail": "priya@example.com",
        "shippingAddress": dict(SHIPPING_ADDRESS),
        "paymentMethod": "UPI",
        "items": [
            {"productId": "FRAME-A4", "name": "Photo Frame", "price": "500.00", "quantity": 2}
        ],
        "itemsPrice": "1000.00",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class TestRouterPaths:
    def _methods(self, path: str) -> set[str]:
        methods: set[str] = set()
        for route in router.routes:
            if route.path == path:
                methods.update(route.methods)
        return methods

    def test_route_count(self):
        assert len(router.routes) == 17, [r.path for r in router.routes]

    def test_collection_paths(self):
        assert self._methods("/orders") == {"GET", "POST"}
        assert self._methods("/orders/my-orders") == {"GET"}
        assert self._methods("/orders/offers") == {"GET"}
        assert self._methods("/orders/stats") == {"GET"}

    def test_routing_paths(self):
        assert self._methods("/orders/{order_id}/assign-tenant") == {"POST"}
        assert self._methods("/orders/{order_id}/accept") == {"POST"}
        assert self._methods("/orders/{order_id}/decline") == {"POST"}

    def test_status_paths(self):
        assert self._methods("/orders/{order_id}/status") == {"PUT"}
        assert self._methods("/orders/{order_id}/tenant-status") == {"PUT"}
        assert self._methods("/orders/{order_id}/cancel") == {"POST"}
        assert self._methods("/orders/{order_id}/history") == {"GET"}

    def test_communication_paths(self):
        assert self._methods("/orders/{order_id}/notify") == {"POST"}
        assert self._methods("/orders/{order_id}/invoice") == {"GET"}
        assert self._methods("/orders/{order_id}/share-invoice") == {"POST"}


# ---------------------------------------------------------------------------
# Creation, reads and the error envelope
# ---------------------------------------------------------------------------


class TestCreateAndRead:
    @pytest.mark.asyncio
    async def test_customer_creates_pending_order(self, async_client):
        customer = customer_user()

        response = await async_client.post(API, json=_order_json(), headers=auth_headers(customer))

        assert response.status_code == 201
        body = response.json()
        assert body["orderStatus"] == "Pending"
        assert body["orderNumber"].startswith("PK")
        assert Decimal(body["totalPrice"]) == Decimal("1000.00")
        assert body["customerId"] == str(customer.id)
        assert body["routedToTenant"] is False
        assert body["shippingAddress"]["addressLine1"] == "22 Gandhi Nagar"

    @pytest.mark.asyncio
    async def test_unknown_field_is_a_validation_error(self, async_client):
        response = await async_client.post(
            API, json=_order_json(totalPrice="1.00"), headers=auth_headers(customer_user())
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["retryable"] is False
        assert error["requestId"]
        assert any("totalPrice" in d["field"] for d in error["details"])

    @pytest.mark.asyncio
    async def test_items_price_must_match_lines(self, async_client):
        response = await async_client.post(
            API, json=_order_json(itemsPrice="999.00"), headers=auth_headers(customer_user())
        )

        assert response.status_code == 422
        assert response.json()["error"]["details"][0]["field"] == "itemsPrice"

    @pytest.mark.asyncio
    async def test_missing_token_is_unauthorized(self, async_client):
        response = await async_client.get(API)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_list_is_scoped_to_the_caller(self, async_client, db):
        tenant = await create_tenant(db)
        customer = customer_user()
        await create_order(db, tenant_id=tenant.id)
        await create_order(db, customer_id=customer.id)
        await create_order(db)
        await db.commit()

        admin = (await async_client.get(API, headers=auth_headers(admin_user()))).json()
        mine = (
            await async_client.get(f"{API}/my-orders", headers=auth_headers(tenant_user(tenant)))
        ).json()
        own = (await async_client.get(API, headers=auth_headers(customer))).json()

        assert admin["total"] == 3
        assert mine["total"] == 1 and mine["items"][0]["tenantId"] == str(tenant.id)
        assert own["total"] == 1 and own["items"][0]["customerId"] == str(customer.id)

    @pytest.mark.asyncio
    async def test_tenant_cannot_read_unrelated_order(self, async_client, db):
        tenant = await create_tenant(db)
        order = await create_order(db)
        await db.commit()

        response = await async_client.get(
            f"{API}/{order.id}", headers=auth_headers(tenant_user(tenant))
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_order_is_not_found(self, async_client):
        response = await async_client.get(
            f"{API}/{uuid.uuid4()}", headers=auth_headers(admin_user())
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


class TestRouting:
    @pytest.mark.asyncio
    async def test_direct_assignment_then_conflict(self, async_client, db):
        first = await create_tenant(db)
        second = await create_tenant(db)
        order = await create_order(db)
        await db.commit()
        headers = auth_headers(admin_user())

        response = await async_client.post(
            f"{API}/{order.id}/assign-tenant", json={"tenantId": str(first.id)}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["mode"] == "direct"
        assert response.json()["order"]["tenantId"] == str(first.id)

        response = await async_client.post(
            f"{API}/{order.id}/assign-tenant", json={"tenantId": str(second.id)}, headers=headers
        )
        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "ALREADY_ROUTED"
        assert error["retryable"] is False

    @pytest.mark.asyncio
    async def test_ineligible_tenant_is_422(self, async_client, db):
        from src.models.enums import TenantStatus

        tenant = await create_tenant(db, status=TenantStatus.SUSPENDED)
        order = await create_order(db)
        await db.commit()

        response = await async_client.post(
            f"{API}/{order.id}/assign-tenant",
            json={"tenantId": str(tenant.id)},
            headers=auth_headers(admin_user()),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "TENANT_NOT_ELIGIBLE"

    @pytest.mark.asyncio
    async def test_tenant_cannot_assign(self, async_client, db):
        tenant = await create_tenant(db)
        order = await create_order(db)
        await db.commit()

        response = await async_client.post(
            f"{API}/{order.id}/assign-tenant",
            json={"tenantId": str(tenant.id)},
            headers=auth_headers(tenant_user(tenant)),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_broadcast_offer_accept(self, async_client, db):
        winner = await create_tenant(db)
        loser = await create_tenant(db)
        order = await create_order(db)
        await db.commit()

        response = await async_client.post(
            f"{API}/{order.id}/assign-tenant",
            json={"notifyOnly": True, "tenantIds": [str(winner.id), str(loser.id)]},
            headers=auth_headers(admin_user()),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "broadcast"
        assert body["order"]["routedToTenant"] is False
        assert set(body["tenantIds"]) == {str(winner.id), str(loser.id)}

        offers = await async_client.get(f"{API}/offers", headers=auth_headers(tenant_user(loser)))
        assert [o["order"]["id"] for o in offers.json()] == [str(order.id)]

        visible = await async_client.get(
            f"{API}/{order.id}", headers=auth_headers(tenant_user(loser))
        )
        assert visible.status_code == 200

        response = await async_client.post(
            f"{API}/{order.id}/accept", headers=auth_headers(tenant_user(winner))
        )
        assert response.status_code == 200
        assert response.json()["mode"] == "claim"
        assert response.json()["order"]["tenantId"] == str(winner.id)

        response = await async_client.post(
            f"{API}/{order.id}/accept", headers=auth_headers(tenant_user(loser))
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_ROUTED"

    @pytest.mark.asyncio
    async def test_assign_requires_tenant_or_broadcast(self, async_client, db):
        order = await create_order(db)
        await db.commit()

        response = await async_client.post(
            f"{API}/{order.id}/assign-tenant", json={}, headers=auth_headers(admin_user())
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_decline(self, async_client, db):
        tenant = await create_tenant(db)
        order = await create_order(db)
        await db.commit()
        await async_client.post(
            f"{API}/{order.id}/assign-tenant",
            json={"notifyOnly": True, "tenantId": str(tenant.id)},
            headers=auth_headers(admin_user()),
        )

        response = await async_client.post(
            f"{API}/{order.id}/decline", headers=auth_headers(tenant_user(tenant))
        )

        assert response.status_code == 200
        assert response.json()["outcome"] == "declined"


# ---------------------------------------------------------------------------
# Status and commission
# ---------------------------------------------------------------------------


class TestStatusEndpoints:
    @pytest.mark.asyncio
    async def test_tenant_walks_order_to_delivered(self, async_client, db):
        tenant = await create_tenant(db, commission_rate=Decimal("12.5"))
        order = await create_order(db, tenant_id=tenant.id)
        await db.commit()
        headers = auth_headers(tenant_user(tenant))

        for status in ("Accepted", "Processing", "Packed"):
            response = await async_client.put(
                f"{API}/{order.id}/tenant-status", json={"orderStatus": status}, headers=headers
            )
            assert response.status_code == 200, response.text

        response = await async_client.put(
            f"{API}/{order.id}/tenant-status",
            json={"orderStatus": "Shipped", "trackingNumber": "DTDC998877"},
            headers=headers,
        )
        assert response.json()["order"]["trackingNumber"] == "DTDC998877"

        await async_client.put(
            f"{API}/{order.id}/tenant-status",
            json={"orderStatus": "Out for Delivery"},
            headers=headers,
        )
        response = await async_client.put(
            f"{API}/{order.id}/tenant-status", json={"orderStatus": "Delivered"}, headers=headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["previousStatus"] == "Out for Delivery"
        assert Decimal(body["commission"]["commissionAmount"]) == Decimal("125.00")
        assert Decimal(body["commission"]["netToTenant"]) == Decimal("875.00")
        assert Decimal(body["order"]["commissionRate"]) == Decimal("12.5")

        stats = await async_client.get(f"/api/v1/tenants/{tenant.id}/stats", headers=headers)
        assert stats.json()["totalOrders"] == 1
        assert Decimal(stats.json()["totalCommission"]) == Decimal("125.00")

    @pytest.mark.asyncio
    async def test_tenant_skip_is_illegal(self, async_client, db):
        tenant = await create_tenant(db)
        order = await create_order(db, tenant_id=tenant.id)
        await db.commit()

        response = await async_client.put(
            f"{API}/{order.id}/tenant-status",
            json={"orderStatus": "Shipped"},
            headers=auth_headers(tenant_user(tenant)),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "ILLEGAL_TRANSITION"

    @pytest.mark.asyncio
    async def test_blank_tracking_number_is_rejected(self, async_client, db):
        order = await create_order(db)
        await db.commit()

        response = await async_client.put(
            f"{API}/{order.id}/status",
            json={"status": "Shipped", "trackingNumber": "   "},
            headers=auth_headers(admin_user()),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_stale_expected_status_is_retryable_conflict(self, async_client, db):
        order = await create_order(db)
        await db.commit()
        headers = auth_headers(admin_user())
        await async_client.put(f"{API}/{order.id}/status", json={"status": "Accepted"}, headers=headers)

        response = await async_client.put(
            f"{API}/{order.id}/status",
            json={"status": "Processing", "expectedStatus": "Pending"},
            headers=headers,
        )

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "CONCURRENT_MODIFICATION"
        assert error["retryable"] is True

    @pytest.mark.asyncio
    async def test_customer_cancels_own_order(self, async_client, db):
        customer = customer_user()
        order = await create_order(db, customer_id=customer.id)
        await db.commit()

        response = await async_client.post(
            f"{API}/{order.id}/cancel",
            json={"reason": "Ordered the wrong size"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 200
        assert response.json()["order"]["orderStatus"] == "Cancelled"
        assert response.json()["order"]["cancellationReason"] == "Ordered the wrong size"

    @pytest.mark.asyncio
    async def test_history_shows_assignment_and_transitions(self, async_client, db):
        tenant = await create_tenant(db)
        customer = customer_user()
        order = await create_order(db, customer_id=customer.id)
        await db.commit()
        admin_headers = auth_headers(admin_user())
        await async_client.post(
            f"{API}/{order.id}/assign-tenant",
            json={"tenantId": str(tenant.id)},
            headers=admin_headers,
        )
        await async_client.put(
            f"{API}/{order.id}/tenant-status",
            json={"orderStatus": "Accepted", "message": "Packing tomorrow"},
            headers=auth_headers(tenant_user(tenant)),
        )

        response = await async_client.get(
            f"{API}/{order.id}/history", headers=auth_headers(customer)
        )

        assert response.status_code == 200
        rows = response.json()
        assert [row["action"] for row in rows] == ["assigned", "transition"]
        assert rows[0]["tenantId"] == str(tenant.id)
        assert rows[1]["fromStatus"] == "Pending"
        assert rows[1]["toStatus"] == "Accepted"
        assert rows[1]["actorRole"] == "tenant"
        assert rows[1]["message"] == "Packing tomorrow"

    @pytest.mark.asyncio
    async def test_history_is_scoped_to_the_caller(self, async_client, db):
        order = await create_order(db, customer_id=uuid.uuid4())
        outsider = await create_tenant(db)
        await db.commit()

        for caller in (customer_user(), tenant_user(outsider)):
            response = await async_client.get(
                f"{API}/{order.id}/history", headers=auth_headers(caller)
            )
            assert response.status_code == 403
            assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_dashboard_stats(self, async_client, db):
        tenant = await create_tenant(db)
        delivered = await create_order(db, tenant_id=tenant.id)
        await create_order(db)
        await db.commit()
        headers = auth_headers(admin_user())
        await async_client.put(
            f"{API}/{delivered.id}/status", json={"status": "Delivered"}, headers=headers
        )

        response = await async_client.get(f"{API}/stats", headers=headers)

        body = response.json()
        assert body["totalOrders"] == 2
        assert body["byStatus"] == {"Delivered": 1, "Pending": 1}
        assert body["unroutedOrders"] == 1
        assert Decimal(body["totalCommission"]) == Decimal("100.00")


# ---------------------------------------------------------------------------
# Notifications and invoices
# ---------------------------------------------------------------------------


class TestCommunication:
    @pytest.mark.asyncio
    async def test_notify_reports_channel_failures_without_failing(
        self, async_client, db, email_provider
    ):
        tenant = await create_tenant(db)
        order = await create_order(db, tenant_id=tenant.id)
        await db.commit()
        email_provider.send.side_effect = NotificationFailureException("Email gateway timed out")

        response = await async_client.post(
            f"{API}/{order.id}/notify",
            json={"type": "both"},
            headers=auth_headers(tenant_user(tenant)),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["allSucceeded"] is False
        email, whatsapp = body["channels"]
        assert email["outcome"] == "failed"
        assert email["error"] == "Email gateway timed out"
        assert email["success"] is False
        assert whatsapp["outcome"] == "link_generated"
        assert whatsapp["link"].startswith("https://wa.me/91")

    @pytest.mark.asyncio
    async def test_customer_cannot_trigger_notifications(self, async_client, db, email_provider):
        customer = customer_user()
        order = await create_order(db, customer_id=customer.id)
        await db.commit()

        response = await async_client.post(
            f"{API}/{order.id}/notify", json={"type": "email"}, headers=auth_headers(customer)
        )

        assert response.status_code == 403
        email_provider.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_notify(self, async_client, db, email_provider):
        owner = await create_tenant(db)
        other = await create_tenant(db)
        order = await create_order(db, tenant_id=owner.id)
        await db.commit()

        response = await async_client.post(
            f"{API}/{order.id}/notify", json={"type": "email"}, headers=auth_headers(tenant_user(other))
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_OWNER"

    @pytest.mark.asyncio
    async def test_download_invoice(self, async_client, db, invoice_providers):
        customer = customer_user()
        order = await create_order(db, customer_id=customer.id)
        await db.commit()

        response = await async_client.get(
            f"{API}/{order.id}/invoice", headers=auth_headers(customer)
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert f'filename="invoice-{order.order_number}.pdf"' in response.headers[
            "content-disposition"
        ]
        assert response.content == b"%PDF-1.4 test invoice"

    @pytest.mark.asyncio
    async def test_share_invoice_falls_back(self, async_client, db, invoice_providers):
        _, store = invoice_providers
        store.upload.side_effect = NotificationFailureException("Object store returned HTTP 500")
        order = await create_order(db)
        await db.commit()

        response = await async_client.post(
            f"{API}/{order.id}/share-invoice", headers=auth_headers(admin_user())
        )

        assert response.status_code == 200
        body = response.json()
        assert body["fallback"] is True
        assert body["url"].endswith(f"/orders/{order.id}/invoice")
        assert body["error"] == "Object store returned HTTP 500"

    @pytest.mark.asyncio
    async def test_templates_listing(self, async_client):
        response = await async_client.get(
            f"{API}/notification-templates", headers=auth_headers(admin_user())
        )

        assert response.status_code == 200
        assert len(response.json()) == 8
