"""Order routing, status and commission schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates: tenants, orders, order_items, order_offers, order_status_history,
         notification_records, event_outbox, processed_events
Enums: orderstatus, paymentmethod, paymentstatus, tenantstatus, offeroutcome,
       notificationchannel, notificationoutcome, eventstatus
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    # ── 1. Enum types (SQLAlchemy stores member names) ─────────────────────
    op.execute("""
        CREATE TYPE orderstatus AS ENUM (
            'PENDING', 'ACCEPTED', 'PROCESSING', 'PACKED',
            'SHIPPED', 'OUT_FOR_DELIVERY', 'DELIVERED', 'CANCELLED'
        );
    """)
    op.execute("CREATE TYPE paymentmethod AS ENUM ('UPI', 'CARD', 'NET_BANKING', 'COD');")
    op.execute("CREATE TYPE paymentstatus AS ENUM ('PENDING', 'COMPLETED', 'FAILED');")
    op.execute(
        "CREATE TYPE tenantstatus AS ENUM ('PENDING', 'APPROVED', 'REJECTED', 'SUSPENDED');"
    )
    op.execute("""
        CREATE TYPE offeroutcome AS ENUM (
            'PENDING', 'CLAIMED', 'REJECTED', 'DECLINED', 'EXPIRED'
        );
    """)
    op.execute("CREATE TYPE notificationchannel AS ENUM ('EMAIL', 'WHATSAPP');")
    op.execute(
        "CREATE TYPE notificationoutcome AS ENUM ('SENT', 'FAILED', 'LINK_GENERATED');"
    )
    op.execute(
        "CREATE TYPE eventstatus AS ENUM ('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED');"
    )

    # ── 2. Tenants ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE tenants (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID,
            business_name VARCHAR(200) NOT NULL,
            owner_name VARCHAR(200) NOT NULL,
            email VARCHAR(255) NOT NULL UNIQUE,
            phone VARCHAR(20) NOT NULL,
            address JSONB NOT NULL DEFAULT '{}',
            gst_number VARCHAR(20),
            pan_number VARCHAR(20),
            description VARCHAR(1000),
            status tenantstatus NOT NULL DEFAULT 'PENDING',
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            rejection_reason VARCHAR(1000),
            commission_rate NUMERIC(5, 2) NOT NULL DEFAULT 10,
            total_orders INTEGER NOT NULL DEFAULT 0,
            total_revenue NUMERIC(14, 2) NOT NULL DEFAULT 0,
            total_commission NUMERIC(14, 2) NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_tenants_commission_rate_range
                CHECK (commission_rate >= 0 AND commission_rate <= 100)
        );
    """)
    op.execute("CREATE INDEX ix_tenants_status ON tenants (status);")
    op.execute("CREATE INDEX ix_tenants_user_id ON tenants (user_id);")

    # ── 3. Orders and items ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_number VARCHAR(20) NOT NULL UNIQUE,
            customer_id UUID,
            customer_name VARCHAR(200) NOT NULL,
            customer_email VARCHAR(255),
            shipping_address JSONB NOT NULL DEFAULT '{}',
            payment_method paymentmethod NOT NULL,
            payment_status paymentstatus NOT NULL DEFAULT 'PENDING',
            items_price NUMERIC(12, 2) NOT NULL,
            packing_price NUMERIC(12, 2) NOT NULL DEFAULT 0,
            gift_wrap_price NUMERIC(12, 2) NOT NULL DEFAULT 0,
            shipping_price NUMERIC(12, 2) NOT NULL DEFAULT 0,
            tax_price NUMERIC(12, 2) NOT NULL DEFAULT 0,
            discount_price NUMERIC(12, 2) NOT NULL DEFAULT 0,
            combo_discount NUMERIC(12, 2) NOT NULL DEFAULT 0,
            coupon_code VARCHAR(50),
            coupon_discount NUMERIC(12, 2) NOT NULL DEFAULT 0,
            total_price NUMERIC(12, 2) NOT NULL,
            order_status orderstatus NOT NULL DEFAULT 'PENDING',
            tenant_id UUID REFERENCES tenants(id) ON DELETE RESTRICT,
            is_multi_tenant BOOLEAN NOT NULL DEFAULT FALSE,
            routed_to_tenant BOOLEAN NOT NULL DEFAULT FALSE,
            tracking_number VARCHAR(100),
            commission_rate NUMERIC(5, 2),
            commission_amount NUMERIC(12, 2),
            net_to_tenant NUMERIC(12, 2),
            commission_base NUMERIC(12, 2),
            status_changed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            delivered_at TIMESTAMPTZ,
            cancelled_at TIMESTAMPTZ,
            cancellation_reason TEXT,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_routed_has_tenant
                CHECK (routed_to_tenant = (tenant_id IS NOT NULL))
        );
    """)
    op.execute("CREATE INDEX ix_orders_tenant_id ON orders (tenant_id);")
    op.execute("CREATE INDEX ix_orders_order_status ON orders (order_status);")
    op.execute("CREATE INDEX ix_orders_customer_id ON orders (customer_id);")
    op.execute("CREATE INDEX ix_orders_created_at ON orders (created_at);")

    op.execute("""
        CREATE TABLE order_items (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            position INTEGER NOT NULL DEFAULT 0,
            product_id VARCHAR(64) NOT NULL,
            name VARCHAR(300) NOT NULL,
            price NUMERIC(12, 2) NOT NULL,
            quantity INTEGER NOT NULL CHECK (quantity > 0),
            size VARCHAR(50),
            gift_wrap BOOLEAN NOT NULL DEFAULT FALSE,
            custom_photo_url VARCHAR(1000),
            custom_photo_public_id VARCHAR(300),
            tenant_id UUID REFERENCES tenants(id) ON DELETE SET NULL
        );
    """)
    op.execute("CREATE INDEX ix_order_items_order_id ON order_items (order_id);")

    # ── 4. Broadcast offers ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE order_offers (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            broadcast_id UUID NOT NULL,
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            tenant_id UUID NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
            outcome offeroutcome NOT NULL DEFAULT 'PENDING',
            offered_by UUID,
            expires_at TIMESTAMPTZ NOT NULL,
            resolved_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX ix_order_offers_order_id ON order_offers (order_id);")
    op.execute(
        "CREATE INDEX ix_order_offers_tenant_outcome ON order_offers (tenant_id, outcome);"
    )
    op.execute("CREATE INDEX ix_order_offers_broadcast_id ON order_offers (broadcast_id);")

    # ── 5. Audit and notification records ──────────────────────────────────
    op.execute("""
        CREATE TABLE order_status_history (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            from_status VARCHAR(30),
            to_status VARCHAR(30) NOT NULL,
            action VARCHAR(30) NOT NULL DEFAULT 'transition',
            actor_id UUID,
            actor_role VARCHAR(30) NOT NULL,
            tenant_id UUID,
            message TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX ix_order_status_history_order_id "
        "ON order_status_history (order_id, created_at);"
    )

    op.execute("""
        CREATE TABLE notification_records (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            channel notificationchannel NOT NULL,
            order_status VARCHAR(30) NOT NULL,
            tracking_number VARCHAR(100),
            dedup_key VARCHAR(120) NOT NULL,
            attempt INTEGER NOT NULL DEFAULT 1,
            outcome notificationoutcome NOT NULL,
            recipient VARCHAR(255),
            provider_message_id VARCHAR(255),
            link TEXT,
            error TEXT,
            requested_by UUID,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX ix_notification_records_order_id ON notification_records (order_id);"
    )
    op.execute(
        "CREATE INDEX ix_notification_records_dedup_key ON notification_records (dedup_key);"
    )

    # ── 6. Transactional outbox ────────────────────────────────────────────
    op.execute("""
        CREATE TABLE event_outbox (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_type VARCHAR(255) NOT NULL,
            aggregate_type VARCHAR(100) NOT NULL,
            aggregate_id VARCHAR(100) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}',
            status eventstatus NOT NULL DEFAULT 'PENDING',
            retry_count INTEGER NOT NULL DEFAULT 0,
            max_retries INTEGER NOT NULL DEFAULT 3,
            last_error TEXT,
            processed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX ix_event_outbox_status_created ON event_outbox (status, created_at);"
    )
    op.execute(
        "CREATE INDEX ix_event_outbox_aggregate ON event_outbox (aggregate_type, aggregate_id);"
    )

    op.execute("""
        CREATE TABLE processed_events (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_id UUID NOT NULL,
            event_type VARCHAR(255) NOT NULL,
            handler_name VARCHAR(255) NOT NULL,
            processed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            expires_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT uq_processed_events_event_handler UNIQUE (event_id, handler_name)
        );
    """)
    op.execute(
        "CREATE INDEX ix_processed_events_expires_at ON processed_events (expires_at);"
    )


def downgrade() -> None:
    for table in (
        "processed_events",
        "event_outbox",
        "notification_records",
        "order_status_history",
        "order_offers",
        "order_items",
        "orders",
        "tenants",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table};")

    for enum_type in (
        "eventstatus",
        "notificationoutcome",
        "notificationchannel",
        "offeroutcome",
        "tenantstatus",
        "paymentstatus",
        "paymentmethod",
        "orderstatus",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_type};")
