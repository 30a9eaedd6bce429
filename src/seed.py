"""Database seeder for Pokisham — demo tenants, orders and API tokens.

Run via: python -m src.seed
"""

import asyncio
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.engine import async_session, engine
from src.models.enums import CallerRole, TenantStatus
from src.models.tenant import Tenant
from src.modules.order.service import OrderService
from src.modules.tenancy.auth import create_access_token
from src.modules.tenant.service import TenantService
from src.seed_data.orders import ORDERS, SHIPPING_ADDRESS
from src.seed_data.tenants import TENANTS

# Registry actions that take a fresh application to each seeded status
STATUS_PATH = {
    TenantStatus.PENDING: [],
    TenantStatus.APPROVED: ["approve"],
    TenantStatus.REJECTED: ["reject"],
    TenantStatus.SUSPENDED: ["approve", "suspend"],
}

ADMIN_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
CUSTOMER_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")


async def seed_tenants(session: AsyncSession) -> dict[str, Tenant]:
    """Create each tenant once; existing emails are left untouched."""
    svc = TenantService(session)
    tenants: dict[str, Tenant] = {}
    created = 0
    for row in TENANTS:
        tenant = await session.scalar(select(Tenant).where(Tenant.email == row["email"]))
        if tenant is None:
            tenant = await svc.apply(uuid.uuid4(), row)
            for action in STATUS_PATH[TenantStatus(row["status"])]:
                await svc.change_status(tenant.id, action, actor_id=ADMIN_ID)
            await svc.update_commission_rate(tenant.id, row["commission_rate"], actor_id=ADMIN_ID)
            created += 1
        tenants[tenant.email] = tenant
    print(f"  Seeded {created} tenants ({len(TENANTS) - created} already present).")
    return tenants


async def seed_orders(session: AsyncSession, tenants: dict[str, Tenant]) -> None:
    svc = OrderService(session)
    for row in ORDERS:
        data = {key: value for key, value in row.items() if key != "tenant"}
        data["shipping_address"] = dict(SHIPPING_ADDRESS, name=row["customer_name"])
        if row["tenant"]:
            data["tenant_id"] = tenants[row["tenant"]].id
        await svc.create_order(data, customer_id=CUSTOMER_ID)
    print(f"  Seeded {len(ORDERS)} orders.")


def print_tokens(tenants: dict[str, Tenant]) -> None:
    print("\nBearer tokens:")
    print(f"  admin:    {create_access_token(ADMIN_ID, 'admin@pokisham.com', CallerRole.PLATFORM_ADMIN)}")
    print(f"  customer: {create_access_token(CUSTOMER_ID, 'priya@example.com', CallerRole.CUSTOMER)}")
    for tenant in tenants.values():
        if tenant.status == TenantStatus.APPROVED:
            token = create_access_token(
                tenant.user_id, tenant.email, CallerRole.TENANT, tenant_id=tenant.id
            )
            print(f"  {tenant.business_name}: {token}")


async def main() -> None:
    print("Seeding Pokisham database...")
    try:
        async with async_session() as session:
            tenants = await seed_tenants(session)
            await seed_orders(session, tenants)
            await session.commit()
        print_tokens(tenants)
    finally:
        await engine.dispose()
    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
