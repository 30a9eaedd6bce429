"""Pytest fixtures for the Pokisham order engine tests.

Every test gets its own file-backed SQLite database (aiosqlite). A file
rather than ``:memory:`` lets several sessions share one database, which the
concurrent-claim tests need.
"""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import src.models  # noqa: F401  (registers every table on Base.metadata)
from src.app import app
from src.database.base import Base
from src.database.session import get_db
from src.modules.invoice.providers import factory as invoice_factory
from src.modules.notification.providers import factory as notification_factory


@pytest_asyncio.fixture
async def async_test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and asserting state directly through the services."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def email_provider() -> AsyncMock:
    """Stands in for the email gateway; every send succeeds unless a test says otherwise."""
    provider = AsyncMock()
    provider.send.return_value = "msg-1"
    notification_factory.register_provider("email", provider)
    yield provider
    notification_factory._instances.pop("email", None)


@pytest.fixture
def invoice_providers() -> tuple[AsyncMock, AsyncMock]:
    renderer = AsyncMock()
    renderer.render.return_value = b"%PDF-1.4 test invoice"
    store = AsyncMock()
    store.upload.return_value = "https://cdn.example.com/invoices/invoice.pdf"
    invoice_factory.register_provider("renderer", renderer)
    invoice_factory.register_provider("store", store)
    yield renderer, store
    invoice_factory._instances.pop("renderer", None)
    invoice_factory._instances.pop("store", None)


@pytest_asyncio.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the FastAPI app; each request runs in its own transaction."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
