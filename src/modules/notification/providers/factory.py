"""Provider factory — shared provider instances for the process."""

from __future__ import annotations

from src.modules.notification.providers.base import EmailProviderBase
from src.modules.notification.providers.email_gateway import EmailGatewayProvider

_instances: dict[str, object] = {}


def get_email_provider() -> EmailProviderBase:
    if "email" not in _instances:
        _instances["email"] = EmailGatewayProvider()
    return _instances["email"]


def register_provider(kind: str, provider: object) -> None:
    """Replace the cached provider of ``kind``. Used by tests and local setups."""
    _instances[kind] = provider


async def close_all_providers() -> None:
    """Close httpx clients on all cached providers.

    Must be called at the end of each asyncio.run() invocation in Celery tasks
    so no client outlives its event loop.
    """
    for provider in _instances.values():
        client = getattr(provider, "_client", None)
        if client is not None:
            if not client.is_closed:
                await client.aclose()
            provider._client = None
