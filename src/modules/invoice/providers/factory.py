"""Provider factory for invoice collaborators."""

from __future__ import annotations

from src.modules.invoice.providers.base import InvoiceRendererBase, ObjectStoreBase
from src.modules.invoice.providers.http import HttpInvoiceRenderer, HttpObjectStore

_instances: dict[str, object] = {}


def get_renderer() -> InvoiceRendererBase:
    if "renderer" not in _instances:
        _instances["renderer"] = HttpInvoiceRenderer()
    return _instances["renderer"]


def get_object_store() -> ObjectStoreBase:
    if "store" not in _instances:
        _instances["store"] = HttpObjectStore()
    return _instances["store"]


def register_provider(kind: str, provider: object) -> None:
    """Replace the cached ``renderer`` or ``store``. Used by tests and local setups."""
    _instances[kind] = provider


async def close_all_providers() -> None:
    """Close httpx clients on all cached providers."""
    for provider in _instances.values():
        client = getattr(provider, "_client", None)
        if client is not None:
            if not client.is_closed:
                await client.aclose()
            provider._client = None
