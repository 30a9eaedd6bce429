"""httpx implementations of the invoice renderer and object store."""

from __future__ import annotations

import logging

import httpx

from src.config import settings
from src.exceptions import NotificationFailureException
from src.modules.invoice.providers.base import InvoiceRendererBase, ObjectStoreBase

logger = logging.getLogger(__name__)


def _failure(service: str, exc: httpx.HTTPError) -> NotificationFailureException:
    if isinstance(exc, httpx.TimeoutException):
        return NotificationFailureException(f"{service} timed out")
    if isinstance(exc, httpx.HTTPStatusError):
        return NotificationFailureException(
            f"{service} returned HTTP {exc.response.status_code}"
        )
    return NotificationFailureException(f"{service} unreachable: {exc}")


class HttpInvoiceRenderer(InvoiceRendererBase):
    """Black-box PDF renderer: POST the invoice document, receive ``application/pdf``."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = settings.invoice_renderer_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=settings.external_call_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def render(self, document: dict) -> bytes:
        client = await self._get_client()
        try:
            response = await client.post("/render", json=document)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Invoice render failed for %s: %s", document.get("orderNumber"), exc)
            raise _failure("Invoice renderer", exc) from exc
        if not response.content:
            raise NotificationFailureException("Invoice renderer returned an empty document")
        return response.content


class HttpObjectStore(ObjectStoreBase):
    """Multipart upload to an object store that answers with the public URL."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.upload_url = settings.storage_upload_url
        self.api_key = settings.storage_api_key
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
            self._client = httpx.AsyncClient(
                timeout=settings.external_call_timeout_seconds,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def upload(self, content: bytes, folder: str, name: str, content_type: str) -> str:
        client = await self._get_client()
        try:
            response = await client.post(
                self.upload_url,
                data={"folder": folder, "public_id": name},
                files={"file": (name, content, content_type)},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Upload of %s/%s failed: %s", folder, name, exc)
            raise _failure("Object store", exc) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise NotificationFailureException("Object store returned a non-JSON body") from exc
        url = body.get("secure_url") or body.get("url")
        if not url:
            raise NotificationFailureException("Object store response carried no URL")
        return url
