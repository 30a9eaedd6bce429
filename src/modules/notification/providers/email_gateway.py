"""HTTP email gateway provider."""

from __future__ import annotations

import logging

import httpx

from src.config import settings
from src.exceptions import NotificationFailureException
from src.modules.notification.providers.base import EmailMessage, EmailProviderBase

logger = logging.getLogger(__name__)


class EmailGatewayProvider(EmailProviderBase):
    """Posts messages to a transactional-email HTTP API.

    One request per message, bounded by ``external_call_timeout_seconds``;
    a failed send is reported to the caller, never retried here.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = settings.email_gateway_url
        self.api_key = settings.email_gateway_api_key
        self.sender = settings.email_sender
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=settings.external_call_timeout_seconds,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def send(self, message: EmailMessage) -> str:
        client = await self._get_client()
        body = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "text": message.text,
        }
        if message.html:
            body["html"] = message.html

        try:
            response = await client.post("/messages", json=body)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Email gateway timed out sending to %s", message.to)
            raise NotificationFailureException("Email gateway timed out") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Email gateway rejected message to %s: HTTP %d",
                message.to,
                exc.response.status_code,
            )
            raise NotificationFailureException(
                f"Email gateway returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("Email gateway unreachable: %s", exc)
            raise NotificationFailureException(f"Email gateway unreachable: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None
        message_id = payload.get("id") if isinstance(payload, dict) else None
        if not message_id:
            raise NotificationFailureException("Email gateway response carried no message id")
        return str(message_id)
