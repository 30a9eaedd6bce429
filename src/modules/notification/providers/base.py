"""Abstract base class for outbound email providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    text: str
    html: str | None = None


class EmailProviderBase(ABC):
    @abstractmethod
    async def send(self, message: EmailMessage) -> str:
        """Deliver one message and return the provider's message id.

        Raises NotificationFailureException on any failure, including timeouts.
        Implementations never retry.
        """
