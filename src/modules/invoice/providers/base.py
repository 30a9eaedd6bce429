"""Abstract interfaces for the invoice renderer and the object store."""

from __future__ import annotations

from abc import ABC, abstractmethod


class InvoiceRendererBase(ABC):
    @abstractmethod
    async def render(self, document: dict) -> bytes:
        """Return PDF bytes for an invoice document. Raises NotificationFailureException."""


class ObjectStoreBase(ABC):
    @abstractmethod
    async def upload(self, content: bytes, folder: str, name: str, content_type: str) -> str:
        """Store ``content`` and return its public URL. Raises NotificationFailureException."""
