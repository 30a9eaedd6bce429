"""WhatsApp click-to-chat links. Nothing is sent; the link is handed back to the caller."""

from __future__ import annotations

import re
from urllib.parse import quote

from src.config import settings
from src.exceptions import NotificationFailureException

_NON_DIGITS = re.compile(r"\D")


def normalise_phone(phone: str | None) -> str:
    """Digits-only international number; bare 10-digit numbers get the default country code."""
    digits = _NON_DIGITS.sub("", phone or "")
    if len(digits) == 10:
        digits = settings.whatsapp_default_country_code + digits
    if len(digits) < 11 or len(digits) > 15:
        raise NotificationFailureException(f"Invalid phone number for WhatsApp: {phone!r}")
    return digits


def build_link(phone: str | None, text: str) -> str:
    return f"{settings.whatsapp_base_url}/{normalise_phone(phone)}?text={quote(text, safe='')}"
