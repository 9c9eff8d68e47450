"""Outbound email delivery through the Resend HTTP API."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from app.core.config import Settings

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    async def send(self, to: list[str], subject: str, text: str) -> str | None: ...


class ResendEmailClient:
    """Send plain-text emails via Resend."""

    def __init__(
        self,
        api_key: str,
        mail_from: str,
        *,
        api_url: str = "https://api.resend.com/emails",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.mail_from = mail_from
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def send(self, to: list[str], subject: str, text: str) -> str | None:
        """Send one email; raises httpx.HTTPError on delivery failure."""
        body = {"from": self.mail_from, "to": to, "subject": subject, "text": text}
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            response = await client.post(self.api_url, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        message_id = data.get("id") if isinstance(data, dict) else None
        logger.info("Sent email %s to %s recipients", message_id, len(to))
        return message_id


class DisabledEmailClient:
    """Drop emails when delivery is switched off."""

    async def send(self, to: list[str], subject: str, text: str) -> str | None:
        logger.debug("Email delivery disabled, skipping %r to %s recipients", subject, len(to))
        return None


def build_email_client(settings: Settings) -> EmailSender:
    if settings.email_notifications_enabled and settings.resend_api_key:
        return ResendEmailClient(
            settings.resend_api_key,
            settings.mail_from,
            api_url=settings.resend_api_url,
            timeout_seconds=settings.email_timeout_seconds,
        )
    return DisabledEmailClient()
