"""Email sender interface + Resend and in-memory implementations."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from funeral_core.core.config import settings
from funeral_core.core.errors import EmailError
from funeral_core.services.http_service import DEFAULT_RETRY_STATUSES, request_with_retries

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_MAX_ATTEMPTS = 3
RESEND_TIMEOUT_SECONDS = 20.0


class EmailSender(Protocol):
    key: str

    async def send_email(self, *, to: str, subject: str, html: str) -> str:
        """Send one email and return the provider message id. Raises EmailError."""


class ResendEmailSender:
    """Transactional email through the Resend HTTP API."""

    key = "resend"

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email or settings.EMAIL_FROM
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send_email(self, *, to: str, subject: str, html: str) -> str:
        if not self.is_configured():
            raise EmailError("Email sender not configured (missing RESEND_API_KEY)")

        payload = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=RESEND_TIMEOUT_SECONDS, transport=self._transport
            ) as client:

                async def request_fn() -> httpx.Response:
                    return await client.post(RESEND_SEND_URL, headers=headers, json=payload)

                response = await request_with_retries(
                    request_fn,
                    max_attempts=RESEND_MAX_ATTEMPTS,
                    retry_statuses=DEFAULT_RETRY_STATUSES,
                    label="Resend send",
                )
        except httpx.RequestError as exc:
            raise EmailError(f"Email request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise EmailError(f"Resend API error {response.status_code}: {response.text[:200]}")

        try:
            body = response.json()
        except ValueError as exc:
            raise EmailError("Resend response was not JSON") from exc
        message_id = body.get("id") if isinstance(body, dict) else None
        if not isinstance(message_id, str) or not message_id:
            raise EmailError("Resend response missing message id")
        return message_id


@dataclass
class SentEmail:
    to: str
    subject: str
    html: str
    message_id: str


@dataclass
class InMemoryEmailSender:
    """Records sent emails; set fail=True to make every send raise EmailError."""

    key: str = "memory"
    fail: bool = False
    sent: list[SentEmail] = field(default_factory=list)

    async def send_email(self, *, to: str, subject: str, html: str) -> str:
        if self.fail:
            raise EmailError(f"Simulated email failure for {to}")
        message_id = f"msg_{uuid.uuid4().hex[:12]}"
        self.sent.append(SentEmail(to=to, subject=subject, html=html, message_id=message_id))
        return message_id


def get_default_email_sender() -> EmailSender:
    if settings.email_configured:
        return ResendEmailSender()
    logger.info("RESEND_API_KEY not set; emails are recorded in memory only")
    return InMemoryEmailSender()
