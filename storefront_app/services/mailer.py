"""
Outbound email. The services only need `send(to, subject, body)`; delivery
problems come back as an unsuccessful EmailResult rather than an exception.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from storefront_app.utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass(frozen=True)
class EmailResult:
    success: bool
    error: Optional[str] = None


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, body: str) -> EmailResult: ...


class HttpEmailSender:
    """Posts to a Resend-compatible `/emails` endpoint."""

    def __init__(self, api_url: str, api_key: str, sender: str, timeout: float = 15.0, transport=None):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self._transport = transport

    async def send(self, to: str, subject: str, body: str) -> EmailResult:
        if not self.api_key:
            return EmailResult(False, "Email API key is not configured")

        payload = {"from": self.sender, "to": [to], "subject": subject, "text": body}
        headers = {"Authorization": f"Bearer {self.api_key}", "Accept": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            _logger.error(f"Email request to {to} failed: {exc}")
            return EmailResult(False, str(exc))

        if response.status_code >= 400:
            _logger.error(f"Email API rejected message to {to}: HTTP {response.status_code}")
            return EmailResult(False, f"Email API returned HTTP {response.status_code}")
        return EmailResult(True)


class ConsoleEmailSender:
    """Development sender: writes the message to the log instead of sending it."""

    def __init__(self, sender: str = "no-reply@storefront.local"):
        self.sender = sender

    async def send(self, to: str, subject: str, body: str) -> EmailResult:
        _logger.info(f"[email] from={self.sender} to={to} subject={subject!r}\n{body}")
        return EmailResult(True)


# ── Message bodies ──

def otp_message(name: str, code: str, ttl_minutes: int):
    subject = "Your verification code"
    body = (
        f"Hi {name or 'there'},\n\n"
        f"Your verification code is {code}.\n"
        f"It expires in {ttl_minutes} minutes.\n"
    )
    return subject, body


def reset_message(name: str, code: str, ttl_minutes: int):
    subject = "Password reset code"
    body = (
        f"Hi {name or 'there'},\n\n"
        f"Use the code {code} to reset your password.\n"
        f"It expires in {ttl_minutes} minutes. If you did not ask for this, ignore this email.\n"
    )
    return subject, body
