"""Shared test doubles: a controllable clock, a recording mailer and a wired service stack."""

import asyncio
import os
import re
import sys
from types import SimpleNamespace

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront_app.auth import PasswordHasher, SessionManager
from storefront_app.services.accounts import AccountService
from storefront_app.services.mailer import EmailResult
from storefront_app.services.orders import OrderService
from storefront_app.services.verification import OTP_PURPOSE, RESET_PURPOSE, VerificationCodeManager
from storefront_app.storage.blob_store import MemoryBlobStore

FAST_ITERATIONS = 1_000
_CODE_RE = re.compile(r"\b(\d{6})\b")


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, to: str, subject: str, body: str) -> EmailResult:
        if self.fail:
            return EmailResult(False, "mail relay unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})
        return EmailResult(True)

    def last_code(self, to: str) -> str:
        for message in reversed(self.sent):
            if message["to"] == to:
                return _CODE_RE.search(message["body"]).group(1)
        raise AssertionError(f"no email sent to {to}")


def run(coro):
    return asyncio.run(coro)


def make_stack(
    bootstrap_admins=(),
    strict_email: bool = True,
    mailer_fails: bool = False,
    live_role: bool = False,
):
    store = MemoryBlobStore()
    clock = FakeClock()
    mailer = RecordingMailer(fail=mailer_fails)
    sessions = SessionManager(store, ttl_seconds=7 * 24 * 3600, live_role=live_role, clock=clock)
    otp = VerificationCodeManager(store, OTP_PURPOSE, 600, clock=clock)
    reset = VerificationCodeManager(store, RESET_PURPOSE, 1800, clock=clock)
    accounts = AccountService(
        store,
        sessions,
        otp_codes=otp,
        reset_codes=reset,
        mailer=mailer,
        hasher=PasswordHasher("test-salt", FAST_ITERATIONS),
        bootstrap_admins=frozenset(bootstrap_admins),
        strict_email=strict_email,
    )
    return SimpleNamespace(
        store=store,
        clock=clock,
        mailer=mailer,
        sessions=sessions,
        otp=otp,
        reset=reset,
        accounts=accounts,
        orders=OrderService(store),
    )


async def register_verified(stack, email: str, password: str = "secret1", name: str = "Ana"):
    """Register and verify a user; returns the SessionGrant from verification."""
    await stack.accounts.register(name, email, "8200000", password)
    code = stack.mailer.last_code(email.strip().lower())
    return await stack.accounts.verify_registration(email, code)
