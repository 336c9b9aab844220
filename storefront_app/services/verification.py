"""
Short-lived numeric codes proving control of an email address.

One manager per purpose (registration OTP, password reset). Each keeps at
most one outstanding code per email under `{purpose}:{email}`; issuing a new
code overwrites the old one.
"""

import secrets
import time

from storefront_app.auth import Clock, generate_code, normalize_email, now_ms
from storefront_app.errors import AttemptsExhausted, CodeExpired, CodeMismatch, CodeNotFound
from storefront_app.schemas import VerificationCode
from storefront_app.storage.blob_store import BlobStore
from storefront_app.utils.logger import get_logger

_logger = get_logger(__name__)

OTP_PURPOSE = "otp"
RESET_PURPOSE = "reset"
MAX_ATTEMPTS = 5


class VerificationCodeManager:
    def __init__(
        self,
        store: BlobStore,
        purpose: str,
        ttl_seconds: int,
        max_attempts: int = MAX_ATTEMPTS,
        clock: Clock = time.time,
    ):
        self.store = store
        self.purpose = purpose
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self._clock = clock

    def key(self, email: str) -> str:
        return f"{self.purpose}:{normalize_email(email)}"

    async def issue(self, email: str) -> str:
        email = normalize_email(email)
        record = VerificationCode(
            code=generate_code(),
            email=email,
            expires_at=now_ms(self._clock) + self.ttl_seconds * 1000,
            attempts=0,
        )
        await self.store.set_json(self.key(email), record.to_store())
        _logger.info(f"Issued {self.purpose} code for {email}")
        return record.code

    async def verify(self, email: str, submitted_code: str) -> None:
        """
        Consume the outstanding code for `email` or raise a VerificationError.

        Exhaustion and expiry are checked before the comparison so a stale or
        abused code never reports whether the submitted value was right.
        """
        key = self.key(email)
        record = VerificationCode.from_store(await self.store.get_json(key))
        if record is None:
            raise CodeNotFound()

        if record.attempts >= self.max_attempts:
            await self.store.delete(key)
            _logger.warning(f"{self.purpose} code for {record.email} exhausted; discarded")
            raise AttemptsExhausted()

        if now_ms(self._clock) > record.expires_at:
            await self.store.delete(key)
            raise CodeExpired()

        submitted = (submitted_code or "").strip().encode("utf-8")
        if not secrets.compare_digest(submitted, record.code.encode("utf-8")):
            record.attempts += 1
            await self.store.set_json(key, record.to_store())
            raise CodeMismatch(remaining=self.max_attempts - record.attempts)

        await self.store.delete(key)

    async def discard(self, email: str) -> None:
        await self.store.delete(self.key(email))
