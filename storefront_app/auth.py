"""
Authentication primitives for the storefront.

Passwords are stored as PBKDF2-HMAC-SHA256 digests; never in plain text.
Sessions live in the blob store under `session:{token}`; tokens are 256-bit
random hex strings. Expired sessions are evicted when they are next read.
"""

import hashlib
import re
import secrets
import time
from typing import Callable, Iterable, Optional

from storefront_app.errors import Forbidden, SessionExpired, SessionNotFound
from storefront_app.roles import RoleLike, parse_role
from storefront_app.schemas import Session, User, utc_now_iso
from storefront_app.storage.blob_store import BlobStore
from storefront_app.utils.logger import get_logger

_logger = get_logger(__name__)

# ── Key prefixes ──
USER_PREFIX = "user:"
SESSION_PREFIX = "session:"

SESSION_TOKEN_BYTES = 32   # 256-bit entropy
CODE_DIGITS = 6

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

Clock = Callable[[], float]


def normalize_email(email: Optional[str]) -> str:
    """Lookup form of an email: trimmed and lowercased."""
    return (email or "").strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def user_key(email: str) -> str:
    return f"{USER_PREFIX}{normalize_email(email)}"


def now_ms(clock: Clock = time.time) -> int:
    return int(clock() * 1000)


# ── Token generator ──

def generate_token() -> str:
    """64 hex chars of cryptographic randomness."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def generate_code() -> str:
    """Uniform numeric code, zero-padded so it is always CODE_DIGITS long."""
    return f"{secrets.randbelow(10 ** CODE_DIGITS):0{CODE_DIGITS}d}"


# ── Password hasher ──

class PasswordHasher:
    """Deterministic digest: the same password and salt always give the same hex."""

    def __init__(self, salt: str, iterations: int = 600_000):
        if iterations < 1:
            raise ValueError("iterations must be >= 1")
        self._salt = salt.encode("utf-8")
        self._iterations = iterations

    def hash(self, password: str) -> str:
        dk = hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            self._salt,
            self._iterations,
        )
        return dk.hex()

    def verify(self, password: str, hashed: str) -> bool:
        """Constant-time comparison against a stored digest."""
        return secrets.compare_digest(self.hash(password), hashed or "")


# ── Session manager ──

class SessionManager:
    def __init__(
        self,
        store: BlobStore,
        ttl_seconds: int = 7 * 24 * 3600,
        live_role: bool = False,
        clock: Clock = time.time,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.live_role = live_role
        self._clock = clock

    @staticmethod
    def _key(token: str) -> str:
        return f"{SESSION_PREFIX}{token}"

    async def create_session(self, user: User, role: Optional[RoleLike] = None) -> str:
        """Persist a new session for `user` and return its bearer token."""
        token = generate_token()
        session = Session(
            user_id=user.id,
            email=normalize_email(user.email),
            name=user.name,
            role=parse_role(role if role is not None else user.role),
            created_at=utc_now_iso(),
            expires_at=now_ms(self._clock) + self.ttl_seconds * 1000,
        )
        await self.store.set_json(self._key(token), session.to_store())
        _logger.debug(f"Session issued for {session.email} ({session.role.value})")
        return token

    async def validate_session(self, token: Optional[str]) -> Session:
        """Return the live session for `token` or raise; runs on every request."""
        if not token:
            raise SessionNotFound()
        session = Session.from_store(await self.store.get_json(self._key(token)))
        if session is None:
            raise SessionNotFound()
        if now_ms(self._clock) > session.expires_at:
            await self.store.delete(self._key(token))
            raise SessionExpired()

        if self.live_role:
            user = User.from_store(await self.store.get_json(user_key(session.email)))
            if user is not None and user.role != session.role:
                session = session.model_copy(update={"role": user.role})
        return session

    @staticmethod
    def require_role(session: Session, allowed_roles: Iterable[RoleLike]) -> Session:
        allowed = {parse_role(r) for r in allowed_roles}
        if session.role not in allowed:
            raise Forbidden()
        return session

    async def destroy_session(self, token: Optional[str]) -> None:
        """Invalidate a session (logout). Unknown tokens are fine."""
        if token:
            await self.store.delete(self._key(token))
