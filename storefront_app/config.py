"""
Runtime configuration for the storefront backend.

Values come from environment variables; a local `.env` file is loaded first
so development setups don't need exported variables.
"""

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Tuple

from dotenv import load_dotenv

load_dotenv()

EMAIL_POLICIES = {"strict", "best-effort"}
STORE_BACKENDS = {"sqlite", "memory"}
EMAIL_BACKENDS = {"console", "http"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    # ── Storage ──
    store_backend: str = "sqlite"
    store_path: str = "data/store.sqlite"
    store_namespace: str = "storefront"

    # ── Credentials ──
    password_salt: str = "storefront-dev-salt"
    password_iterations: int = 600_000
    bootstrap_admin_emails: FrozenSet[str] = field(default_factory=frozenset)

    # ── Lifetimes ──
    session_ttl_seconds: int = 7 * 24 * 3600
    otp_ttl_seconds: int = 10 * 60
    reset_ttl_seconds: int = 30 * 60
    max_code_attempts: int = 5
    session_live_role: bool = False

    # ── Email ──
    email_backend: str = "console"
    email_failure_policy: str = "strict"
    email_api_url: str = "https://api.resend.com/emails"
    email_api_key: str = ""
    email_from: str = "Storefront <no-reply@storefront.local>"

    # ── HTTP ──
    cors_origins: Tuple[str, ...] = ("*",)

    def __post_init__(self):
        if self.email_failure_policy not in EMAIL_POLICIES:
            raise ValueError(
                f"email_failure_policy must be one of: {', '.join(sorted(EMAIL_POLICIES))}"
            )
        if self.store_backend not in STORE_BACKENDS:
            raise ValueError(f"store_backend must be one of: {', '.join(sorted(STORE_BACKENDS))}")
        if self.email_backend not in EMAIL_BACKENDS:
            raise ValueError(f"email_backend must be one of: {', '.join(sorted(EMAIL_BACKENDS))}")
        if self.max_code_attempts < 1:
            raise ValueError("max_code_attempts must be >= 1")
        # Allow-list entries are compared against normalized emails.
        normalized = frozenset(e.strip().lower() for e in self.bootstrap_admin_emails if e.strip())
        object.__setattr__(self, "bootstrap_admin_emails", normalized)

    @property
    def strict_email(self) -> bool:
        return self.email_failure_policy == "strict"


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        store_backend=os.getenv("STORE_BACKEND", "sqlite").strip().lower(),
        store_path=os.getenv("STORE_PATH", "data/store.sqlite"),
        store_namespace=os.getenv("STORE_NAMESPACE", "storefront"),
        password_salt=os.getenv("PASSWORD_SALT", "storefront-dev-salt"),
        password_iterations=_env_int("PASSWORD_ITERATIONS", 600_000),
        bootstrap_admin_emails=frozenset(_env_list("BOOTSTRAP_ADMIN_EMAILS")),
        session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", 7 * 24 * 3600),
        otp_ttl_seconds=_env_int("OTP_TTL_SECONDS", 10 * 60),
        reset_ttl_seconds=_env_int("RESET_TTL_SECONDS", 30 * 60),
        max_code_attempts=_env_int("MAX_CODE_ATTEMPTS", 5),
        session_live_role=_env_bool("SESSION_LIVE_ROLE"),
        email_backend=os.getenv("EMAIL_BACKEND", "console").strip().lower(),
        email_failure_policy=os.getenv("EMAIL_FAILURE_POLICY", "strict").strip().lower(),
        email_api_url=os.getenv("EMAIL_API_URL", "https://api.resend.com/emails"),
        email_api_key=os.getenv("EMAIL_API_KEY", ""),
        email_from=os.getenv("EMAIL_FROM", "Storefront <no-reply@storefront.local>"),
        cors_origins=_env_list("CORS_ORIGINS", "*"),
    )
