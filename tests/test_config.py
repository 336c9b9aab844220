import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront_app.config import Settings, load_settings


def test_defaults():
    settings = Settings()
    assert settings.session_ttl_seconds == 7 * 24 * 3600
    assert settings.otp_ttl_seconds == 600
    assert settings.reset_ttl_seconds == 1800
    assert settings.max_code_attempts == 5
    assert settings.strict_email


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("BOOTSTRAP_ADMIN_EMAILS", " Owner@Shop.com , ops@shop.com,")
    monkeypatch.setenv("EMAIL_FAILURE_POLICY", "best-effort")
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("SESSION_LIVE_ROLE", "true")
    monkeypatch.setenv("OTP_TTL_SECONDS", "120")

    settings = load_settings()
    assert settings.bootstrap_admin_emails == frozenset({"owner@shop.com", "ops@shop.com"})
    assert not settings.strict_email
    assert settings.store_backend == "memory"
    assert settings.session_live_role
    assert settings.otp_ttl_seconds == 120


@pytest.mark.parametrize(
    "overrides",
    [
        {"email_failure_policy": "sometimes"},
        {"store_backend": "redis"},
        {"email_backend": "pigeon"},
        {"max_code_attempts": 0},
    ],
)
def test_invalid_settings(overrides):
    with pytest.raises(ValueError):
        Settings(**overrides)


def test_non_integer_env(monkeypatch):
    monkeypatch.setenv("OTP_TTL_SECONDS", "ten")
    with pytest.raises(ValueError):
        load_settings()
