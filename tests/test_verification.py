"""
Verification code checks run in a fixed order: missing, exhausted, expired,
mismatch, success. These tests pin that order down.
"""

import os
import secrets
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from support import FakeClock, run

from storefront_app.errors import AttemptsExhausted, CodeExpired, CodeMismatch, CodeNotFound
from storefront_app.services.verification import OTP_PURPOSE, RESET_PURPOSE, VerificationCodeManager
from storefront_app.storage.blob_store import MemoryBlobStore


def make_manager(purpose=OTP_PURPOSE, ttl=600):
    store = MemoryBlobStore()
    clock = FakeClock()
    return store, clock, VerificationCodeManager(store, purpose, ttl, clock=clock)


def wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


def test_issue_stores_fresh_record():
    store, clock, otp = make_manager()
    code = run(otp.issue(" Ana@X.com "))

    record = run(store.get_json("otp:ana@x.com"))
    assert record["code"] == code
    assert record["email"] == "ana@x.com"
    assert record["attempts"] == 0
    assert record["expiresAt"] == int(clock() * 1000) + 600_000
    assert len(code) == 6 and code.isdigit()


def test_correct_code_is_consumed_once():
    store, _, otp = make_manager()
    code = run(otp.issue("ana@x.com"))
    run(otp.verify("ANA@x.com", f"  {code} "))
    assert run(store.get_json("otp:ana@x.com")) is None
    with pytest.raises(CodeNotFound):
        run(otp.verify("ana@x.com", code))


def test_codes_are_compared_in_constant_time(monkeypatch):
    store, _, otp = make_manager()
    code = run(otp.issue("ana@x.com"))
    compared = []
    compare_digest = secrets.compare_digest

    def recording_compare(a, b):
        compared.append((a, b))
        return compare_digest(a, b)

    monkeypatch.setattr(secrets, "compare_digest", recording_compare)
    with pytest.raises(CodeMismatch):
        run(otp.verify("ana@x.com", "١٢٣٤٥٦"))
    run(otp.verify("ana@x.com", code))
    assert compared[-1] == (code.encode(), code.encode())
    assert len(compared) == 2


def test_mismatch_counts_down():
    store, _, otp = make_manager()
    code = run(otp.issue("ana@x.com"))

    with pytest.raises(CodeMismatch) as exc:
        run(otp.verify("ana@x.com", wrong(code)))
    assert exc.value.remaining == 4
    assert "4" in exc.value.message
    assert run(store.get_json("otp:ana@x.com"))["attempts"] == 1


def test_five_misses_exhaust_even_a_correct_code():
    store, _, otp = make_manager()
    code = run(otp.issue("ana@x.com"))

    remaining = []
    for _ in range(5):
        with pytest.raises(CodeMismatch) as exc:
            run(otp.verify("ana@x.com", wrong(code)))
        remaining.append(exc.value.remaining)
    assert remaining == [4, 3, 2, 1, 0]

    with pytest.raises(AttemptsExhausted):
        run(otp.verify("ana@x.com", code))
    assert run(store.get_json("otp:ana@x.com")) is None
    with pytest.raises(CodeNotFound):
        run(otp.verify("ana@x.com", code))


def test_expired_code_is_evicted_before_comparison():
    store, clock, otp = make_manager()
    code = run(otp.issue("ana@x.com"))
    clock.advance(601)

    with pytest.raises(CodeExpired):
        run(otp.verify("ana@x.com", code))
    assert run(store.get_json("otp:ana@x.com")) is None


def test_exhaustion_wins_over_expiry():
    store, clock, otp = make_manager()
    code = run(otp.issue("ana@x.com"))
    record = run(store.get_json("otp:ana@x.com"))
    record["attempts"] = 5
    run(store.set_json("otp:ana@x.com", record))
    clock.advance(3600)

    with pytest.raises(AttemptsExhausted):
        run(otp.verify("ana@x.com", code))


def test_reissue_invalidates_previous_code():
    _, _, otp = make_manager()
    first = run(otp.issue("ana@x.com"))
    second = run(otp.issue("ana@x.com"))
    if first != second:
        with pytest.raises(CodeMismatch):
            run(otp.verify("ana@x.com", first))
    run(otp.verify("ana@x.com", second))


def test_reissue_resets_attempts():
    store, _, otp = make_manager()
    code = run(otp.issue("ana@x.com"))
    with pytest.raises(CodeMismatch):
        run(otp.verify("ana@x.com", wrong(code)))
    run(otp.issue("ana@x.com"))
    assert run(store.get_json("otp:ana@x.com"))["attempts"] == 0


def test_purposes_do_not_share_keys():
    store = MemoryBlobStore()
    clock = FakeClock()
    otp = VerificationCodeManager(store, OTP_PURPOSE, 600, clock=clock)
    reset = VerificationCodeManager(store, RESET_PURPOSE, 1800, clock=clock)

    otp_code = run(otp.issue("ana@x.com"))
    run(reset.issue("ana@x.com"))
    assert run(store.get_json("reset:ana@x.com"))["expiresAt"] == int(clock() * 1000) + 1_800_000

    run(reset.discard("ana@x.com"))
    run(reset.discard("ana@x.com"))
    run(otp.verify("ana@x.com", otp_code))
