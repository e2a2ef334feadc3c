"""Password hashing, OTP matching and token helpers."""

from datetime import timedelta

import jwt
import pytest

from core.errors import UnauthorizedError
from core.security import (
    create_access_token,
    decode_access_token,
    generate_otp_code,
    hash_password,
    otp_matches,
    verify_password,
)


def test_hash_verifies_only_the_original_password():
    stored = hash_password("Correct-horse-1")

    assert verify_password("Correct-horse-1", stored) is True
    assert verify_password("correct-horse-1", stored) is False
    assert verify_password("", stored) is False


def test_same_password_hashes_differently_each_time():
    first = hash_password("Secret123")
    second = hash_password("Secret123")

    assert first != second
    assert "Secret123" not in first
    assert verify_password("Secret123", first)
    assert verify_password("Secret123", second)


def test_hash_embeds_configured_rounds():
    assert hash_password("Secret123").startswith("$pbkdf2-sha256$1000$")


@pytest.mark.parametrize("stored", ["", "not-a-hash", "$pbkdf2-sha256$broken"])
def test_malformed_hash_never_verifies(stored):
    assert verify_password("Secret123", stored) is False


def test_otp_matches_exact_code_only():
    assert otp_matches("123456", "123456") is True
    assert otp_matches("123457", "123456") is False
    assert otp_matches("12345", "123456") is False
    assert otp_matches("123456", None) is False
    assert otp_matches("", "") is False


def test_generated_codes_are_numeric_and_padded():
    codes = {generate_otp_code() for _ in range(50)}
    assert all(len(c) == 6 and c.isdigit() for c in codes)
    assert len(codes) > 1
    assert len(generate_otp_code(8)) == 8


def test_access_token_round_trip():
    token = create_access_token({"sub": "alice", "user_id": 7})
    payload = decode_access_token(token)
    assert payload["sub"] == "alice"
    assert payload["user_id"] == 7


def test_expired_or_tampered_token_is_rejected():
    expired = create_access_token({"user_id": 1}, expires_delta=timedelta(seconds=-5))
    with pytest.raises(UnauthorizedError):
        decode_access_token(expired)

    forged = jwt.encode({"user_id": 1}, "another-secret-of-reasonable-length-0123456789", algorithm="HS256")
    with pytest.raises(UnauthorizedError):
        decode_access_token(forged)
