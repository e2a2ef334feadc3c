# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Central security module.  All cryptographic primitives and auth guards live
here.  No other module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (passlib pbkdf2_sha256)
2. One-time codes: generation and matching  (secrets / hmac)
3. JWT creation / decoding                  (PyJWT / HS256)
4. FastAPI dependency guards                (get_current_user, require_admin)
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from core.config import settings
from core.errors import UnauthorizedError, UserNotFound
from database import Database, get_db

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing
# ---------------------------------------------------------------------------
# Every hash carries its own random salt and round count, so two users with
# the same password never share a stored value and the work factor can be
# raised later without invalidating old hashes.
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Hash a plaintext password with PBKDF2-SHA256 (``password_hash_rounds``)."""
    return _pbkdf2.using(rounds=settings.password_hash_rounds).hash(plain)


def verify_password(plain: str, stored_hash: str) -> bool:
    """
    Constant-time verification of a plaintext password against a
    pbkdf2_sha256 hash produced by :func:`hash_password`.

    A malformed or empty stored hash verifies as ``False``.
    """
    try:
        return _pbkdf2.verify(plain, stored_hash)
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password(secrets.token_urlsafe(16))


def burn_password_check(plain: str) -> None:
    """
    Run one full hash derivation against a throwaway hash.  Called when the
    username does not exist so that path costs the same as a wrong password.
    """
    _pbkdf2.verify(plain, _dummy_hash())


# ---------------------------------------------------------------------------
# 2.  One-time codes
# ---------------------------------------------------------------------------

# compared against when no challenge is pending, so every verification
# performs exactly one comparison
_NO_CHALLENGE = "\x00" * 16


def generate_otp_code(length: Optional[int] = None) -> str:
    """Random numeric code, zero-padded to *length* digits."""
    length = length or settings.otp_length
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def otp_matches(supplied: str, stored: Optional[str]) -> bool:
    """Constant-time byte comparison of a supplied code with the stored one."""
    expected = stored if stored else _NO_CHALLENGE
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


# ---------------------------------------------------------------------------
# 3.  JWT – access tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a JWT with HS256.

    *data* should contain at minimum: sub (username) and user_id.
    An ``exp`` claim is added automatically.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode["exp"] = expire
    return _jwt.encode(to_encode, settings.secret_key, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT.  Raises ``UnauthorizedError`` on any failure
    (expired, bad signature, malformed).
    """
    try:
        return _jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    except _jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid or expired token")


# ---------------------------------------------------------------------------
# 4.  FastAPI dependency guards
# ---------------------------------------------------------------------------

# The tokenUrl here is only used by the auto-generated OpenAPI docs;
# the actual login endpoint is POST /auth/login.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def _token_user(token: str = Depends(oauth2_scheme), db: Database = Depends(get_db)):
    """Resolve the bearer token to a user record without authorizing it."""
    payload = decode_access_token(token)

    # Lazy import to avoid circular dependency at module load time
    from services.users import get_user_by_id  # noqa: E402

    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise UnauthorizedError("Invalid or expired token")
    try:
        return get_user_by_id(db, user_id)
    except UserNotFound:
        raise UnauthorizedError("Invalid or expired token")


def get_current_user(user=Depends(_token_user)):
    """
    Dependency: the authenticated user, required to be active.

    Raises 401 if the token is invalid or the user is gone, 403 if the
    account is disabled.
    """
    from services.access import ACTIVE_USER, authorize  # noqa: E402

    return authorize(user, ACTIVE_USER)


def require_admin(user=Depends(_token_user)):
    """
    Dependency: the authenticated user, required to be an active admin.
    Raises 403 otherwise.
    """
    from services.access import ADMIN, authorize  # noqa: E402

    return authorize(user, ADMIN)
