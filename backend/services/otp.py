# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
One-time-password challenges stored on the user row.

State per user
--------------
* no challenge      – ``otp_code`` and ``otp_expires_at`` both NULL
* pending challenge – both set; valid while ``now <= otp_expires_at``

Saving a code replaces any pending one (last writer wins).  Verification
never clears the code; the caller does that with :func:`clear_otp_code`
once it has acted on a successful match.

Every verification performs exactly one constant-time comparison, against
a fixed filler when nothing is pending, and only then looks at whether the
challenge exists and is still fresh.
"""

from datetime import datetime, timedelta
from typing import Optional

from core.config import settings
from core.logger import logger
from core.security import otp_matches
from database import Database, Deadline
from models.user import User
from services.clock import utcnow
from services.users import load_user


def save_otp_code(
    db: Database,
    user_id: int,
    code: str,
    now: Optional[datetime] = None,
    deadline: Optional[Deadline] = None,
) -> datetime:
    """Store *code* for the user and return its expiry time."""
    expires_at = (now or utcnow()) + timedelta(minutes=settings.otp_ttl_minutes)
    with db.transaction(deadline, write=True) as session:
        user = load_user(session, user_id)
        user.otp_code = code
        user.otp_expires_at = expires_at

    logger.info("OTP challenge issued: user_id=%d", user_id)
    return expires_at


def verify_otp_code(
    db: Database,
    user_id: int,
    code: str,
    now: Optional[datetime] = None,
    deadline: Optional[Deadline] = None,
) -> bool:
    """
    ``True`` iff a challenge is pending for the user, *code* equals it, and
    it has not expired.  An unknown user simply fails verification.
    """
    now = now or utcnow()
    with db.transaction(deadline) as session:
        row = (
            session.query(User.otp_code, User.otp_expires_at)
            .filter(User.id == user_id)
            .first()
        )

    stored_code, expires_at = row if row else (None, None)
    matched = otp_matches(code, stored_code)

    pending = bool(stored_code) and expires_at is not None
    return matched and pending and now <= expires_at


def clear_otp_code(db: Database, user_id: int, deadline: Optional[Deadline] = None) -> None:
    """Drop any pending challenge.  Safe to call when none is pending."""
    with db.transaction(deadline, write=True) as session:
        user = load_user(session, user_id)
        user.otp_code = None
        user.otp_expires_at = None


def enable_2fa(db: Database, user_id: int, deadline: Optional[Deadline] = None) -> None:
    """
    Turn on two-factor login.  Callers must only do this after the user has
    passed a fresh OTP challenge.
    """
    with db.transaction(deadline, write=True) as session:
        load_user(session, user_id).is_2fa_enabled = True

    logger.info("2FA enabled: user_id=%d", user_id)
