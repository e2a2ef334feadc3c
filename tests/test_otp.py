"""OTP challenge lifecycle: issue, verify, expire, clear."""

from datetime import timedelta

import pytest

from core.errors import UserNotFound
from models.user import User
from services import otp, users
from services.clock import utcnow


def _otp_columns(db, user_id):
    with db.transaction() as session:
        return session.query(User.otp_code, User.otp_expires_at).filter(User.id == user_id).one()


def test_fresh_code_verifies(db, make_user):
    alice = make_user()
    otp.save_otp_code(db, alice.id, "123456")

    assert otp.verify_otp_code(db, alice.id, "123456") is True


def test_code_expires_after_five_minutes(db, make_user):
    alice = make_user()
    issued = utcnow()
    expires_at = otp.save_otp_code(db, alice.id, "123456", now=issued)

    assert expires_at == issued + timedelta(minutes=5)
    assert otp.verify_otp_code(db, alice.id, "123456", now=expires_at) is True
    assert otp.verify_otp_code(db, alice.id, "123456", now=issued + timedelta(minutes=5, seconds=1)) is False
    assert otp.verify_otp_code(db, alice.id, "123456", now=issued + timedelta(hours=1)) is False


@pytest.mark.parametrize("supplied", ["654321", "12345", "1234567", ""])
def test_wrong_code_fails(db, make_user, supplied):
    alice = make_user()
    otp.save_otp_code(db, alice.id, "123456")

    assert otp.verify_otp_code(db, alice.id, supplied) is False


def test_no_challenge_fails(db, make_user):
    alice = make_user()
    assert otp.verify_otp_code(db, alice.id, "123456") is False
    assert otp.verify_otp_code(db, alice.id, "") is False


def test_unknown_user_fails_verification(db):
    assert otp.verify_otp_code(db, 4242, "123456") is False


def test_verify_does_not_consume_the_code(db, make_user):
    alice = make_user()
    otp.save_otp_code(db, alice.id, "123456")

    assert otp.verify_otp_code(db, alice.id, "123456")
    assert otp.verify_otp_code(db, alice.id, "123456")


def test_clear_removes_challenge_and_is_idempotent(db, make_user):
    alice = make_user()
    otp.save_otp_code(db, alice.id, "123456")

    otp.clear_otp_code(db, alice.id)
    otp.clear_otp_code(db, alice.id)

    assert otp.verify_otp_code(db, alice.id, "123456") is False
    assert tuple(_otp_columns(db, alice.id)) == (None, None)


def test_code_and_expiry_are_set_together(db, make_user):
    alice = make_user()
    assert tuple(_otp_columns(db, alice.id)) == (None, None)

    otp.save_otp_code(db, alice.id, "111111")
    code, expires_at = _otp_columns(db, alice.id)
    assert code == "111111"
    assert expires_at is not None


def test_latest_code_replaces_previous(db, make_user):
    alice = make_user()
    otp.save_otp_code(db, alice.id, "111111")
    otp.save_otp_code(db, alice.id, "222222")

    assert otp.verify_otp_code(db, alice.id, "111111") is False
    assert otp.verify_otp_code(db, alice.id, "222222") is True


def test_save_for_unknown_user(db):
    with pytest.raises(UserNotFound):
        otp.save_otp_code(db, 4242, "123456")


def test_enable_2fa(db, make_user):
    alice = make_user()
    otp.enable_2fa(db, alice.id)
    assert users.get_user_by_id(db, alice.id).is_2fa_enabled is True
