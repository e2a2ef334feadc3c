# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – registration, password login, OTP second factor,
profile.

Security notes
--------------
* Login returns the *same* error whether the username doesn't exist or
  the password is wrong.  This prevents user-enumeration attacks.
* With 2FA enabled, a correct password only issues an OTP challenge; the
  token is handed out by /auth/verify-otp.  A matched code is cleared
  immediately so it cannot be replayed.
* 2FA is switched on only after the user has passed a fresh challenge.
* Recording ``last_login`` never fails a login; errors are logged.
"""

import re

from fastapi import APIRouter, Depends, Request, status

from database import Database, get_db
from core.errors import (
    ForbiddenError,
    InputValidationError,
    LmsError,
    UnauthorizedError,
    UserNotFound,
)
from core.logger import logger
from core.security import create_access_token, generate_otp_code, get_current_user
from services import courses, otp, users
from services.access import ACTIVE_USER, authorize
from services.records import NewUser, ProfileUpdate, UserRecord
from auth.schemas import (
    EnableTwoFactorRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UserProfile,
    VerifyOTPRequest,
)

router = APIRouter(prefix="/auth", tags=["auth"])

_OTP_FAIL = "Invalid or expired code"


def _validate_new_password(pw: str) -> str | None:
    """
    Return an error string if the password does not meet the minimum policy,
    or None if it is acceptable.

    Policy: >= 8 chars, at least one uppercase, one lowercase, one digit.
    """
    if len(pw) < 8:
        return "Password must be at least 8 characters"
    if not re.search(r"[A-Z]", pw):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", pw):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", pw):
        return "Password must contain at least one digit"
    return None


def _check_password_policy(pw: str) -> None:
    err = _validate_new_password(pw)
    if err:
        raise InputValidationError(err, field="password")


def _issue_challenge(request: Request, db: Database, user: UserRecord) -> None:
    code = generate_otp_code()
    otp.save_otp_code(db, user.id, code)
    request.app.state.otp_sender(user, code)


def _record_login(db: Database, user_id: int) -> None:
    try:
        courses.update_user_last_login(db, user_id)
    except LmsError as exc:
        logger.warning("Could not record last login for user_id=%d: %s", user_id, exc.code)


def _token_for(user: UserRecord) -> LoginResponse:
    token = create_access_token({"sub": user.username, "user_id": user.id})
    return LoginResponse(access_token=token, token_type="bearer")


# ---------------------------------------------------------------------------
# POST /auth/register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=UserProfile, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Database = Depends(get_db)):
    """Create an account.  409 when the username or e-mail is taken."""
    _check_password_policy(body.password)
    return users.create_user(
        db,
        NewUser(
            username=body.username,
            email=body.email,
            password=body.password,
            full_name=body.full_name,
        ),
    )


# ---------------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, request: Request, db: Database = Depends(get_db)):
    """Check the password; then either issue a token or an OTP challenge."""
    user = users.authenticate(db, body.username, body.password)
    authorize(user, ACTIVE_USER)

    if user.is_2fa_enabled:
        _issue_challenge(request, db, user)
        return LoginResponse(otp_required=True)

    _record_login(db, user.id)
    return _token_for(user)


# ---------------------------------------------------------------------------
# POST /auth/verify-otp
# ---------------------------------------------------------------------------


@router.post("/verify-otp", response_model=LoginResponse)
def verify_otp(body: VerifyOTPRequest, db: Database = Depends(get_db)):
    """Second login step: exchange a pending OTP for a token."""
    try:
        user = users.get_user_by_username(db, body.username)
    except UserNotFound:
        raise UnauthorizedError(_OTP_FAIL)

    if not otp.verify_otp_code(db, user.id, body.code):
        raise UnauthorizedError(_OTP_FAIL)
    otp.clear_otp_code(db, user.id)

    if not user.is_active:
        raise ForbiddenError("Account disabled")

    _record_login(db, user.id)
    return _token_for(user)


# ---------------------------------------------------------------------------
# GET /auth/me, PUT /auth/profile
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserProfile)
def me(current_user: UserRecord = Depends(get_current_user)):
    """Return the authenticated user's public profile (no secrets)."""
    return current_user


@router.put("/profile", response_model=UserProfile)
def update_profile(
    body: UpdateProfileRequest,
    current_user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Change any of e-mail, full name, password.  All or nothing."""
    if body.password:
        _check_password_policy(body.password)
    return users.update_profile(
        db,
        current_user.id,
        ProfileUpdate(email=body.email, full_name=body.full_name, password=body.password),
    )


# ---------------------------------------------------------------------------
# POST /auth/2fa/setup, POST /auth/2fa/enable
# ---------------------------------------------------------------------------


@router.post("/2fa/setup")
def setup_two_factor(
    request: Request,
    current_user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Send a challenge the user must answer to switch 2FA on."""
    _issue_challenge(request, db, current_user)
    return {"detail": "Verification code sent"}


@router.post("/2fa/enable")
def enable_two_factor(
    body: EnableTwoFactorRequest,
    current_user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    if not otp.verify_otp_code(db, current_user.id, body.code):
        raise UnauthorizedError(_OTP_FAIL)
    otp.clear_otp_code(db, current_user.id)
    otp.enable_2fa(db, current_user.id)
    return {"detail": "Two-factor authentication enabled"}
