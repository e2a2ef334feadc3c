# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Credential store – registration, lookup, password login, profile updates.

Security notes
--------------
* Only the PBKDF2 hash is persisted.  Plaintext passwords never reach the
  database or the log.
* ``authenticate`` raises the *same* error whether the username doesn't
  exist or the password is wrong, and both paths pay for one hash
  derivation.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import ConflictError, UnauthorizedError, UserNotFound
from core.logger import logger
from core.security import burn_password_check, hash_password, verify_password
from database import Database, Deadline, Step
from models.user import User
from services.records import NewUser, ProfileUpdate, UserRecord

# Generic message used for both "no such user" and "wrong password"
_LOGIN_FAIL = "Invalid username or password"


def load_user(session: Session, user_id: int) -> User:
    """Fetch the ORM row inside an open transaction or raise ``UserNotFound``."""
    user = session.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserNotFound(user_id)
    return user


def create_user(db: Database, candidate: NewUser, deadline: Optional[Deadline] = None) -> UserRecord:
    """
    Register a user.  Raises ``ConflictError`` when the username or e-mail
    is already taken.
    """
    with db.transaction(deadline, write=True) as session:
        taken = (
            session.query(User.id)
            .filter((User.username == candidate.username) | (User.email == candidate.email))
            .first()
        )
        if taken:
            raise ConflictError()

        user = User(
            username=candidate.username,
            password_hash=hash_password(candidate.password),
            email=candidate.email,
            full_name=candidate.full_name,
            is_2fa_enabled=False,
            is_admin=False,
            is_active=True,
        )
        session.add(user)
        try:
            session.flush()  # get user.id before commit
        except IntegrityError:
            # lost a race against a concurrent registration
            raise ConflictError()
        record = UserRecord.from_row(user)

    logger.info("User registered: id=%d username=%s", record.id, record.username)
    return record


def get_user_by_id(db: Database, user_id: int, deadline: Optional[Deadline] = None) -> UserRecord:
    with db.transaction(deadline) as session:
        return UserRecord.from_row(load_user(session, user_id))


def get_user_by_username(db: Database, username: str, deadline: Optional[Deadline] = None) -> UserRecord:
    with db.transaction(deadline) as session:
        user = session.query(User).filter(User.username == username).first()
        if not user:
            raise UserNotFound()
        return UserRecord.from_row(user)


def authenticate(db: Database, username: str, password: str, deadline: Optional[Deadline] = None) -> UserRecord:
    """Check a username/password pair.  Raises ``UnauthorizedError`` on any mismatch."""
    try:
        user = get_user_by_username(db, username, deadline)
    except UserNotFound:
        burn_password_check(password)
        raise UnauthorizedError(_LOGIN_FAIL)

    if not verify_password(password, user.password_hash):
        raise UnauthorizedError(_LOGIN_FAIL)
    return user


# ---------------------------------------------------------------------------
# Profile update
# ---------------------------------------------------------------------------


def _set_email(user_id: int, email: str):
    def apply(session: Session) -> None:
        other = (
            session.query(User.id)
            .filter(User.email == email, User.id != user_id)
            .first()
        )
        if other:
            raise ConflictError("Email already exists")
        load_user(session, user_id).email = email
        try:
            session.flush()
        except IntegrityError:
            raise ConflictError("Email already exists")

    return Step("email", apply)


def _set_full_name(user_id: int, full_name: str):
    def apply(session: Session) -> None:
        load_user(session, user_id).full_name = full_name

    return Step("full_name", apply)


def _set_password(user_id: int, password: str):
    def apply(session: Session) -> None:
        load_user(session, user_id).password_hash = hash_password(password)

    return Step("password", apply)


def profile_steps(user_id: int, changes: ProfileUpdate) -> List[Step]:
    """One step per non-empty field, in a fixed order."""
    steps = []
    if changes.email:
        steps.append(_set_email(user_id, changes.email))
    if changes.full_name:
        steps.append(_set_full_name(user_id, changes.full_name))
    if changes.password:
        steps.append(_set_password(user_id, changes.password))
    return steps


def update_profile(
    db: Database,
    user_id: int,
    changes: ProfileUpdate,
    deadline: Optional[Deadline] = None,
) -> UserRecord:
    """
    Apply the non-empty fields of *changes* atomically.

    Either every selected field is persisted or none is.  Raises
    ``UserNotFound`` for an unknown id and ``ConflictError`` when the new
    e-mail belongs to someone else.
    """
    steps = profile_steps(user_id, changes)
    if not steps:
        return get_user_by_id(db, user_id, deadline)

    results = db.run_steps(steps, deadline)
    logger.info(
        "Profile updated: id=%d fields=%s",
        user_id,
        ",".join(r.name for r in results),
    )
    return get_user_by_id(db, user_id, deadline)
