# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Access control – the admin role, the active flag, and user listings.

``authorize`` is the single place where "admin-only" and "active-only"
are decided.  The HTTP guards call it exactly once per request; nothing
else re-checks the flags.
"""

from dataclasses import dataclass
from typing import List, Optional

from core.errors import ForbiddenError
from core.logger import logger
from database import Database, Deadline
from models.user import User
from services.records import UserRecord
from services.users import load_user


# ---------------------------------------------------------------------------
# Authorization predicate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Capability:
    """What an operation needs from its caller.  Every capability needs an active account."""

    admin: bool = False


ACTIVE_USER = Capability()
ADMIN = Capability(admin=True)


def authorize(user: UserRecord, capability: Capability = ACTIVE_USER) -> UserRecord:
    """Return *user* if it holds *capability*, raise ``ForbiddenError`` otherwise."""
    if not user.is_active:
        raise ForbiddenError("Account disabled")
    if capability.admin and not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


# ---------------------------------------------------------------------------
# Role and status
# ---------------------------------------------------------------------------


def is_admin(db: Database, user_id: int, deadline: Optional[Deadline] = None) -> bool:
    with db.transaction(deadline) as session:
        return bool(load_user(session, user_id).is_admin)


def _set_admin(db: Database, user_id: int, value: bool, deadline: Optional[Deadline]) -> None:
    with db.transaction(deadline, write=True) as session:
        load_user(session, user_id).is_admin = value

    logger.info("Admin flag set: user_id=%d is_admin=%s", user_id, value)


def promote_to_admin(db: Database, user_id: int, deadline: Optional[Deadline] = None) -> None:
    _set_admin(db, user_id, True, deadline)


def demote_from_admin(db: Database, user_id: int, deadline: Optional[Deadline] = None) -> None:
    _set_admin(db, user_id, False, deadline)


def update_user_status(
    db: Database,
    user_id: int,
    is_active: bool,
    deadline: Optional[Deadline] = None,
) -> None:
    """
    Enable or disable an account.  Blocking disabled users is the job of
    :func:`authorize`, not of this setter.
    """
    with db.transaction(deadline, write=True) as session:
        load_user(session, user_id).is_active = is_active

    logger.info("Account status set: user_id=%d is_active=%s", user_id, is_active)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def _list(db: Database, deadline: Optional[Deadline], *criteria) -> List[UserRecord]:
    with db.transaction(deadline) as session:
        rows = session.query(User).filter(*criteria).order_by(User.id).all()
        return [UserRecord.from_row(row) for row in rows]


def get_all_users(db: Database, deadline: Optional[Deadline] = None) -> List[UserRecord]:
    return _list(db, deadline)


def get_users_by_role(db: Database, admin: bool, deadline: Optional[Deadline] = None) -> List[UserRecord]:
    return _list(db, deadline, User.is_admin == admin)


def search_users(db: Database, query: str, deadline: Optional[Deadline] = None) -> List[UserRecord]:
    """
    Substring match over username, e-mail and full name.  Case sensitivity
    follows the database collation.
    """
    pattern = f"%{query}%"
    return _list(
        db,
        deadline,
        User.username.like(pattern) | User.email.like(pattern) | User.full_name.like(pattern),
    )
