# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Immutable records handed back by the services.

They are copied out of ORM rows before the transaction closes, so callers
never hold a session-bound object and nothing is cached between calls.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class UserRecord:
    id: int
    username: str
    email: str
    full_name: str
    password_hash: str
    is_2fa_enabled: bool
    is_admin: bool
    is_active: bool
    last_login: Optional[datetime] = None
    totp_secret: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "UserRecord":
        return cls(
            id=row.id,
            username=row.username,
            email=row.email,
            full_name=row.full_name,
            password_hash=row.password_hash,
            is_2fa_enabled=bool(row.is_2fa_enabled),
            is_admin=bool(row.is_admin),
            is_active=bool(row.is_active),
            last_login=row.last_login,
            totp_secret=row.totp_secret,
        )


@dataclass(frozen=True)
class NewUser:
    """Registration candidate.  Holds the plaintext only until it is hashed."""

    username: str
    email: str
    password: str = field(repr=False)
    full_name: str = ""


@dataclass(frozen=True)
class ProfileUpdate:
    """Partial profile change.  Empty strings mean "leave unchanged"."""

    email: str = ""
    full_name: str = ""
    password: str = field(default="", repr=False)


@dataclass(frozen=True)
class TaskRecord:
    id: int
    course_id: int
    title: str
    description: str
    difficulty: str
    order: int

    @classmethod
    def from_row(cls, row) -> "TaskRecord":
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title,
            description=row.description,
            difficulty=row.difficulty,
            order=row.order,
        )


@dataclass(frozen=True)
class CourseRecord:
    id: int
    vulnerability_type: str
    description: str
    tasks_count: int
    tasks: Tuple[TaskRecord, ...] = ()


@dataclass(frozen=True)
class ProgressRecord:
    user_id: int
    completed: Dict[int, bool] = field(default_factory=dict)
