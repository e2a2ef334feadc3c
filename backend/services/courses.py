# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Course catalog reads and per-user progress.

``tasks_count`` is never stored: the listing derives it with an aggregate,
and the single-course read derives it from the very task list it returns,
inside one snapshot transaction, so the two cannot disagree.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import CourseNotFound, TaskNotFound
from core.logger import logger
from database import Database, Deadline
from models.course import Course, Task
from models.user_progress import UserProgress
from services.clock import utcnow
from services.records import CourseRecord, ProgressRecord, TaskRecord
from services.users import load_user


def get_courses(db: Database, deadline: Optional[Deadline] = None) -> List[CourseRecord]:
    """Every course with its task count (zero when it has none)."""
    with db.transaction(deadline) as session:
        rows = (
            session.query(
                Course.id,
                Course.vulnerability_type,
                Course.description,
                func.count(Task.id).label("tasks_count"),
            )
            .outerjoin(Task, Task.course_id == Course.id)
            .group_by(Course.id, Course.vulnerability_type, Course.description)
            .order_by(Course.id)
            .all()
        )

    return [
        CourseRecord(
            id=row.id,
            vulnerability_type=row.vulnerability_type,
            description=row.description,
            tasks_count=row.tasks_count,
        )
        for row in rows
    ]


def get_course_by_id(db: Database, course_id: int, deadline: Optional[Deadline] = None) -> CourseRecord:
    """
    One course with its tasks in presentation order.  Raises
    ``CourseNotFound`` when the id is unknown.
    """
    with db.transaction(deadline, snapshot=True) as session:
        course = session.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise CourseNotFound(course_id)

        tasks = (
            session.query(Task)
            .filter(Task.course_id == course_id)
            .order_by(Task.order, Task.id)
            .all()
        )
        task_records = tuple(TaskRecord.from_row(t) for t in tasks)

        return CourseRecord(
            id=course.id,
            vulnerability_type=course.vulnerability_type,
            description=course.description,
            tasks_count=len(task_records),
            tasks=task_records,
        )


def get_user_progress(db: Database, user_id: int, deadline: Optional[Deadline] = None) -> ProgressRecord:
    """Completed task ids for the user.  No completions yields an empty mapping."""
    with db.transaction(deadline) as session:
        task_ids = (
            session.query(UserProgress.task_id)
            .filter(UserProgress.user_id == user_id)
            .all()
        )
    return ProgressRecord(user_id=user_id, completed={row.task_id: True for row in task_ids})


# ---------------------------------------------------------------------------
# Task completion
# ---------------------------------------------------------------------------


def _upsert_progress(session: Session, user_id: int, task_id: int) -> None:
    """Insert the (user, task) row unless it is already there."""
    values = {"user_id": user_id, "task_id": task_id}
    dialect = session.get_bind().dialect.name

    if dialect == "sqlite":
        stmt = sqlite.insert(UserProgress).values(**values).on_conflict_do_nothing()
    elif dialect == "postgresql":
        stmt = postgresql.insert(UserProgress).values(**values).on_conflict_do_nothing()
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(UserProgress).values(**values)
        stmt = stmt.on_duplicate_key_update(task_id=stmt.inserted.task_id)
    else:
        exists = session.query(UserProgress.id).filter_by(**values).first()
        if exists:
            return
        try:
            with session.begin_nested():
                session.add(UserProgress(**values))
        except IntegrityError:
            # a concurrent completion got there first
            pass
        return

    session.execute(stmt)


def complete_task(db: Database, user_id: int, task_id: int, deadline: Optional[Deadline] = None) -> None:
    """
    Mark *task_id* completed for the user.  Completing it again is a no-op.
    Raises ``TaskNotFound`` or ``UserNotFound``.
    """
    with db.transaction(deadline, write=True) as session:
        if not session.query(Task.id).filter(Task.id == task_id).first():
            raise TaskNotFound(task_id)
        load_user(session, user_id)
        _upsert_progress(session, user_id, task_id)

    logger.info("Task completed: user_id=%d task_id=%d", user_id, task_id)


def update_user_last_login(
    db: Database,
    user_id: int,
    now: Optional[datetime] = None,
    deadline: Optional[Deadline] = None,
) -> None:
    with db.transaction(deadline, write=True) as session:
        load_user(session, user_id).last_login = now or utcnow()
