# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Course catalog and learner progress endpoints.

All endpoints require an active account (``get_current_user``).  Progress
is always the caller's own; there is no way to read or write another
user's completions here.
"""

from fastapi import APIRouter, Depends

from database import Database, get_db
from core.security import get_current_user
from services import courses
from services.records import UserRecord
from courses.schemas import CourseDetail, CourseListResponse, CourseSummary, UserProgressOut

router = APIRouter(tags=["courses"])


@router.get("/courses", response_model=CourseListResponse)
def list_courses(
    current_user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    rows = courses.get_courses(db)
    return CourseListResponse(courses=[CourseSummary.model_validate(row) for row in rows])


@router.get("/courses/{course_id}", response_model=CourseDetail)
def get_course(
    course_id: int,
    current_user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Course with its tasks in presentation order.  404 when unknown."""
    return courses.get_course_by_id(db, course_id)


@router.get("/progress", response_model=UserProgressOut)
def my_progress(
    current_user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return courses.get_user_progress(db, current_user.id)


@router.post("/tasks/{task_id}/complete", response_model=UserProgressOut)
def complete_task(
    task_id: int,
    current_user: UserRecord = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """Mark a task done.  Repeating the call changes nothing.  404 when unknown."""
    courses.complete_task(db, current_user.id, task_id)
    return courses.get_user_progress(db, current_user.id)
