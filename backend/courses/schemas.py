# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic response models for the course and progress endpoints."""

from typing import Dict, List

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True, "from_attributes": True}


class TaskOut(BaseModel):
    id: int
    course_id: int
    title: str
    description: str
    difficulty: str
    order: int

    model_config = _CAMEL


class CourseSummary(BaseModel):
    id: int
    vulnerability_type: str
    description: str
    tasks_count: int

    model_config = _CAMEL


class CourseDetail(CourseSummary):
    tasks: List[TaskOut]


class CourseListResponse(BaseModel):
    courses: List[CourseSummary]


class UserProgressOut(BaseModel):
    user_id: int
    completed: Dict[int, bool]

    model_config = _CAMEL
