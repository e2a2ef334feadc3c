# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Course and Task ORM models – the catalog is read-only for this service."""

from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from database import Base


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vulnerability_type = Column(String(128), nullable=False)
    description = Column(Text, nullable=False, default="")

    tasks = relationship("Task", back_populates="course", order_by="Task.order")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    difficulty = Column(String(32), nullable=False, default="")
    # "order" is reserved in SQL
    order = Column("task_order", Integer, nullable=False, default=0)

    course = relationship("Course", back_populates="tasks")
