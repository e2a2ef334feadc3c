# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Error hierarchy shared by the services and the HTTP layer.

Every failure the core reports is an ``LmsError`` carrying a machine code, a
category and the HTTP status the API layer should answer with.  Store
failures are wrapped in ``InternalError`` so callers can always tell a
missing course from a broken connection.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


class LmsError(Exception):
    """Base exception for every failure raised by the core."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.http_status = http_status

    def to_response(self) -> dict:
        """REST error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
            }
        }


# -- 404 -------------------------------------------------------------------


class NotFoundError(LmsError):
    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message, code, ErrorCategory.NOT_FOUND, 404)


class CourseNotFound(NotFoundError):
    def __init__(self, course_id: int):
        super().__init__("Course not found", "COURSE_NOT_FOUND")
        self.course_id = course_id


class TaskNotFound(NotFoundError):
    def __init__(self, task_id: int):
        super().__init__("Task not found", "TASK_NOT_FOUND")
        self.task_id = task_id


class UserNotFound(NotFoundError):
    def __init__(self, user_id=None):
        super().__init__("User not found", "USER_NOT_FOUND")
        self.user_id = user_id


# -- 4xx -------------------------------------------------------------------


class ConflictError(LmsError):
    def __init__(self, message: str = "Username or email already exists"):
        super().__init__(message, "CONFLICT", ErrorCategory.CONFLICT, 409)


class UnauthorizedError(LmsError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, "UNAUTHORIZED", ErrorCategory.UNAUTHORIZED, 401)


class ForbiddenError(LmsError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, "FORBIDDEN", ErrorCategory.FORBIDDEN, 403)


class InputValidationError(LmsError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "VALIDATION_ERROR", ErrorCategory.VALIDATION, 400)
        self.field = field


# -- 5xx -------------------------------------------------------------------


class InternalError(LmsError):
    """Store or I/O failure.  The message never carries driver details."""

    def __init__(self, message: str = "Internal storage error", code: str = "INTERNAL_ERROR",
                 category: ErrorCategory = ErrorCategory.INTERNAL, http_status: int = 500):
        super().__init__(message, code, category, http_status)


class OperationTimeout(LmsError):
    """
    The caller's deadline expired or was cancelled before commit.  Not a
    store failure, so it is not an ``InternalError``.
    """

    def __init__(self, message: str = "Operation deadline exceeded"):
        super().__init__(message, "OPERATION_TIMEOUT", ErrorCategory.TIMEOUT, 504)
