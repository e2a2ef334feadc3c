# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Admin endpoints – user listing, role and status management.

Every endpoint in this router is guarded by ``require_admin``.  A request
that carries a valid JWT but belongs to a non-admin (or a disabled admin)
receives 403 before any business logic runs.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from database import Database, get_db
from core.errors import InputValidationError
from core.security import require_admin
from services import access
from services.records import UserRecord
from admin.schemas import AdminUserProfile, UpdateStatusRequest, UserListResponse

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# GET /admin/users  – list / filter users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    is_admin: Optional[bool] = Query(None, description="Only admins (true) or only non-admins (false)"),
    q: Optional[str] = Query(None, description="Substring of username, e-mail or full name"),
    admin: UserRecord = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """
    Return user rows (no password data – handled by the schema).  ``q``
    takes precedence over ``is_admin`` when both are given.
    """
    if q:
        rows = access.search_users(db, q)
    elif is_admin is not None:
        rows = access.get_users_by_role(db, is_admin)
    else:
        rows = access.get_all_users(db)
    return UserListResponse(users=[AdminUserProfile.model_validate(row) for row in rows])


# ---------------------------------------------------------------------------
# PUT /admin/users/{id}/promote, /demote  – change role
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/promote")
def promote(
    user_id: int,
    admin: UserRecord = Depends(require_admin),
    db: Database = Depends(get_db),
):
    access.promote_to_admin(db, user_id)
    return {"detail": "User promoted to admin"}


@router.put("/users/{user_id}/demote")
def demote(
    user_id: int,
    admin: UserRecord = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """Guard: an admin cannot demote themself (prevents accidental self-lockout)."""
    if user_id == admin.id:
        raise InputValidationError("Cannot change your own role")
    access.demote_from_admin(db, user_id)
    return {"detail": "User demoted"}


# ---------------------------------------------------------------------------
# PUT /admin/users/{id}/status  – enable / disable an account
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/status")
def update_status(
    user_id: int,
    body: UpdateStatusRequest,
    admin: UserRecord = Depends(require_admin),
    db: Database = Depends(get_db),
):
    """
    Set ``is_active``.  A disabled user is rejected by the auth guards on
    every later request.  Guard: an admin cannot disable their own account.
    """
    if user_id == admin.id and not body.is_active:
        raise InputValidationError("Cannot disable yourself")
    access.update_user_status(db, user_id, body.is_active)
    return {"detail": "User enabled" if body.is_active else "User disabled"}
