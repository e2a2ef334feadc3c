# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the admin endpoints."""

from typing import List

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from auth.schemas import AdminUserProfile


# -- Requests --------------------------------------------------------------


class UpdateStatusRequest(BaseModel):
    is_active: bool

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# -- Responses -------------------------------------------------------------


class UserListResponse(BaseModel):
    users: List[AdminUserProfile]
