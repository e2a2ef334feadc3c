# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

# camelCase on the wire, snake_case in Python; either is accepted on input
_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


# -- Requests --------------------------------------------------------------


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)
    full_name: str = ""

    model_config = _CAMEL


class LoginRequest(BaseModel):
    username: str
    password: str


class VerifyOTPRequest(BaseModel):
    username: str
    code: str


class EnableTwoFactorRequest(BaseModel):
    code: str


class UpdateProfileRequest(BaseModel):
    # empty / absent = unchanged
    email: str = ""
    full_name: str = ""
    password: str = ""

    model_config = _CAMEL


# -- Responses -------------------------------------------------------------


class LoginResponse(BaseModel):
    otp_required: bool = False
    access_token: Optional[str] = None
    token_type: Optional[str] = None  # "bearer" once a token is issued

    model_config = _CAMEL


class UserProfile(BaseModel):
    """Self view – admin-only fields are left out."""

    id: int
    username: str
    email: str
    full_name: str
    # to_camel would give "is2FaEnabled"
    is_2fa_enabled: bool = Field(alias="is2faEnabled")

    model_config = {**_CAMEL, "from_attributes": True}


class AdminUserProfile(UserProfile):
    is_admin: bool
    is_active: bool
    last_login: Optional[datetime] = None
