"""
CRUD core schemas for user accounts and their tokens
"""

import uuid
import datetime
from typing import List, Optional

import pydantic


EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

_email = pydantic.constr(strip_whitespace=True, to_lower=True, max_length=256, pattern=EMAIL_PATTERN)
_password = pydantic.constr(min_length=8, max_length=128)
_person_name = pydantic.constr(strip_whitespace=True, max_length=100)


class UserRegistration(pydantic.BaseModel):
    email: _email
    password: _password
    first_name: Optional[_person_name] = None
    last_name: Optional[_person_name] = None


class UserLogin(pydantic.BaseModel):
    email: pydantic.constr(strip_whitespace=True, to_lower=True, min_length=1, max_length=256)
    password: pydantic.constr(min_length=1, max_length=128)


class UserInfo(pydantic.BaseModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    roles: List[str]
    locked: bool = False
    created_at: datetime.datetime


class Token(pydantic.BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: pydantic.PositiveInt
    """Lifetime of the access token in seconds"""


class RefreshRequest(pydantic.BaseModel):
    """
    Body of a refresh or revocation request

    The refresh token may be omitted if it's sent in the
    ``refreshToken`` cookie that was set during login.
    """

    refresh_token: Optional[pydantic.constr(min_length=1, max_length=512)] = None


class ForgotPasswordRequest(pydantic.BaseModel):
    email: _email


class ResetPasswordRequest(pydantic.BaseModel):
    token: pydantic.constr(strip_whitespace=True, min_length=1, max_length=512)
    new_password: _password


class ResetTokenValidation(pydantic.BaseModel):
    is_valid: bool
    is_expired: bool
    is_used: bool
    expires_at: Optional[datetime.datetime] = None
