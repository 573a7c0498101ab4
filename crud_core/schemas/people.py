"""
CRUD core schemas for people and their roles
"""

import uuid
import datetime
from typing import List, Optional

import pydantic

from .bases import RowVersion, empty_to_none


PERSON_NAME_PATTERN = r"^[a-zA-Z\s\-'\.]+$"
PHONE_PATTERN = r"^\+?[\d\s\-\(\)\.]{7,15}$"

_full_name = pydantic.constr(strip_whitespace=True, min_length=1, max_length=200, pattern=PERSON_NAME_PATTERN)
_phone = pydantic.constr(strip_whitespace=True, max_length=20, pattern=PHONE_PATTERN)
_role_name = pydantic.constr(strip_whitespace=True, min_length=1, max_length=100)
_role_description = pydantic.constr(max_length=500)


class Role(pydantic.BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    row_version: Optional[RowVersion] = None
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None


class RoleCreation(pydantic.BaseModel):
    name: _role_name
    description: Optional[_role_description] = None


class RoleUpdate(pydantic.BaseModel):
    name: _role_name
    description: Optional[_role_description] = None
    row_version: Optional[RowVersion] = None


class Person(pydantic.BaseModel):
    id: uuid.UUID
    full_name: str
    phone: Optional[str] = None
    roles: List[str] = []
    """Names of the assigned roles"""
    row_version: Optional[RowVersion] = None
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None


class PersonWithRoles(pydantic.BaseModel):
    id: uuid.UUID
    full_name: str
    phone: Optional[str] = None
    roles: List[Role]
    row_version: Optional[RowVersion] = None
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None


class PersonCreation(pydantic.BaseModel):
    full_name: _full_name
    phone: Optional[_phone] = None
    role_ids: List[uuid.UUID] = []

    @pydantic.field_validator("phone", mode="before")
    @classmethod
    def blank_phone_is_none(cls, value):
        return empty_to_none(value)


class PersonUpdate(pydantic.BaseModel):
    """
    Replacement of the editable fields of a person

    Leaving out `role_ids` (or sending `null`) keeps the current role
    assignments, while a list (which may be empty) replaces them.
    """

    full_name: _full_name
    phone: Optional[_phone] = None
    role_ids: Optional[List[uuid.UUID]] = None
    row_version: Optional[RowVersion] = None

    @pydantic.field_validator("phone", mode="before")
    @classmethod
    def blank_phone_is_none(cls, value):
        return empty_to_none(value)
