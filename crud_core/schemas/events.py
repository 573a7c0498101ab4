"""
CRUD core schemas for the event publishing system

This module contains a schema for the event model as
well as an enum of the different known event types.
"""

import enum
from typing import List

import pydantic


@enum.unique
class EventType(str, enum.Enum):
    SERVER_STARTED = "server_started"
    USER_REGISTERED = "user_registered"
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"
    TOKEN_REFRESHED = "token_refreshed"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET_COMPLETED = "password_reset_completed"
    PERSON_CREATED = "person_created"
    PERSON_UPDATED = "person_updated"
    PERSON_DELETED = "person_deleted"
    ROLE_CREATED = "role_created"
    ROLE_UPDATED = "role_updated"
    ROLE_DELETED = "role_deleted"
    WALL_CREATED = "wall_created"
    WALL_UPDATED = "wall_updated"
    WALL_DELETED = "wall_deleted"
    WINDOW_CREATED = "window_created"
    WINDOW_UPDATED = "window_updated"
    WINDOW_DELETED = "window_deleted"
    DATABASE_RESET = "database_reset"


class Event(pydantic.BaseModel):
    event: EventType
    timestamp: pydantic.NonNegativeInt
    data: dict


class EventsNotification(pydantic.BaseModel):
    number: pydantic.NonNegativeInt
    events: List[Event]
