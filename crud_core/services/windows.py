"""
Commands and queries for windows
"""

import uuid
import logging
from typing import List

from sqlalchemy.orm import Session

from .. import caching, schemas
from ..api.base import NotFound
from ..caching import keys
from ..persistence import models


logger = logging.getLogger(__name__)

ENTITY = "window"


def load(session: Session, window_id: uuid.UUID) -> models.Window:
    window = session.get(models.Window, window_id)
    if window is None:
        raise NotFound(f"Window with ID {window_id}")
    return window


@caching.cached(List[schemas.Window], lambda session: keys.collection(ENTITY))
def list_windows(session: Session) -> List[schemas.Window]:
    return [window.schema for window in session.query(models.Window).order_by(models.Window.name).all()]


@caching.cached(schemas.Window, lambda session, window_id: keys.entity(ENTITY, window_id))
def get_window(session: Session, window_id: uuid.UUID) -> schemas.Window:
    return load(session, window_id).schema


@caching.invalidates(ENTITY)
def create_window(session: Session, data: schemas.WindowCreation) -> schemas.Window:
    window = models.Window(id=uuid.uuid4(), **data.model_dump())
    session.add(window)
    session.commit()
    logger.info(f"Created {window!r}")
    return window.schema


@caching.invalidates(ENTITY)
def update_window(session: Session, window_id: uuid.UUID, data: schemas.WindowUpdate) -> schemas.Window:
    """
    Replace all properties of the window and stamp its modification time

    :raises NotFound: when the window doesn't exist
    """

    window = load(session, window_id)
    for key, value in data.model_dump().items():
        setattr(window, key, value)
    window.updated_at = models.utcnow()
    session.commit()
    logger.info(f"Updated {window!r}")
    return window.schema


@caching.invalidates(ENTITY)
def delete_window(session: Session, window_id: uuid.UUID):
    session.delete(load(session, window_id))
    session.commit()
