"""
Commands and queries for walls
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

ENTITY = "wall"


def load(session: Session, wall_id: uuid.UUID) -> models.Wall:
    wall = session.get(models.Wall, wall_id)
    if wall is None:
        raise NotFound(f"Wall with ID {wall_id}")
    return wall


@caching.cached(List[schemas.Wall], lambda session: keys.collection(ENTITY))
def list_walls(session: Session) -> List[schemas.Wall]:
    return [wall.schema for wall in session.query(models.Wall).order_by(models.Wall.name).all()]


@caching.cached(schemas.Wall, lambda session, wall_id: keys.entity(ENTITY, wall_id))
def get_wall(session: Session, wall_id: uuid.UUID) -> schemas.Wall:
    return load(session, wall_id).schema


@caching.invalidates(ENTITY)
def create_wall(session: Session, data: schemas.WallCreation) -> schemas.Wall:
    wall = models.Wall(id=uuid.uuid4(), **data.model_dump())
    session.add(wall)
    session.commit()
    logger.info(f"Created {wall!r}")
    return wall.schema


@caching.invalidates(ENTITY)
def update_wall(session: Session, wall_id: uuid.UUID, data: schemas.WallUpdate) -> schemas.Wall:
    wall = load(session, wall_id)
    for key, value in data.model_dump().items():
        setattr(wall, key, value)
    wall.updated_at = models.utcnow()
    session.commit()
    logger.info(f"Updated {wall!r}")
    return wall.schema


@caching.invalidates(ENTITY)
def delete_wall(session: Session, wall_id: uuid.UUID):
    session.delete(load(session, wall_id))
    session.commit()
