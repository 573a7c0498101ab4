"""
Commands and queries for roles
"""

import uuid
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import caching, schemas
from ..api.base import Conflict, NotFound
from ..caching import keys
from ..persistence import models, versioning


logger = logging.getLogger(__name__)

ENTITY = "role"


def load(session: Session, role_id: uuid.UUID) -> models.Role:
    role = session.get(models.Role, role_id)
    if role is None:
        raise NotFound(f"Role with ID {role_id}")
    return role


def _ensure_unique_name(session: Session, name: str, exclude: Optional[uuid.UUID] = None):
    query = session.query(models.Role).filter(func.lower(models.Role.name) == name.lower())
    if exclude is not None:
        query = query.filter(models.Role.id != exclude)
    if query.first() is not None:
        raise Conflict(f"A role named {name!r} already exists.", f"name={name!r}")


@caching.cached(List[schemas.Role], lambda session: keys.collection(ENTITY))
def list_roles(session: Session) -> List[schemas.Role]:
    return [role.schema for role in session.query(models.Role).order_by(models.Role.name).all()]


@caching.cached(schemas.Role, lambda session, role_id: keys.entity(ENTITY, role_id))
def get_role(session: Session, role_id: uuid.UUID) -> schemas.Role:
    return load(session, role_id).schema


@caching.cached(schemas.Role, lambda session, name: keys.by_name(ENTITY, name))
def get_role_by_name(session: Session, name: str) -> schemas.Role:
    role = session.query(models.Role).filter(func.lower(models.Role.name) == name.strip().lower()).first()
    if role is None:
        raise NotFound(f"Role named {name}")
    return role.schema


@caching.invalidates(ENTITY)
def create_role(session: Session, data: schemas.RoleCreation) -> schemas.Role:
    _ensure_unique_name(session, data.name)
    role = models.Role(
        id=uuid.uuid4(),
        name=data.name,
        description=data.description,
        row_version=versioning.generate_initial_version()
    )
    session.add(role)
    session.commit()
    logger.info(f"Created {role!r}")
    return role.schema


@caching.invalidates(ENTITY, "person")
def update_role(session: Session, role_id: uuid.UUID, data: schemas.RoleUpdate) -> schemas.Role:
    """
    Replace name and description of a role, rejecting outdated row versions

    :raises NotFound: when the role doesn't exist
    :raises Conflict: when the new name is already taken
    :raises ConcurrencyConflict: when the role was modified concurrently
    """

    role = load(session, role_id)
    versioning.check(role, data.row_version)
    _ensure_unique_name(session, data.name, exclude=role.id)
    role.name = data.name
    role.description = data.description
    role.updated_at = models.utcnow()
    versioning.stamp(role)
    versioning.commit(session, role)
    logger.info(f"Updated {role!r}")
    return role.schema


@caching.invalidates(ENTITY, "person")
def delete_role(session: Session, role_id: uuid.UUID):
    role = load(session, role_id)
    logger.debug(f"Deleting {role!r} assigned to {len(role.people)} people...")
    session.delete(role)
    versioning.commit(session, role)
