"""
Commands and queries for people and their roles
"""

import uuid
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import roles
from .. import caching, schemas
from ..api.base import BadRequest, NotFound
from ..caching import keys
from ..persistence import models, versioning


logger = logging.getLogger(__name__)

ENTITY = "person"


def load(session: Session, person_id: uuid.UUID) -> models.Person:
    person = session.get(models.Person, person_id)
    if person is None:
        raise NotFound(f"Person with ID {person_id}")
    return person


def _resolve_roles(session: Session, role_ids: List[uuid.UUID]) -> List[models.Role]:
    """
    Load all roles of the given IDs, rejecting unknown IDs with ``BadRequest``
    """

    unique_ids = list(dict.fromkeys(role_ids))
    if not unique_ids:
        return []
    found = session.query(models.Role).filter(models.Role.id.in_(unique_ids)).all()
    missing = set(unique_ids) - {role.id for role in found}
    if missing:
        raise BadRequest(
            "At least one of the given roles doesn't exist.",
            f"unknown role IDs: {', '.join(sorted(map(str, missing)))}"
        )
    return found


@caching.cached(List[schemas.Person], lambda session: keys.collection(ENTITY))
def list_people(session: Session) -> List[schemas.Person]:
    return [person.schema for person in session.query(models.Person).order_by(models.Person.full_name).all()]


@caching.cached(schemas.Person, lambda session, person_id: keys.entity(ENTITY, person_id))
def get_person(session: Session, person_id: uuid.UUID) -> schemas.Person:
    return load(session, person_id).schema


@caching.invalidates(ENTITY)
def create_person(session: Session, data: schemas.PersonCreation) -> schemas.Person:
    person = models.Person(
        id=uuid.uuid4(),
        full_name=data.full_name,
        phone=data.phone,
        roles=_resolve_roles(session, data.role_ids),
        row_version=versioning.generate_initial_version()
    )
    session.add(person)
    session.commit()
    logger.info(f"Created {person!r} with {len(person.roles)} roles")
    return person.schema


@caching.invalidates(ENTITY)
def update_person(session: Session, person_id: uuid.UUID, data: schemas.PersonUpdate) -> schemas.Person:
    """
    Update a tracked person in place, optionally replacing all of its roles

    A ``role_ids`` value of ``None`` keeps the current roles, while a list
    (even an empty one) replaces them. The row version is renewed in any
    case, so that concurrent role changes are detected as well.

    :raises NotFound: when the person doesn't exist
    :raises BadRequest: when one of the given roles doesn't exist
    :raises ConcurrencyConflict: when the person was modified concurrently
    """

    person = load(session, person_id)
    versioning.check(person, data.row_version)
    if data.role_ids is not None:
        person.roles = _resolve_roles(session, data.role_ids)
    person.full_name = data.full_name
    person.phone = data.phone
    person.updated_at = models.utcnow()
    versioning.stamp(person)
    versioning.commit(session, person)
    logger.info(f"Updated {person!r}")
    return person.schema


@caching.invalidates(ENTITY)
def delete_person(session: Session, person_id: uuid.UUID):
    person = load(session, person_id)
    session.delete(person)
    versioning.commit(session, person)


def search_people_by_name(session: Session, name: Optional[str]) -> List[schemas.Person]:
    """
    Return all people whose full name contains the given text, ignoring the case

    :raises BadRequest: when the search text is empty
    """

    if name is None or not name.strip():
        raise BadRequest("The name to search for must not be empty.")
    query = session.query(models.Person).filter(
        func.lower(models.Person.full_name).contains(name.strip().lower(), autoescape=True)
    )
    return [person.schema for person in query.order_by(models.Person.full_name).all()]


def find_people_by_role(session: Session, role_name: Optional[str]) -> List[schemas.Person]:
    """
    Return all people who have the role of the given name (ignoring the case)

    An unknown role yields an empty list instead of an error.
    """

    if role_name is None or not role_name.strip():
        raise BadRequest("The role name must not be empty.")
    try:
        role = roles.get_role_by_name(session, role_name)
    except NotFound:
        return []
    query = session.query(models.Person).filter(models.Person.roles.any(models.Role.id == role.id))
    return [person.schema for person in query.order_by(models.Person.full_name).all()]


def get_person_with_roles(session: Session, person_id: uuid.UUID) -> schemas.PersonWithRoles:
    return load(session, person_id).schema_with_roles


def count_people(session: Session) -> schemas.Count:
    return schemas.Count(count=session.query(models.Person).count())


def has_people_with_role(session: Session, role_name: Optional[str]) -> bool:
    return len(find_people_by_role(session, role_name)) > 0
