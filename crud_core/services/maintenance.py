"""
Maintenance commands to reset, seed and inspect the database of development and testing deployments
"""

import uuid
import logging

from sqlalchemy.orm import Session

from .. import caching, schemas
from ..persistence import database, models, versioning


logger = logging.getLogger(__name__)

SEED_ROLES = [
    ("Administrator", "System administrator with full access"),
    ("User", "Standard user with limited access"),
    ("Guest", "Guest user with read-only access")
]

SEED_PEOPLE = ["John Doe", "Jane Smith"]


@caching.invalidates("role", "person", "wall", "window")
def reset_database(session: Session):
    """
    Delete all rows of all tables, including user accounts and their tokens
    """

    database.reset(session)


@caching.invalidates("role", "person")
def seed_database(session: Session) -> schemas.DatabaseStats:
    """
    Add the default roles and people to the database, if their tables are empty
    """

    if session.query(models.Role).count() == 0:
        for name, description in SEED_ROLES:
            session.add(models.Role(
                id=uuid.uuid4(),
                name=name,
                description=description,
                row_version=versioning.generate_initial_version()
            ))
        logger.debug(f"Added {len(SEED_ROLES)} seed roles")
    if session.query(models.Person).count() == 0:
        for full_name in SEED_PEOPLE:
            session.add(models.Person(
                id=uuid.uuid4(),
                full_name=full_name,
                row_version=versioning.generate_initial_version()
            ))
        logger.debug(f"Added {len(SEED_PEOPLE)} seed people")
    session.commit()
    return get_database_stats(session)


def get_database_stats(session: Session) -> schemas.DatabaseStats:
    return schemas.DatabaseStats(
        roles=session.query(models.Role).count(),
        people=session.query(models.Person).count(),
        walls=session.query(models.Wall).count(),
        windows=session.query(models.Window).count(),
        users=session.query(models.User).count()
    )
