"""
Optimistic concurrency control for versioned database models

Versioned models carry a ``row_version`` column which is used as the
``version_id_col`` of the SQLAlchemy mapper with application-supplied
values. Every UPDATE of such a row is restricted to the version that
was loaded into the session (``WHERE row_version = <old>``) and sets a
freshly generated version. If the row was changed by someone else in
the meantime, no row matches and the flush raises ``StaleDataError``.

Since the mapper doesn't generate versions on its own, every update
path must call ``stamp`` on the tracked object before committing. This
also covers changes that only touch association tables (e.g. the roles
of a person): without a stamp, no UPDATE of the parent row would be
issued and concurrent writers of the same entity would not be noticed.
"""

import uuid
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError


logger = logging.getLogger(__name__)

MAPPER_ARGS = {"version_id_generator": False}


class ConcurrencyConflict(Exception):
    """
    Exception raised when a versioned entity was modified by another party
    """

    def __init__(self, entity: Any, detail: Optional[str] = None):
        super().__init__(detail or f"{type(entity).__name__} was modified concurrently")
        self.entity_name = type(entity).__name__
        self.detail = detail or ""


def generate_initial_version() -> bytes:
    return uuid.uuid4().bytes


def generate_new_version() -> bytes:
    return uuid.uuid4().bytes


def stamp(obj: Any) -> bytes:
    """
    Assign a new row version to the tracked object and return it
    """

    version = generate_new_version()
    obj.row_version = version
    return version


def check(obj: Any, expected: Optional[bytes]) -> bool:
    """
    Compare the row version known by the client with the current version of the object

    :param obj: tracked database model with a ``row_version`` attribute
    :param expected: row version as sent by the client (the check is skipped if ``None``)
    :return: ``True`` if both versions are equal or the check was skipped
    :raises ConcurrencyConflict: when the client's version is outdated
    """

    if expected is None:
        return True
    if obj.row_version != expected:
        logger.info(f"Rejected outdated row version for {obj!r}")
        raise ConcurrencyConflict(
            obj,
            f"Expected row version {expected.hex()}, found {(obj.row_version or b'').hex()}"
        )
    return True


def commit(session: Session, obj: Any):
    """
    Commit the session, turning stale version errors into ``ConcurrencyConflict``

    :raises ConcurrencyConflict: when the flush didn't match the loaded row version
    """

    description = repr(obj)
    try:
        session.commit()
    except StaleDataError as exc:
        session.rollback()
        logger.info(f"Concurrent modification detected for {description}: {exc}")
        raise ConcurrencyConflict(obj, str(exc)) from exc
