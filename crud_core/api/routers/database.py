"""
CRUD core router module for /database requests of development and testing deployments
"""

import logging

from fastapi import Depends

from ._router import router
from ..base import NotFound
from ..dependency import MinimalRequestData
from .. import versioning
from ...misc.notifier import Callback
from ...services import maintenance
from ... import schemas


logger = logging.getLogger(__name__)

MAINTENANCE_ENVIRONMENTS = ("development", "testing")


def _ensure_maintenance_allowed(local: MinimalRequestData):
    if local.config.server.environment not in MAINTENANCE_ENVIRONMENTS:
        logger.warning(f"Rejected database maintenance request in {local.config.server.environment!r} environment")
        raise NotFound(local.request.url.path)


@router.post(
    "/database/reset",
    tags=["Database"],
    response_model=schemas.Message,
    responses={k: {"model": schemas.APIError} for k in (404, 429)}
)
@versioning.versions(1)
async def reset_database(local: MinimalRequestData = Depends(MinimalRequestData)):
    """
    Delete all data including all user accounts (development and testing environments only)

    * `404`: in any other environment
    """

    _ensure_maintenance_allowed(local)
    maintenance.reset_database(local.session)
    Callback.push(schemas.EventType.DATABASE_RESET)
    return schemas.Message(message="Database reset successfully")


@router.post(
    "/database/seed",
    tags=["Database"],
    response_model=schemas.DatabaseStats,
    responses={404: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def seed_database(local: MinimalRequestData = Depends(MinimalRequestData)):
    """
    Add the default roles and people if their tables are empty (development and testing environments only)

    * `404`: in any other environment
    """

    _ensure_maintenance_allowed(local)
    return maintenance.seed_database(local.session)


@router.get(
    "/database/stats",
    tags=["Database"],
    response_model=schemas.DatabaseStats,
    responses={404: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def get_database_stats(local: MinimalRequestData = Depends(MinimalRequestData)):
    _ensure_maintenance_allowed(local)
    return maintenance.get_database_stats(local.session)
