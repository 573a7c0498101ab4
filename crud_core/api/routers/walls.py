"""
CRUD core router module for /walls requests
"""

import uuid
import logging
from typing import List

from fastapi import Depends, Response

from ._router import router
from ..dependency import LocalRequestData
from .. import helpers, versioning
from ...misc.notifier import Callback
from ...services import walls
from ... import schemas


logger = logging.getLogger(__name__)


@router.get("/walls", tags=["Walls"], response_model=List[schemas.Wall])
@versioning.versions(1)
async def get_all_walls(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return a list of all walls
    """

    return helpers.return_one(walls.list_walls(local.session), local)


@router.get("/walls/{wall_id}", tags=["Walls"], response_model=schemas.Wall, responses={404: {"model": schemas.APIError}})
@versioning.versions(1)
async def get_wall(wall_id: uuid.UUID, local: LocalRequestData = Depends(LocalRequestData)):
    return helpers.return_one(walls.get_wall(local.session, wall_id), local)


@router.post("/walls", tags=["Walls"], status_code=201, response_model=schemas.Wall)
@versioning.versions(1)
async def create_new_wall(data: schemas.WallCreation, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Create a new wall
    """

    wall = walls.create_wall(local.session, data)
    Callback.push(schemas.EventType.WALL_CREATED, {"id": str(wall.id)})
    return helpers.return_created(wall, f"/walls/{wall.id}", local, logger)


@router.put(
    "/walls/{wall_id}",
    tags=["Walls"],
    status_code=204,
    response_class=Response,
    responses={k: {"model": schemas.APIError} for k in (404, 412)}
)
@versioning.versions(1)
async def update_existing_wall(
        wall_id: uuid.UUID,
        data: schemas.WallUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Replace all properties of an existing wall

    * `404`: if the wall doesn't exist
    * `412`: if the `If-Match` header doesn't match the current wall
    """

    helpers.check_precondition(walls.get_wall(local.session, wall_id), local)
    walls.update_wall(local.session, wall_id, data)
    Callback.push(schemas.EventType.WALL_UPDATED, {"id": str(wall_id)})
    return helpers.no_content()


@router.delete(
    "/walls/{wall_id}",
    tags=["Walls"],
    status_code=204,
    response_class=Response,
    responses={k: {"model": schemas.APIError} for k in (404, 412)}
)
@versioning.versions(1)
async def delete_existing_wall(wall_id: uuid.UUID, local: LocalRequestData = Depends(LocalRequestData)):
    helpers.check_precondition(walls.get_wall(local.session, wall_id), local)
    walls.delete_wall(local.session, wall_id)
    Callback.push(schemas.EventType.WALL_DELETED, {"id": str(wall_id)})
    return helpers.no_content()
