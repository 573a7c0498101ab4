"""
CRUD core router module for /windows requests
"""

import uuid
import logging
from typing import List

from fastapi import Depends, Response

from ._router import router
from ..dependency import LocalRequestData
from .. import helpers, versioning
from ...misc.notifier import Callback
from ...services import windows
from ... import schemas


logger = logging.getLogger(__name__)


@router.get("/windows", tags=["Windows"], response_model=List[schemas.Window])
@versioning.versions(1)
async def get_all_windows(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return a list of all windows
    """

    return helpers.return_one(windows.list_windows(local.session), local)


@router.get(
    "/windows/{window_id}",
    tags=["Windows"],
    response_model=schemas.Window,
    responses={404: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def get_window(window_id: uuid.UUID, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the window identified by its ID
    """

    return helpers.return_one(windows.get_window(local.session, window_id), local)


@router.post("/windows", tags=["Windows"], status_code=201, response_model=schemas.Window)
@versioning.versions(1)
async def create_new_window(data: schemas.WindowCreation, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Create a new window
    """

    window = windows.create_window(local.session, data)
    Callback.push(schemas.EventType.WINDOW_CREATED, {"id": str(window.id)})
    return helpers.return_created(window, f"/windows/{window.id}", local, logger)


@router.put(
    "/windows/{window_id}",
    tags=["Windows"],
    status_code=204,
    response_class=Response,
    responses={k: {"model": schemas.APIError} for k in (404, 412)}
)
@versioning.versions(1)
async def update_existing_window(
        window_id: uuid.UUID,
        data: schemas.WindowUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Replace all properties of an existing window

    * `404`: if the window doesn't exist
    * `412`: if the `If-Match` header doesn't match the current window
    """

    helpers.check_precondition(windows.get_window(local.session, window_id), local)
    windows.update_window(local.session, window_id, data)
    Callback.push(schemas.EventType.WINDOW_UPDATED, {"id": str(window_id)})
    return helpers.no_content()


@router.delete(
    "/windows/{window_id}",
    tags=["Windows"],
    status_code=204,
    response_class=Response,
    responses={k: {"model": schemas.APIError} for k in (404, 412)}
)
@versioning.versions(1)
async def delete_existing_window(window_id: uuid.UUID, local: LocalRequestData = Depends(LocalRequestData)):
    helpers.check_precondition(windows.get_window(local.session, window_id), local)
    windows.delete_window(local.session, window_id)
    Callback.push(schemas.EventType.WINDOW_DELETED, {"id": str(window_id)})
    return helpers.no_content()
