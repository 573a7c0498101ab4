"""
CRUD core router module for /roles requests
"""

import uuid
import logging
from typing import List

from fastapi import Depends, Response

from ._router import router
from ..dependency import AdminRequestData, LocalRequestData
from .. import helpers, versioning
from ...misc.notifier import Callback
from ...services import roles
from ... import schemas


logger = logging.getLogger(__name__)


@router.get("/roles", tags=["Roles"], response_model=List[schemas.Role])
@versioning.versions(1)
async def get_all_roles(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return a list of all roles ordered by their names
    """

    return helpers.return_one(roles.list_roles(local.session), local)


@router.get(
    "/roles/{role_id}",
    tags=["Roles"],
    response_model=schemas.Role,
    responses={404: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def get_role(role_id: uuid.UUID, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the role identified by its ID

    * `404`: if the role doesn't exist
    """

    return helpers.return_one(roles.get_role(local.session, role_id), local)


@router.post(
    "/roles",
    tags=["Roles"],
    status_code=201,
    response_model=schemas.Role,
    responses={k: {"model": schemas.APIError} for k in (403, 409)}
)
@versioning.versions(1)
async def create_new_role(data: schemas.RoleCreation, local: AdminRequestData = Depends(AdminRequestData)):
    """
    Create a new role (administrators only)

    * `409`: if a role with that name (ignoring the case) already exists
    """

    role = roles.create_role(local.session, data)
    Callback.push(schemas.EventType.ROLE_CREATED, {"id": str(role.id)})
    return helpers.return_created(role, f"/roles/{role.id}", local, logger)


@router.put(
    "/roles/{role_id}",
    tags=["Roles"],
    status_code=204,
    response_class=Response,
    responses={k: {"model": schemas.APIError} for k in (403, 404, 409, 412)}
)
@versioning.versions(1)
async def update_existing_role(
        role_id: uuid.UUID,
        data: schemas.RoleUpdate,
        local: AdminRequestData = Depends(AdminRequestData)
):
    """
    Replace the name and the description of an existing role (administrators only)

    * `404`: if the role doesn't exist
    * `409`: if the name is already taken or the `row_version` is outdated
    * `412`: if the `If-Match` header doesn't match the current role
    """

    helpers.check_precondition(roles.get_role(local.session, role_id), local)
    roles.update_role(local.session, role_id, data)
    Callback.push(schemas.EventType.ROLE_UPDATED, {"id": str(role_id)})
    return helpers.no_content()


@router.delete(
    "/roles/{role_id}",
    tags=["Roles"],
    status_code=204,
    response_class=Response,
    responses={k: {"model": schemas.APIError} for k in (403, 404, 412)}
)
@versioning.versions(1)
async def delete_existing_role(role_id: uuid.UUID, local: AdminRequestData = Depends(AdminRequestData)):
    """
    Delete an existing role, removing it from all people (administrators only)

    * `404`: if the role doesn't exist
    * `412`: if the `If-Match` header doesn't match the current role
    """

    helpers.check_precondition(roles.get_role(local.session, role_id), local)
    roles.delete_role(local.session, role_id)
    Callback.push(schemas.EventType.ROLE_DELETED, {"id": str(role_id)})
    return helpers.no_content()
