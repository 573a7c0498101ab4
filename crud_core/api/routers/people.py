"""
CRUD core router module for /people requests

The routes below ``/people/queries`` must be registered before the
routes with a ``{person_id}`` path parameter, since the router matches
the paths in the order of their registration.
"""

import uuid
import logging
from typing import List, Optional

import pydantic
from fastapi import Depends, Response

from ._router import router
from ..dependency import LocalRequestData
from .. import helpers, versioning
from ...misc.notifier import Callback
from ...services import people
from ... import schemas


logger = logging.getLogger(__name__)


##################
# PEOPLE QUERIES #
##################


@router.get(
    "/people/queries/search",
    tags=["People queries"],
    response_model=List[schemas.Person],
    responses={400: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def search_people_by_name(
        name: Optional[pydantic.constr(max_length=200)] = None,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return all people whose full name contains the given text (ignoring the case)

    * `400`: if the name is missing or empty
    """

    return helpers.return_one(people.search_people_by_name(local.session, name), local)


@router.get(
    "/people/queries/by-role",
    tags=["People queries"],
    response_model=List[schemas.Person],
    responses={400: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def find_people_by_role(
        role_name: Optional[pydantic.constr(max_length=100)] = None,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return all people who have the role of the given name (an unknown role yields an empty list)

    * `400`: if the role name is missing or empty
    """

    return helpers.return_one(people.find_people_by_role(local.session, role_name), local)


@router.get(
    "/people/queries/has-role",
    tags=["People queries"],
    response_model=bool,
    responses={400: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def has_people_with_role(
        role_name: Optional[pydantic.constr(max_length=100)] = None,
        local: LocalRequestData = Depends(LocalRequestData)
):
    return people.has_people_with_role(local.session, role_name)


@router.get("/people/queries/count", tags=["People queries"], response_model=schemas.Count)
@versioning.versions(1)
async def count_people(local: LocalRequestData = Depends(LocalRequestData)):
    return people.count_people(local.session)


@router.get(
    "/people/queries/{person_id}/with-roles",
    tags=["People queries"],
    response_model=schemas.PersonWithRoles,
    responses={404: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def get_person_with_roles(person_id: uuid.UUID, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the person identified by its ID together with the full details of its roles

    * `404`: if the person doesn't exist
    """

    return helpers.return_one(people.get_person_with_roles(local.session, person_id), local)


##########
# PEOPLE #
##########


@router.get("/people", tags=["People"], response_model=List[schemas.Person])
@versioning.versions(1)
async def get_all_people(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return a list of all people ordered by their full names
    """

    return helpers.return_one(people.list_people(local.session), local)


@router.get(
    "/people/{person_id}",
    tags=["People"],
    response_model=schemas.Person,
    responses={404: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def get_person(person_id: uuid.UUID, local: LocalRequestData = Depends(LocalRequestData)):
    return helpers.return_one(people.get_person(local.session, person_id), local)


@router.post(
    "/people",
    tags=["People"],
    status_code=201,
    response_model=schemas.Person,
    responses={400: {"model": schemas.APIError}}
)
@versioning.versions(1)
async def create_new_person(data: schemas.PersonCreation, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Create a new person with any number of existing roles

    * `400`: if one of the given roles doesn't exist
    """

    person = people.create_person(local.session, data)
    Callback.push(schemas.EventType.PERSON_CREATED, {"id": str(person.id)})
    return helpers.return_created(person, f"/people/{person.id}", local, logger)


@router.put(
    "/people/{person_id}",
    tags=["People"],
    status_code=204,
    response_class=Response,
    responses={k: {"model": schemas.APIError} for k in (400, 404, 409, 412)}
)
@versioning.versions(1)
async def update_existing_person(
        person_id: uuid.UUID,
        data: schemas.PersonUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Update an existing person

    Omitting `role_ids` (or sending `null`) keeps the current roles of
    the person, while a list replaces them. The `row_version` should be
    the one of the last retrieved state of the person. If somebody else
    modified the person in the meantime, the update is rejected.

    * `400`: if one of the given roles doesn't exist
    * `404`: if the person doesn't exist
    * `409`: if the `row_version` is outdated or a concurrent update won the race
    * `412`: if the `If-Match` header doesn't match the current person
    """

    helpers.check_precondition(people.get_person(local.session, person_id), local)
    people.update_person(local.session, person_id, data)
    Callback.push(schemas.EventType.PERSON_UPDATED, {"id": str(person_id)})
    return helpers.no_content()


@router.delete(
    "/people/{person_id}",
    tags=["People"],
    status_code=204,
    response_class=Response,
    responses={k: {"model": schemas.APIError} for k in (404, 412)}
)
@versioning.versions(1)
async def delete_existing_person(person_id: uuid.UUID, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Delete an existing person

    * `404`: if the person doesn't exist
    * `412`: if the `If-Match` header doesn't match the current person
    """

    helpers.check_precondition(people.get_person(local.session, person_id), local)
    people.delete_person(local.session, person_id)
    Callback.push(schemas.EventType.PERSON_DELETED, {"id": str(person_id)})
    return helpers.no_content()
