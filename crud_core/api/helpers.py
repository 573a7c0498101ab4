"""
Generic helper library for the core REST API
"""

import logging
from typing import Optional

import pydantic
from fastapi.responses import Response

from .base import ModelType
from .dependency import MinimalRequestData
from ..misc.logger import enforce_logger


def return_one(model: ModelType, local: MinimalRequestData) -> ModelType:
    """
    Return the model after adding the caching headers (or answer ``304 Not Modified``)

    :param model: schema of the resource (or a list of schemas for collections)
    :param local: contextual local data
    :return: the unchanged model
    :raises NotModified: when the conditional request headers match the model
    """

    return local.etag.respond(local.response, model)


def check_precondition(current: ModelType, local: MinimalRequestData) -> bool:
    """
    Ensure that the optional preconditions of a modifying request match the current resource

    :raises PreconditionFailed: when `If-Match` or `If-Unmodified-Since` don't match
    """

    return local.etag.compare(current)


def return_created(
        model: pydantic.BaseModel,
        location: str,
        local: MinimalRequestData,
        logger: Optional[logging.Logger] = None
) -> pydantic.BaseModel:
    """
    Return a newly created resource, pointing the `Location` header to it

    :param model: schema of the new resource
    :param location: path of the new resource relative to the API version prefix (e.g. ``/roles/<id>``)
    :param local: contextual local data
    :param logger: optional logger that should be used for DEBUG messages
    :return: the unchanged model
    """

    root_path = local.request.scope.get("root_path", "").rstrip("/")
    local.response.headers["Location"] = f"{root_path}{location}"
    tag = local.etag.make_etag(model)
    if tag is not None:
        local.response.headers["ETag"] = f'"{tag}"'
    enforce_logger(logger).debug(f"Created resource at {location!r}")
    return model


def no_content() -> Response:
    return Response(status_code=204)
