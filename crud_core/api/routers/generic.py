"""
CRUD core router module for generic functionalities
"""

import time
import datetime

import pydantic
from fastapi import Depends

from ._router import router
from ..dependency import MinimalRequestData
from .. import versioning
from ... import schemas, __version__


@router.get("/health", tags=["Generic"], response_model=pydantic.BaseModel)
@versioning.versions(1)
async def verify_running_backend(_: MinimalRequestData = Depends(MinimalRequestData)):
    """
    Return 200 OK with an empty object as body to only verify that the service and the middlewares work
    """

    return {}


@router.get("/status", tags=["Generic"], response_model=schemas.Status)
@versioning.versions(1)
async def get_status(local: MinimalRequestData = Depends(MinimalRequestData)):
    """
    Return some information about the current status of the server
    """

    major, minor, micro = (int(part) for part in __version__.split(".")[:3])
    return schemas.Status(
        api_version=1,
        project_version=schemas.VersionInfo(major=major, minor=minor, micro=micro),
        environment=local.config.server.environment,
        localtime=datetime.datetime.now(),
        timestamp=int(time.time())
    )
