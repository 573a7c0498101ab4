"""
CRUD core REST API base library
"""

import logging
from typing import Any, Dict, List, Optional, Union

import pydantic
import sqlalchemy.exc
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import schemas
from ..persistence.versioning import ConcurrencyConflict


logger = logging.getLogger(__name__)

ModelType = Union[pydantic.BaseModel, List[pydantic.BaseModel]]


class APIWithoutValidationError(FastAPI):
    """
    FastAPI class that excludes 422 validation error responses in OpenAPI schema
    """

    def openapi(self) -> Dict[str, Any]:
        if not self.openapi_schema:
            self.openapi_schema = get_openapi(
                title=self.title,
                version=self.version,
                openapi_version=self.openapi_version,
                description=self.description,
                terms_of_service=self.terms_of_service,
                contact=self.contact,
                license_info=self.license_info,
                routes=self.routes,
                tags=self.openapi_tags,
                servers=self.servers,
            )
            for path, operations in self.openapi_schema["paths"].items():
                for method, metadata in operations.items():
                    metadata["responses"].pop("422", None)
        return self.openapi_schema


def error_response(
        request: Request,
        status_code: int,
        message: str,
        details: str,
        repeat: bool = False,
        headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=repeat,
        message=message,
        details=details
    )), status_code=status_code, headers=headers)


async def handle_generic_exception(request: Request, _: Exception):
    logger.exception("Unhandled exception caught in base exception handler!")
    msg = "Unexpected server error. The requested action wasn't completed successfully."
    return error_response(request, 500, msg, "")


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    msgs = "\n".join(
        ["\t" + ".".join(map(str, error.get("loc", ()))) + ": " + error["msg"] for error in exc.errors()]
    )
    message = f"Failed to process the request:\n{msgs}"
    return error_response(request, 400, message, str(exc.errors()), repeat=True)


async def handle_concurrency_conflict(request: Request, exc: ConcurrencyConflict):
    logger.info(f"Concurrency conflict @ '{request.method} {request.url.path}': {exc.detail}")
    return error_response(
        request,
        409,
        f"The {exc.entity_name.lower()} was modified by someone else. Reload it and try again.",
        exc.detail
    )


async def handle_stale_data_error(request: Request, exc: StaleDataError):
    logger.warning(f"Unhandled stale data @ '{request.method} {request.url.path}': {exc}")
    return error_response(request, 409, "The resource was modified by someone else. Reload it and try again.", str(exc))


async def handle_integrity_error(request: Request, exc: sqlalchemy.exc.IntegrityError):
    logger.warning(f"Integrity error @ '{request.method} {request.url.path}': {exc.orig}")
    return error_response(request, 409, "The request violates a database constraint.", str(exc.orig))


class APIException(HTTPException):
    """
    Base class for any kind of generic API exception
    """

    def __init__(
            self,
            status_code: int,
            detail: Optional[str],
            repeat: bool = False,
            message: Optional[str] = None,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.repeat = repeat
        self.message = message

    @classmethod
    async def handle(cls, request: Request, exc: StarletteHTTPException) -> Response:
        """
        Handle exceptions in a generic way to produce APIError models
        """

        status_code = getattr(exc, "status_code", 500)
        repeat = getattr(exc, "repeat", False)
        message = getattr(exc, "message", None) or exc.detail or exc.__class__.__name__

        if not isinstance(exc, StarletteHTTPException):
            logger.error("Invalid exception class for base handler")

        logger.debug(
            f"{type(exc).__name__}: {message} @ '{request.method} "
            f"{request.url.path}' (details: {exc.detail})"
        )
        if status_code == 304:
            return Response(status_code=304, headers=getattr(exc, "headers", None))
        return error_response(
            request,
            status_code,
            message,
            str(exc.detail or ""),
            repeat=repeat,
            headers=getattr(exc, "headers", None)
        )


class NotModified(APIException):
    """
    Exception used to answer conditional requests if the client's copy is up-to-date
    """

    def __init__(self, resource: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=304,
            detail=resource,
            repeat=False,
            message="Not Modified",
            headers=headers
        )


class BadRequest(APIException):
    """
    Exception when the user probably messed something up

    The `message` field must be user-friendly and not too informative!
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=400,
            detail=detail,
            repeat=True,
            message=message
        )


class Unauthorized(APIException):
    """
    Exception when the request lacks valid authentication credentials
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=401,
            detail=detail,
            repeat=False,
            message=message,
            headers={"WWW-Authenticate": "Bearer"}
        )


class Forbidden(APIException):
    """
    Exception when the authenticated user is not allowed to perform the operation
    """

    def __init__(self, message: str = "Insufficient privileges for this operation.", detail: Optional[str] = None):
        super().__init__(
            status_code=403,
            detail=detail,
            repeat=False,
            message=message
        )


class NotFound(APIException):
    """
    Exception when a requested resource was not found in the system
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=404,
            detail=detail,
            repeat=False,
            message=f"{str(resource)!r} was not found."
        )


class Conflict(APIException):
    """
    Exception for invalid states, concurrent manipulations or other data clashes
    """

    def __init__(self, message: str, detail: Optional[str] = None, repeat: bool = False):
        super().__init__(
            status_code=409,
            detail=detail,
            repeat=repeat,
            message=message
        )


class PreconditionFailed(APIException):
    """
    Exception when the conditional headers of a request don't match the current resource
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=412,
            detail=detail,
            repeat=False,
            message=f"Precondition failed for {str(resource)!r}. Reload the resource and try again."
        )


class TooManyRequests(APIException):
    """
    Exception when a client exceeded the rate limit of an endpoint
    """

    def __init__(self, retry_after: int, detail: Optional[str] = None):
        super().__init__(
            status_code=429,
            detail=detail,
            repeat=True,
            message="Rate limit exceeded. Please try again later.",
            headers={"Retry-After": str(retry_after)}
        )

