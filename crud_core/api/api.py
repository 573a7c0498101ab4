"""
Combined CRUD core REST API definitions

This API may provide multiple versions of certain endpoints.
Take a look into the different API definitions to see which
functionality they provide. The versioned APIs are available
below their prefix, e.g. ``/v1`` for the first version.
"""

import contextlib
import logging.config
from typing import Any, Callable, Dict, Optional, Type, Union

import fastapi
import sqlalchemy.exc
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import auth, base, versioning
from .ratelimit import FixedWindowRateLimiter
from .routers import router
from .. import caching, schemas, __version__
from ..misc import emails, notifier
from ..persistence import database
from ..persistence.versioning import ConcurrencyConflict
from ..settings import Settings


DEFAULT_EXCEPTION_HANDLERS = {
    StarletteHTTPException: base.APIException.handle,
    RequestValidationError: base.handle_request_validation_error,
    ConcurrencyConflict: base.handle_concurrency_conflict,
    StaleDataError: base.handle_stale_data_error,
    sqlalchemy.exc.IntegrityError: base.handle_integrity_error,
    Exception: base.handle_generic_exception
}


API_V1_DOC = """CRUD core REST API definition version 1

This API manages people, their roles, walls and windows. Apart from the
health and status endpoints, the authentication endpoints and the
database maintenance endpoints, it requires authentication using JSON
web tokens. Logging in with email and password (see `POST /auth/login`)
or registering a new account (see `POST /auth/register`) yields an
access token that should be included in the `Authorization` header with
the type `Bearer`. Access tokens are short-lived, a new one can be
requested using the refresh token (see `POST /auth/refresh`). Reading
any resource requires any authenticated user, modifying roles requires
the `Admin` role.

The API tries to always return JSON-encoded data to any kind of request,
if return data is necessary for that response. All error responses use
the schema of the `APIError`. Successful creations are answered with
`201` (Created) and carry the `Location` of the new resource, successful
updates and deletions are answered with `204` (No Content).

This API supports conditional HTTP requests. Every resource delivered
by a `GET` request carries the `ETag`, `Last-Modified` and `Cache-Control`
header fields. Sending a known tag via `If-None-Match` (or a date via
`If-Modified-Since`) yields `304` (Not Modified) if the resource didn't
change. Modifying requests may carry `If-Match` (or `If-Unmodified-Since`)
to prevent lost updates: if the resource changed in the meantime, they
are rejected with `412` (Precondition Failed). Take a look into RFC 7232
for more information. People and roles are additionally protected by
their `row_version`, which should be sent along their updates: outdated
versions and concurrent modifications are rejected with `409` (Conflict).

The following `4xx` error responses are used in the API code:

1. `400` (Bad Request): invalid requests, e.g. failed validation of the
   request body or references to unknown roles. The `message` field is
   usually adequate to be shown to end users.
2. `401` (Unauthorized): missing, expired or otherwise invalid access
   tokens, invalid credentials or locked accounts.
3. `403` (Forbidden): the authenticated user lacks the required role.
4. `404` (Not Found): the requested resource doesn't exist.
5. `409` (Conflict): constraint violations (e.g. duplicate role names)
   and concurrent modifications.
6. `412` (Precondition Failed): conditional request header mismatch.
7. `429` (Too Many Requests): the rate limit of an endpoint has been
   exceeded, see the `Retry-After` header for the seconds to wait.

Take a look at the individual methods and endpoints for more information.
"""


def _make_app(
        title: str,
        version: str,
        description: str,
        settings: Settings,
        exception_handlers: Optional[Dict[Any, Callable]] = None,
        root_redirect: bool = True,
        responses: Optional[Dict[Union[int, str], Dict[str, Any]]] = None,
        api_class: Optional[Type[fastapi.FastAPI]] = None,
        **kwargs
) -> fastapi.FastAPI:
    if api_class is None:
        api_class = fastapi.FastAPI
    app = api_class(
        title=title,
        version=version,
        description=description,
        responses=responses or {400: {"model": schemas.APIError}},
        **kwargs
    )
    app.state.settings = settings

    handlers = exception_handlers or DEFAULT_EXCEPTION_HANDLERS
    for exc in handlers:
        app.add_exception_handler(exc, handlers[exc])

    if root_redirect:
        @app.get("/", include_in_schema=False)
        async def redirect_root():
            return fastapi.responses.RedirectResponse("./docs")

    return app


def create_app(
        settings: Optional[Settings] = None,
        configure_logging: bool = True,
        configure_database: bool = True
) -> fastapi.FastAPI:
    """
    Create a new ``FastAPI`` instance using the specified settings and switches

    This function is conveniently used to allow overwriting the settings
    before launching the application as well as to allow multiple ``FastAPI``
    instances in one program, which in turn makes unit testing much easier.
    Besides the database, the password hashing, the token parameters,
    the cache, the email service and the event notifier are configured
    using the given settings.

    :param settings: optional Settings instance (would be created if not present)
    :param configure_logging: switch whether to configure logging
    :param configure_database: switch whether to configure the database
    :return: new ``FastAPI`` instance
    """

    @contextlib.asynccontextmanager
    async def lifespan(_: fastapi.FastAPI):
        logger.info("Starting API...")
        notifier.Callback.push(schemas.EventType.SERVER_STARTED, {"base_url": settings.server.public_base_url})
        yield
        logger.info("Shutting down...")
        notifier.Callback.shutdown()

    if settings is None:
        settings = Settings()

    if configure_logging:
        logging.config.dictConfig(settings.logging.model_dump())
    logger = logging.getLogger(__name__)
    logger.debug("Starting application...")

    if configure_database:
        database.init(settings.database.connection, settings.database.debug_sql)

    auth.init(settings)
    caching.init(caching.build_cache(settings.cache, logger), settings.cache.key_prefix)
    emails.init(settings.auth.mail_sender, settings.auth.reset_password_url)
    notifier.Callback.configure(settings.server.callbacks)
    if settings.auth.secret_key is None:
        logger.warning("No secret key configured! Access tokens will be invalidated on restart.")

    app = _make_app(
        title="CRUD core REST API",
        version=__version__,
        description=__doc__,
        settings=settings,
        apis={
            1: _make_app(
                title="CRUD core REST API v1",
                version=__version__,
                description=API_V1_DOC,
                settings=settings,
                api_class=base.APIWithoutValidationError,
                responses={400: {"model": schemas.APIError}, 401: {"model": schemas.APIError}}
            )
        },
        logger=logger,
        responses={400: {"model": schemas.APIError}},
        lifespan=lifespan,
        api_class=versioning.VersionedFastAPI
    )

    assert isinstance(app, versioning.VersionedFastAPI), "'VersionedFastAPI' instance required"
    app.add_router(router)
    app.finish()

    limiter = FixedWindowRateLimiter(settings.rate_limits)
    app.state.rate_limiter = limiter
    app.middleware("http")(limiter)
    if settings.server.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.server.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["ETag", "Last-Modified", "Location", "Retry-After"]
        )

    return app


class APIWrapper:
    """
    Wrapper class around the FastAPI main object, accessible via the ``app`` property

    There should be only one global instance of this object, which should only
    export its functionality to hold the ``app`` property. This wrapper can be
    used to allow easy command-line usage via ``uvicorn`` calls. Example:

    .. code-block::

        uvicorn crud_core.api.api:api.app
    """

    def __init__(self):
        self._app: Optional[fastapi.FastAPI] = None

    def get_app(self) -> fastapi.FastAPI:
        return self.app

    def set_app(self, application: fastapi.FastAPI):
        if not isinstance(application, fastapi.FastAPI):
            raise TypeError
        self._app = application

    @property
    def app(self) -> fastapi.FastAPI:
        """
        Return the ``app`` instance (or create it with default settings if it doesn't exist)
        """

        if self._app is not None:
            return self._app
        self._app = create_app()
        return self._app


api = APIWrapper()
