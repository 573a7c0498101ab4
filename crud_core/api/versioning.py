"""
CRUD core API library to provide multiple versions of the API endpoints
"""

import logging
from typing import Callable, Dict, Iterable, Optional

import fastapi
from fastapi.routing import APIRoute

from .. import schemas


VERSION_ANNOTATION_NAME = "_api_versions"
MINIMAL_VERSION_ANNOTATION_NAME = "_minimal_api_version"
MAXIMAL_VERSION_ANNOTATION_NAME = "_maximal_api_version"


def versions(
        *annotations: int,
        minimal: Optional[int] = None,
        maximal: Optional[int] = None
) -> Callable[[Callable], Callable]:
    """
    Decorate a path operation function with the version(s) of the API that should support it

    :param annotations: any number of explicit API versions that should include the decorated
        path operation (which can't be below or above the minimal and maximal values respectively)
    :param minimal: minimal version of APIs that should include the decorated path operation
    :param maximal: maximal version of APIs that should include the decorated path operation
    :return: decorator to use on a path operation function
    """

    if not all(isinstance(a, int) for a in annotations):
        raise TypeError(f"Not all annotations are integers: {annotations!r}")
    for bound in (minimal, maximal):
        if bound is not None and not isinstance(bound, int):
            raise TypeError(f"Expected int, got {type(bound)!r}")
    if minimal is not None and any(a < minimal for a in annotations):
        raise ValueError("Can't accept annotations smaller than the minimal version")
    if maximal is not None and any(a > maximal for a in annotations):
        raise ValueError("Can't accept annotations bigger than the maximal version")

    def decorator(func: Callable) -> Callable:
        for name in (VERSION_ANNOTATION_NAME, MINIMAL_VERSION_ANNOTATION_NAME, MAXIMAL_VERSION_ANNOTATION_NAME):
            assert not hasattr(func, name), "'versions' can't be used twice"
        if annotations:
            setattr(func, VERSION_ANNOTATION_NAME, annotations)
        if minimal is not None:
            setattr(func, MINIMAL_VERSION_ANNOTATION_NAME, minimal)
        if maximal is not None:
            setattr(func, MAXIMAL_VERSION_ANNOTATION_NAME, maximal)
        return func

    return decorator


class VersionedFastAPI(fastapi.FastAPI):
    """
    Specialized FastAPI adding support for multiple versioned sub-APIs

    The sub-APIs given in ``apis`` are mounted below their version prefix
    (``/v1`` for version 1 by default) once ``finish`` has been called.
    Routers must be added via ``add_router``, which filters their path
    operations by the version annotations set with ``versions``. The
    unversioned main application only serves generic endpoints like
    ``/versions`` or whatever gets registered on it directly.

    .. code-block::

        app = VersionedFastAPI(apis={1: FastAPI(title="API v1")}, title="API")
        app.add_router(router)
        app.finish()
    """

    def __init__(
            self,
            apis: Dict[int, fastapi.FastAPI],
            *args,
            version_format: str = "/v{}",
            logger: Optional[logging.Logger] = None,
            **kwargs
    ):
        assert version_format.count("{}") == 1, "Version format string must contain '{}' once"
        assert apis, "At least one API version is required"
        super().__init__(*args, **kwargs)
        self._apis = apis
        self._version_format = version_format
        self._logger = logger or logging.getLogger(__name__)
        self._abs_min = min(apis.keys())
        self._abs_max = max(apis.keys())
        self._finished = False

    @property
    def apis(self) -> Dict[int, fastapi.FastAPI]:
        return dict(self._apis)

    def prefix(self, api_version: int) -> str:
        return self._version_format.format(api_version)

    def finish(self, versions_endpoint: bool = True):
        """
        Complete the registration of new routers and mount the sub-APIs once

        :param versions_endpoint: switch to enable the special ``/versions`` endpoint
        """

        if self._finished:
            return

        for api_version, api in self._apis.items():
            self.mount(self.prefix(api_version), api)
            self._logger.debug(f"Mounted API version {api_version} with {len(api.routes)} routes")

        if versions_endpoint:
            @self.get("/versions", response_model=schemas.Versions, tags=["Generic"])
            async def get_version_info():
                """
                Return the available versions of the API and their path prefixes
                """

                return schemas.Versions(
                    latest=self._abs_max,
                    versions=[{"version": v, "prefix": self.prefix(v)} for v in sorted(self._apis)]
                )

        self._finished = True

    def _supports(self, endpoint: Callable, api_version: int) -> bool:
        min_version = getattr(endpoint, MINIMAL_VERSION_ANNOTATION_NAME, self._abs_min)
        max_version = getattr(endpoint, MAXIMAL_VERSION_ANNOTATION_NAME, self._abs_max)
        explicit_versions = getattr(endpoint, VERSION_ANNOTATION_NAME, ())
        if not isinstance(min_version, int) or not isinstance(max_version, int):
            raise TypeError(f"Version bounds of {endpoint!r} are no integers!")
        if not isinstance(explicit_versions, Iterable) or not all(isinstance(v, int) for v in explicit_versions):
            raise TypeError(f"Version annotation {explicit_versions!r} of {endpoint!r} is invalid!")
        if not min_version <= api_version <= max_version:
            return False
        return not explicit_versions or api_version in explicit_versions

    def add_router(self, router: fastapi.APIRouter, **kwargs):
        """
        Add the routes of the router to the set of sub-APIs which fulfill their requirements

        :param router: APIRouter carrying all routes that should be filtered and added
        :param kwargs: optional keyword arguments for the ``include_router`` method of the sub-APIs
        :raises TypeError: when there are problems with the annotated values of the endpoints
        :raises RuntimeError: when the API has already been finished
        """

        if self._finished:
            raise RuntimeError("Can't add new routers after the API has been finally built")

        for api_version, api in self._apis.items():
            filtered_routes = []
            for route in router.routes:
                if not isinstance(route, APIRoute):
                    self._logger.error(f"Route {route!r} (type {type(route)!r}) is no 'APIRoute' instance! Skipping.")
                    continue
                if not any(hasattr(route.endpoint, name) for name in (
                    VERSION_ANNOTATION_NAME, MINIMAL_VERSION_ANNOTATION_NAME, MAXIMAL_VERSION_ANNOTATION_NAME
                )):
                    self._logger.warning(f"Route {route.path!r} has no version annotation, adding it to all versions")
                if self._supports(route.endpoint, api_version):
                    filtered_routes.append(route)

            kwargs.pop("prefix", None)
            api.include_router(
                fastapi.APIRouter(routes=filtered_routes, default_response_class=router.default_response_class),
                **kwargs
            )
