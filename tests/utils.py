"""
Helper functions to make writing unit tests for the CRUD core easier
"""

import os
import uuid
import shutil
import secrets
import tempfile
import unittest
from typing import Iterable, List, Mapping, Optional, Tuple, Type, Union

import httpx
import pydantic
import sqlalchemy.orm
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine as _Engine

from crud_core import caching, settings as _settings
from crud_core.api import auth
from crud_core.api.api import create_app
from crud_core.persistence import database, models
from crud_core.services import accounts

from . import conf


class BaseTest(unittest.TestCase):
    """
    A base class for unit tests which introduces simple setup and teardown of unit tests

    Every test gets its own temporary directory holding the config file and
    the sqlite database file. If a subclass needs special setup or teardown
    functionality, it **MUST** call the superclasses setup and teardown
    methods: the superclass setup method at the beginning of the subclass
    setup method, the superclass teardown method at the end of the subclass
    teardown method.
    """

    directory: Optional[str] = None
    config_file: Optional[str] = None
    database_url: Optional[str] = None
    _old_config_paths: Optional[List[str]] = None

    def setUp(self) -> None:
        self.directory = tempfile.mkdtemp(prefix="crud_core_unittest_")
        self.config_file = os.path.join(self.directory, f"config_{secrets.token_hex(8)}.json")
        self._old_config_paths = _settings.CONFIG_PATHS
        _settings.CONFIG_PATHS = [self.config_file]

        if conf.DATABASE_URL is not None:
            self.database_url = conf.DATABASE_URL
        else:
            self.database_url = conf.DATABASE_URL_FORMAT.format(
                os.path.join(self.directory, conf.DATABASE_DEFAULT_FILE_NAME)
            )
        database.PRINT_SQLITE_WARNING = False

    def tearDown(self) -> None:
        _settings.CONFIG_PATHS = self._old_config_paths
        if self.directory and os.path.exists(self.directory):
            shutil.rmtree(self.directory, ignore_errors=True)

    def get_config(self) -> _settings.config.CoreConfig:
        config = _settings.get_default_core_config(self.database_url)
        config.database.debug_sql = conf.SQLALCHEMY_ECHOING
        config.server.environment = "testing"
        config.server.allow_weak_insecure_password_hashes = True
        config.auth.secret_key = conf.SECRET_KEY
        config.auth.secure_cookies = False
        return config


class BasePersistenceTests(BaseTest):
    engine: _Engine
    session: sqlalchemy.orm.Session

    def setUp(self) -> None:
        super().setUp()
        database.init(self.database_url, conf.SQLALCHEMY_ECHOING)
        self.engine = database.get_engine()
        self.session = database.get_new_session()
        auth.init(self.get_config())
        caching.init(caching.MemoryCache())

    def tearDown(self) -> None:
        self.session.close()
        self.engine.dispose()
        super().tearDown()

    def make_user(
            self,
            email: str = "user@example.com",
            password: str = "correct horse",
            roles: Optional[List[str]] = None
    ) -> models.User:
        return accounts.create_user(self.session, email, password, roles=roles)


class BaseAPITests(BaseTest):
    api_version_format: str = "/v{}"
    latest_api_version: int = 1

    settings: _settings.Settings
    client: TestClient
    token: Optional[str] = None

    def setUp(self) -> None:
        super().setUp()
        self.settings = _settings.Settings(**self.get_config().model_dump())
        self.app = create_app(self.settings, configure_logging=False)
        self.client = TestClient(self.app)
        self.token = None

    def tearDown(self) -> None:
        self.client.close()
        database.get_engine().dispose()
        super().tearDown()

    def assertQuery(
            self,
            endpoint: Union[Tuple[str, str], Tuple[str, str, int]],
            status_code: Union[int, Iterable[int]] = 200,
            json: Optional[Union[dict, pydantic.BaseModel]] = None,
            headers: Optional[dict] = None,
            r_none: bool = False,
            r_is_json: bool = True,
            r_headers: Optional[Union[Mapping, Iterable]] = None,
            r_schema: Optional[Type[pydantic.BaseModel]] = None,
            no_version: bool = False,
            **kwargs
    ) -> httpx.Response:
        """
        Do a query to the specified endpoint and return the response

        Besides also carrying the optional JSON data, headers and other keyword arguments,
        this function asserts that the response has the specified status code. Furthermore,
        the optional asserted response headers and asserted response schema can be used,
        where the headers are either an iterable to only assert certain keys or a mapping
        to also assert values.

        :param endpoint: tuple of the method, the path of the endpoint and the
            optional API version (uses the latest version if omitted by default)
        :param status_code: asserted status code(s) of the final server's response
        :param json: optional dictionary or model holding the request data
        :param headers: optional set of headers to sent in the request
        :param r_none: switch to expect no (=empty) result and skip all other response content checks
        :param r_is_json: switch to check that the response contains JSON data
        :param r_headers: optional set of headers which are asserted in the response
        :param r_schema: optional class of a response schema to be asserted
        :param no_version: don't add the latest version to the two-element endpoint definition
        :param kwargs: dict of any further keyword arguments, passed to ``TestClient.request``
        :return: response to the requested resource
        """

        if len(endpoint) == 3:
            method, path, api_version = endpoint
        else:
            method, path = endpoint
            api_version = self.latest_api_version

        if not path.startswith("/"):
            path = "/" + path
        if isinstance(json, pydantic.BaseModel):
            json = json.model_dump(mode="json")

        prefix = "" if no_version else self.api_version_format.format(api_version)
        headers = dict(headers or {})
        if self.token is not None:
            headers.setdefault("Authorization", f"Bearer {self.token}")
        response = self.client.request(method.upper(), prefix + path, json=json, headers=headers, **kwargs)

        if isinstance(status_code, int):
            self.assertEqual(status_code, response.status_code, response.text)
        else:
            self.assertIn(response.status_code, status_code, response.text)

        if r_headers is not None:
            for k in (r_headers.keys() if isinstance(r_headers, Mapping) else r_headers):
                self.assertIsNotNone(response.headers.get(k), response.headers)
                if isinstance(r_headers, Mapping):
                    self.assertEqual(r_headers[k], response.headers.get(k), response.headers)

        if r_none:
            self.assertEqual("", response.text)
        elif r_is_json:
            try:
                self.assertIsNotNone(response.json())
            except ValueError:
                self.fail(("No JSON content detected", response.headers, response.text))
            if r_schema is not None:
                self.assertTrue(r_schema(**response.json()), response.json())

        return response

    def make_user(
            self,
            email: str = "user@example.com",
            password: str = "correct horse",
            admin: bool = False
    ) -> uuid.UUID:
        roles = [auth.USER_ROLE, auth.ADMIN_ROLE] if admin else [auth.USER_ROLE]
        with database.get_new_session() as session:
            return accounts.create_user(session, email, password, roles=roles).id

    def login(self, email: str = "user@example.com", password: str = "correct horse") -> dict:
        response = self.assertQuery(("POST", "/auth/login"), 200, json={"email": email, "password": password})
        self.token = response.json()["access_token"]
        return response.json()

    def login_as_admin(self) -> dict:
        self.make_user("admin@example.com", "admin password", admin=True)
        return self.login("admin@example.com", "admin password")

    def login_as_user(self) -> dict:
        self.make_user("user@example.com", "correct horse")
        return self.login("user@example.com", "correct horse")
