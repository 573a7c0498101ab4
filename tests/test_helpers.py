"""
CRUD core unit tests for the helper libraries of the API
"""

import json
import uuid
import asyncio
import datetime
import unittest as _unittest
from typing import Dict, Optional

from fastapi import Request, Response

from crud_core import schemas
from crud_core.api import auth, base, versioning
from crud_core.api.etag import ETag
from crud_core.api.ratelimit import FixedWindowRateLimiter, get_client_id
from crud_core.persistence import models, versioning as versioning_
from crud_core.schemas.config import CoreConfig, RateLimitConfig, RateLimitRule

from . import conf


def _make_request(method: str = "GET", headers: Optional[Dict[str, str]] = None, client: str = "10.0.0.1") -> Request:
    return Request({
        "type": "http",
        "method": method,
        "path": "/v1/roles",
        "query_string": b"",
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()],
        "client": (client, 54321)
    })


def _make_role(version: bytes = b"\x00" * 16) -> schemas.Role:
    return schemas.Role(
        id=uuid.UUID("0a6c3f2e-8a3b-4f52-9d59-0b6a3b0d7f11"),
        name="Guest",
        row_version=version,
        created_at=datetime.datetime(2024, 1, 2, 3, 4, 5),
        updated_at=datetime.datetime(2024, 2, 3, 4, 5, 6)
    )


class FakeClock:
    def __init__(self):
        self.now = 500.0

    def __call__(self) -> float:
        return self.now


class ETagTests(_unittest.TestCase):
    def test_make_etag(self):
        role = _make_role()
        tag = ETag.make_etag(role)
        self.assertEqual(tag, ETag.make_etag(_make_role()))
        self.assertNotEqual(tag, ETag.make_etag(_make_role(b"\x01" * 16)))
        self.assertNotEqual(tag, ETag.make_etag(role, "other"))
        self.assertNotEqual(tag, ETag.make_etag([role]))
        self.assertIsNone(ETag.make_etag(None))
        self.assertNotIn("=", tag)

    def test_last_modified(self):
        role = _make_role()
        self.assertEqual(datetime.datetime(2024, 2, 3, 4, 5, 6), ETag.last_modified(role))
        role.updated_at = None
        self.assertEqual(datetime.datetime(2024, 1, 2, 3, 4, 5), ETag.last_modified(role))
        self.assertEqual(datetime.datetime(2024, 2, 3, 4, 5, 6), ETag.last_modified([role, _make_role()]))
        self.assertIsNone(ETag.last_modified([]))

    def test_respond_adds_headers(self):
        response = Response()
        role = _make_role()
        etag = ETag(_make_request(), "public, max-age=60")
        self.assertIs(role, etag.respond(response, role))
        self.assertEqual(f'"{ETag.make_etag(role)}"', response.headers["ETag"])
        self.assertEqual("Sat, 03 Feb 2024 04:05:06 GMT", response.headers["Last-Modified"])
        self.assertEqual("public, max-age=60", response.headers["Cache-Control"])

    def test_not_modified(self):
        role = _make_role()
        tag = ETag.make_etag(role)
        for header in (f'"{tag}"', f'W/"{tag}"', f'"foo", "{tag}"', "*"):
            with self.assertRaises(base.NotModified):
                ETag(_make_request(headers={"If-None-Match": header})).respond(Response(), role)
        ETag(_make_request(headers={"If-None-Match": '"foo"'})).respond(Response(), role)

        with self.assertRaises(base.NotModified):
            ETag(_make_request(headers={"If-Modified-Since": "Sat, 03 Feb 2024 04:05:06 GMT"})).respond(Response(), role)
        ETag(_make_request(headers={"If-Modified-Since": "Sat, 03 Feb 2024 04:05:05 GMT"})).respond(Response(), role)
        ETag(_make_request(headers={"If-Modified-Since": "garbage"})).respond(Response(), role)

        # the date is ignored if a tag was given
        ETag(_make_request(headers={
            "If-None-Match": '"foo"',
            "If-Modified-Since": "Sat, 03 Feb 2024 04:05:06 GMT"
        })).respond(Response(), role)

    def test_compare(self):
        role = _make_role()
        tag = ETag.make_etag(role)
        self.assertTrue(ETag(_make_request("PUT")).compare(role))
        self.assertTrue(ETag(_make_request("PUT", {"If-Match": f'"{tag}"'})).compare(role))
        self.assertTrue(ETag(_make_request("PUT", {"If-Match": "*"})).compare(role))
        with self.assertRaises(base.PreconditionFailed):
            ETag(_make_request("PUT", {"If-Match": '"foo"'})).compare(role)
        with self.assertRaises(base.PreconditionFailed):
            ETag(_make_request("PUT", {"If-Match": f'W/"{tag}"'})).compare(role)

        self.assertTrue(ETag(_make_request("PUT", {"If-Unmodified-Since": "Sat, 03 Feb 2024 04:05:06 GMT"})).compare(role))
        with self.assertRaises(base.PreconditionFailed):
            ETag(_make_request("PUT", {"If-Unmodified-Since": "Sat, 03 Feb 2024 04:05:05 GMT"})).compare(role)


class ErrorHandlerTests(_unittest.TestCase):
    def test_unhandled_exceptions(self):
        with self.assertLogs("crud_core.api.base", "ERROR"):
            response = asyncio.run(base.handle_generic_exception(_make_request("POST"), RuntimeError("boom")))
        self.assertEqual(500, response.status_code)
        error = schemas.APIError(**json.loads(response.body))
        self.assertEqual(500, error.status)
        self.assertEqual("POST", error.method)
        self.assertEqual("/v1/roles", error.request)
        self.assertNotIn("boom", error.message)

    def test_concurrency_conflicts(self):
        exc = versioning_.ConcurrencyConflict(models.Role(name="Guest"), "outdated")
        response = asyncio.run(base.handle_concurrency_conflict(_make_request("PUT"), exc))
        self.assertEqual(409, response.status_code)
        error = schemas.APIError(**json.loads(response.body))
        self.assertEqual("outdated", error.details)
        self.assertIn("role", error.message)


class RateLimitTests(_unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.limiter = FixedWindowRateLimiter(
            RateLimitConfig(rules={"/v1/auth/login": RateLimitRule(max_requests=3, window_minutes=1)}),
            clock=self.clock
        )

    def test_fixed_window(self):
        for _ in range(3):
            self.assertIsNone(self.limiter.hit("client", "/v1/auth/login"))
        self.assertEqual(60, self.limiter.hit("client", "/v1/auth/login"))
        self.clock.now += 20
        self.assertEqual(40, self.limiter.hit("client", "/v1/auth/login"))
        self.assertEqual(40, self.limiter.hit("client", "/V1/Auth/Login"))
        self.assertIsNone(self.limiter.hit("other", "/v1/auth/login"))
        self.assertIsNone(self.limiter.hit("client", "/v1/auth/register"))

        # rejected requests don't extend the window
        self.clock.now += 40
        self.assertIsNone(self.limiter.hit("client", "/v1/auth/login"))

    def test_reset_and_disabled(self):
        for _ in range(3):
            self.limiter.hit("client", "/v1/auth/login")
        self.assertIsNotNone(self.limiter.hit("client", "/v1/auth/login"))
        self.limiter.reset()
        self.assertIsNone(self.limiter.hit("client", "/v1/auth/login"))

        disabled = FixedWindowRateLimiter(RateLimitConfig(enabled=False))
        for _ in range(100):
            self.assertIsNone(disabled.hit("client", "/v1/auth/login"))

    def test_client_id(self):
        self.assertEqual("10.0.0.1", get_client_id(_make_request()))
        self.assertEqual("192.0.2.7", get_client_id(_make_request(headers={"X-Forwarded-For": "192.0.2.7, 10.0.0.1"})))
        self.assertEqual("10.0.0.1", get_client_id(_make_request(headers={"X-Forwarded-For": " "})))


class VersioningTests(_unittest.TestCase):
    def test_version_annotations(self):
        @versioning.versions(1, 2, minimal=1)
        def f():
            pass

        self.assertEqual((1, 2), getattr(f, versioning.VERSION_ANNOTATION_NAME))
        self.assertEqual(1, getattr(f, versioning.MINIMAL_VERSION_ANNOTATION_NAME))
        self.assertRaises(ValueError, versioning.versions, 1, minimal=2)
        self.assertRaises(ValueError, versioning.versions, 3, maximal=2)
        self.assertRaises(TypeError, versioning.versions, "1")
        with self.assertRaises(AssertionError):
            versioning.versions(1)(f)


class AuthTests(_unittest.TestCase):
    def setUp(self) -> None:
        config = CoreConfig()
        config.auth.secret_key = conf.SECRET_KEY
        config.server.allow_weak_insecure_password_hashes = True
        auth.init(config)
        self.user = models.User(
            id=uuid.uuid4(),
            email="user@example.com",
            password_hash=auth.hash_password("correct horse"),
            roles=["User", "Admin"]
        )

    def test_passwords(self):
        self.assertTrue(self.user.password_hash.startswith("$argon2"))
        self.assertTrue(auth.verify_password(self.user, "correct horse"))
        self.assertFalse(auth.verify_password(self.user, "wrong horse"))
        self.user.password_hash = "invalid"
        self.assertFalse(auth.verify_password(self.user, "correct horse"))

    def test_access_tokens(self):
        token = auth.create_access_token(self.user)
        claims = auth.decode_access_token(token)
        self.assertEqual(str(self.user.id), claims["sub"])
        self.assertEqual("user@example.com", claims["email"])
        self.assertListEqual(["User", "Admin"], claims["roles"])
        self.assertTrue(auth.is_admin(claims["roles"]))
        self.assertFalse(auth.is_admin(["User"]))
        self.assertFalse(auth.is_admin(None))
        self.assertEqual(15 * 60, auth.access_token_lifetime())

    def test_invalid_access_tokens(self):
        with self.assertRaises(base.Unauthorized):
            auth.decode_access_token("not-a-token")
        with self.assertRaises(base.Unauthorized):
            auth.decode_access_token(auth.create_access_token(self.user) + "x")

        config = CoreConfig()
        config.auth.secret_key = "another-secret-key-which-is-long-enough"
        config.server.allow_weak_insecure_password_hashes = True
        token = auth.create_access_token(self.user)
        auth.init(config)
        with self.assertRaises(base.Unauthorized):
            auth.decode_access_token(token)

    def test_foreign_audience(self):
        token = auth.create_access_token(self.user, expiration_minutes=1)
        self.assertEqual(str(self.user.id), auth.decode_access_token(token)["sub"])

        config = CoreConfig()
        config.auth.secret_key = conf.SECRET_KEY
        config.auth.audience = "another-service"
        auth.init(config)
        with self.assertRaises(base.Unauthorized):
            auth.decode_access_token(token)


if __name__ == '__main__':
    _unittest.main()
