"""
CRUD core unit tests for the whole API in certain user actions
"""

import uuid
import unittest as _unittest

from crud_core import schemas as _schemas
from crud_core.misc import emails
from crud_core.persistence import database
from crud_core.services import accounts

from . import utils


WALL = {
    "name": "North wall",
    "length": 20.5,
    "height": 8,
    "thickness": 5.5,
    "assembly_type": "2x6 wood stud",
    "r_value": 21,
    "orientation": "North"
}

WINDOW = {
    "name": "Kitchen window",
    "width": 3,
    "height": 4,
    "area": 12,
    "frame_type": "Vinyl",
    "glazing_type": "Double pane low-e",
    "u_value": 0.3,
    "solar_heat_gain_coefficient": 0.25,
    "has_screens": True
}


class APITests(utils.BaseAPITests):
    def test_basic_endpoints_and_redirects_to_docs(self):
        for _ in range(8):
            self.assertEqual({}, self.assertQuery(("GET", "/health")).json())

        self.assertIn("docs", self.assertQuery(
            ("GET", "/"),
            [302, 303, 307],
            follow_redirects=False,
            r_is_json=False
        ).headers.get("Location"))
        self.assertQuery(("GET", "/openapi.json"), r_headers={"Content-Type": "application/json"})
        self.assertQuery(("GET", "/openapi.json"), r_headers={"Content-Type": "application/json"}, no_version=True)

        versions = self.assertQuery(("GET", "/versions"), no_version=True, r_schema=_schemas.Versions).json()
        self.assertEqual(1, versions["latest"])
        self.assertEqual([{"version": 1, "prefix": "/v1"}], versions["versions"])

        status = self.assertQuery(("GET", "/status"), r_schema=_schemas.Status).json()
        self.assertEqual("testing", status["environment"])
        self.assertEqual(1, status["api_version"])
        self.assertQuery(("GET", "/status"), 404, no_version=True)
        self.assertQuery(("GET", "/status", 2), 404, r_is_json=False)

    def test_authentication_required(self):
        for path in ("/roles", "/people", "/walls", "/windows", "/auth/me", "/people/queries/count"):
            response = self.assertQuery(("GET", path), 401, r_schema=_schemas.APIError)
            self.assertTrue(response.json()["request"].endswith(path))
        self.token = "invalid"
        self.assertQuery(("GET", "/roles"), 401, r_schema=_schemas.APIError)

        self.login_as_user()
        self.assertQuery(("GET", "/roles"), 200)
        user_id = self.assertQuery(("GET", "/auth/me"), r_schema=_schemas.UserInfo).json()["id"]

        with database.get_new_session() as session:
            accounts.set_locked(session, accounts.load(session, uuid.UUID(user_id)), True)
        response = self.assertQuery(("GET", "/roles"), 401)
        self.assertEqual("Account is locked", response.json()["message"])

    def test_validation_errors(self):
        self.login_as_admin()
        response = self.assertQuery(("POST", "/roles"), 400, json={"name": ""}, r_schema=_schemas.APIError)
        self.assertTrue(response.json()["repeat"])
        self.assertQuery(("POST", "/people"), 400, json={"full_name": "R2-D2"})
        self.assertQuery(("POST", "/people"), 400, json={"full_name": "John Doe", "phone": "call me"})
        self.assertQuery(("POST", "/walls"), 400, json={**WALL, "length": 0})
        self.assertQuery(("POST", "/windows"), 400, json={**WINDOW, "solar_heat_gain_coefficient": 1.5})
        self.assertQuery(("GET", "/roles/not-a-uuid"), 400)

    def test_roles(self):
        self.login_as_admin()
        self.assertListEqual([], self.assertQuery(("GET", "/roles")).json())

        response = self.assertQuery(
            ("POST", "/roles"),
            201,
            json={"name": "Site Manager", "description": "Manages the site"},
            r_headers=["Location", "ETag"],
            r_schema=_schemas.Role
        )
        role = response.json()
        self.assertTrue(response.headers["Location"].endswith(f"/roles/{role['id']}"))
        self.assertIsNotNone(role["row_version"])

        self.assertQuery(("POST", "/roles"), 409, json={"name": "site manager"})
        self.assertQuery(("POST", "/roles"), 201, json={"name": "Architect"})
        names = [r["name"] for r in self.assertQuery(("GET", "/roles")).json()]
        self.assertListEqual(["Architect", "Site Manager"], names)

        response = self.assertQuery(("GET", f"/roles/{role['id']}"), r_headers=["ETag", "Last-Modified", "Cache-Control"])
        self.assertEqual(role, response.json())
        etag = response.headers["ETag"]

        self.assertQuery(
            ("PUT", f"/roles/{role['id']}"),
            409,
            json={"name": "Architect", "row_version": role["row_version"]}
        )
        self.assertQuery(
            ("PUT", f"/roles/{role['id']}"),
            204,
            json={"name": "Project Manager", "row_version": role["row_version"]},
            headers={"If-Match": etag},
            r_none=True
        )
        updated = self.assertQuery(("GET", f"/roles/{role['id']}")).json()
        self.assertEqual("Project Manager", updated["name"])
        self.assertIsNone(updated["description"])
        self.assertNotEqual(role["row_version"], updated["row_version"])
        self.assertIsNotNone(updated["updated_at"])

        # outdated row version and outdated entity tag
        self.assertQuery(("PUT", f"/roles/{role['id']}"), 409, json={"name": "Foo", "row_version": role["row_version"]})
        self.assertQuery(("PUT", f"/roles/{role['id']}"), 412, json={"name": "Foo"}, headers={"If-Match": etag})
        self.assertQuery(("DELETE", f"/roles/{role['id']}"), 412, headers={"If-Match": etag})

        self.assertQuery(("DELETE", f"/roles/{role['id']}"), 204, r_none=True)
        self.assertQuery(("GET", f"/roles/{role['id']}"), 404)
        self.assertQuery(("PUT", f"/roles/{role['id']}"), 404, json={"name": "Foo"})
        self.assertQuery(("DELETE", f"/roles/{role['id']}"), 404)
        self.assertEqual(1, len(self.assertQuery(("GET", "/roles")).json()))

    def test_role_modifications_require_admins(self):
        self.login_as_admin()
        role = self.assertQuery(("POST", "/roles"), 201, json={"name": "Guest"}).json()

        self.login_as_user()
        self.assertQuery(("GET", "/roles"), 200)
        self.assertQuery(("GET", f"/roles/{role['id']}"), 200)
        self.assertQuery(("POST", "/roles"), 403, json={"name": "Intruder"})
        self.assertQuery(("PUT", f"/roles/{role['id']}"), 403, json={"name": "Intruder"})
        self.assertQuery(("DELETE", f"/roles/{role['id']}"), 403)
        self.assertEqual(["Guest"], [r["name"] for r in self.assertQuery(("GET", "/roles")).json()])

    def test_conditional_requests(self):
        self.login_as_admin()
        self.assertQuery(("POST", "/roles"), 201, json={"name": "Guest"})

        response = self.assertQuery(("GET", "/roles"), r_headers=["ETag", "Last-Modified"])
        etag = response.headers["ETag"]
        self.assertQuery(("GET", "/roles"), 304, headers={"If-None-Match": etag}, r_none=True)
        self.assertQuery(("GET", "/roles"), 304, headers={"If-None-Match": f"W/{etag}"}, r_none=True)
        self.assertQuery(("GET", "/roles"), 200, headers={"If-None-Match": '"outdated"'})
        last_modified = response.headers["Last-Modified"]
        self.assertQuery(("GET", "/roles"), 304, headers={"If-Modified-Since": last_modified}, r_none=True)

        self.assertQuery(("POST", "/roles"), 201, json={"name": "Architect"})
        response = self.assertQuery(("GET", "/roles"), 200, headers={"If-None-Match": etag})
        self.assertNotEqual(etag, response.headers["ETag"])
        self.assertEqual(2, len(response.json()))

    def test_people(self):
        self.login_as_admin()
        guest = self.assertQuery(("POST", "/roles"), 201, json={"name": "Guest"}).json()
        owner = self.assertQuery(("POST", "/roles"), 201, json={"name": "Owner"}).json()

        response = self.assertQuery(
            ("POST", "/people"),
            201,
            json={"full_name": "  John Doe ", "phone": "+1 555 010 0000", "role_ids": [owner["id"], guest["id"]]},
            r_headers=["Location"],
            r_schema=_schemas.Person
        )
        john = response.json()
        self.assertTrue(response.headers["Location"].endswith(f"/people/{john['id']}"))
        self.assertEqual("John Doe", john["full_name"])
        self.assertListEqual(["Guest", "Owner"], john["roles"])

        jane = self.assertQuery(("POST", "/people"), 201, json={"full_name": "Jane Smith", "phone": ""}).json()
        self.assertIsNone(jane["phone"])
        self.assertListEqual([], jane["roles"])
        self.assertQuery(("POST", "/people"), 400, json={"full_name": "Nobody", "role_ids": [john["id"]]})

        self.assertListEqual(
            ["Jane Smith", "John Doe"],
            [p["full_name"] for p in self.assertQuery(("GET", "/people")).json()]
        )
        self.assertEqual(john, self.assertQuery(("GET", f"/people/{john['id']}")).json())

        # keep the roles when they are omitted, replace them otherwise
        self.assertQuery(
            ("PUT", f"/people/{john['id']}"),
            204,
            json={"full_name": "John Doe", "phone": "555-0100", "row_version": john["row_version"]}
        )
        current = self.assertQuery(("GET", f"/people/{john['id']}")).json()
        self.assertEqual("555-0100", current["phone"])
        self.assertListEqual(["Guest", "Owner"], current["roles"])
        self.assertQuery(
            ("PUT", f"/people/{john['id']}"),
            204,
            json={"full_name": "John Doe", "role_ids": [guest["id"]], "row_version": current["row_version"]}
        )
        current = self.assertQuery(("GET", f"/people/{john['id']}")).json()
        self.assertIsNone(current["phone"])
        self.assertListEqual(["Guest"], current["roles"])

        self.assertQuery(
            ("PUT", f"/people/{john['id']}"),
            409,
            json={"full_name": "John Doe", "row_version": john["row_version"]}
        )
        self.assertQuery(("PUT", f"/people/{john['id']}"), 400, json={"full_name": "John Doe", "role_ids": [jane["id"]]})

        # renaming a role updates the people representations as well
        self.assertQuery(("PUT", f"/roles/{guest['id']}"), 204, json={"name": "Visitor"})
        self.assertListEqual(["Visitor"], self.assertQuery(("GET", f"/people/{john['id']}")).json()["roles"])
        self.assertQuery(("DELETE", f"/roles/{guest['id']}"), 204)
        self.assertListEqual([], self.assertQuery(("GET", f"/people/{john['id']}")).json()["roles"])

        self.assertQuery(("DELETE", f"/people/{jane['id']}"), 204, r_none=True)
        self.assertQuery(("GET", f"/people/{jane['id']}"), 404)
        self.assertQuery(("DELETE", f"/people/{jane['id']}"), 404)
        self.assertEqual(1, len(self.assertQuery(("GET", "/people")).json()))

    def test_people_queries(self):
        self.login_as_admin()
        architect = self.assertQuery(("POST", "/roles"), 201, json={"name": "Architect"}).json()
        self.assertQuery(("POST", "/roles"), 201, json={"name": "Unused"})
        john = self.assertQuery(("POST", "/people"), 201, json={
            "full_name": "John Doe",
            "role_ids": [architect["id"]]
        }).json()
        self.assertQuery(("POST", "/people"), 201, json={"full_name": "Jane Smith"})
        self.assertQuery(("POST", "/people"), 201, json={"full_name": "Johanna O'Neil"})

        def _names(path: str):
            return [p["full_name"] for p in self.assertQuery(("GET", path)).json()]

        self.assertListEqual(["Johanna O'Neil", "John Doe"], _names("/people/queries/search?name=joh"))
        self.assertListEqual(["Jane Smith"], _names("/people/queries/search?name=SMITH"))
        self.assertListEqual([], _names("/people/queries/search?name=%25"))
        self.assertQuery(("GET", "/people/queries/search?name=%20"), 400)
        self.assertQuery(("GET", "/people/queries/search"), 400)

        self.assertListEqual(["John Doe"], _names("/people/queries/by-role?role_name=architect"))
        self.assertListEqual([], _names("/people/queries/by-role?role_name=Unused"))
        self.assertListEqual([], _names("/people/queries/by-role?role_name=Unknown"))
        self.assertQuery(("GET", "/people/queries/by-role?role_name="), 400)

        self.assertIs(True, self.assertQuery(("GET", "/people/queries/has-role?role_name=Architect")).json())
        self.assertIs(False, self.assertQuery(("GET", "/people/queries/has-role?role_name=Unused")).json())
        self.assertEqual({"count": 3}, self.assertQuery(("GET", "/people/queries/count")).json())

        details = self.assertQuery(
            ("GET", f"/people/queries/{john['id']}/with-roles"),
            r_schema=_schemas.PersonWithRoles
        ).json()
        self.assertEqual("Architect", details["roles"][0]["name"])
        self.assertEqual(architect["id"], details["roles"][0]["id"])
        self.assertQuery(("GET", f"/people/queries/{architect['id']}/with-roles"), 404)

    def test_walls(self):
        self.login_as_user()
        self.assertListEqual([], self.assertQuery(("GET", "/walls")).json())

        response = self.assertQuery(("POST", "/walls"), 201, json=WALL, r_headers=["Location"], r_schema=_schemas.Wall)
        wall = response.json()
        self.assertTrue(response.headers["Location"].endswith(f"/walls/{wall['id']}"))
        self.assertEqual(20.5, wall["length"])
        self.assertIsNone(wall["u_value"])
        self.assertEqual(wall, self.assertQuery(("GET", f"/walls/{wall['id']}")).json())

        self.assertQuery(("PUT", f"/walls/{wall['id']}"), 204, json={**WALL, "name": "South wall", "orientation": "South"})
        updated = self.assertQuery(("GET", f"/walls/{wall['id']}")).json()
        self.assertEqual("South wall", updated["name"])
        self.assertIsNotNone(updated["updated_at"])
        self.assertEqual(1, len(self.assertQuery(("GET", "/walls")).json()))

        self.assertQuery(("DELETE", f"/walls/{wall['id']}"), 204, r_none=True)
        self.assertQuery(("GET", f"/walls/{wall['id']}"), 404)
        self.assertQuery(("PUT", f"/walls/{wall['id']}"), 404, json=WALL)

    def test_windows(self):
        self.login_as_user()
        window = self.assertQuery(("POST", "/windows"), 201, json=WINDOW, r_schema=_schemas.Window).json()
        self.assertTrue(window["has_screens"])
        self.assertIsNone(window["has_storm_windows"])

        etag = self.assertQuery(("GET", f"/windows/{window['id']}")).headers["ETag"]
        self.assertQuery(("GET", f"/windows/{window['id']}"), 304, headers={"If-None-Match": etag}, r_none=True)
        self.assertQuery(("PUT", f"/windows/{window['id']}"), 204, json={**WINDOW, "has_storm_windows": False})
        self.assertIs(False, self.assertQuery(("GET", f"/windows/{window['id']}")).json()["has_storm_windows"])
        self.assertQuery(("PUT", f"/windows/{window['id']}"), 412, json=WINDOW, headers={"If-Match": etag})

        self.assertQuery(("DELETE", f"/windows/{window['id']}"), 204)
        self.assertListEqual([], self.assertQuery(("GET", "/windows")).json())

    def test_database_maintenance(self):
        self.login_as_admin()
        self.assertQuery(("POST", "/roles"), 201, json={"name": "Guest"})

        stats = self.assertQuery(("GET", "/database/stats"), r_schema=_schemas.DatabaseStats).json()
        self.assertEqual({"roles": 1, "people": 0, "walls": 0, "windows": 0, "users": 1}, stats)

        stats = self.assertQuery(("POST", "/database/seed")).json()
        self.assertEqual(1, stats["roles"])
        self.assertEqual(2, stats["people"])

        self.assertQuery(("POST", "/database/reset"))
        self.assertEqual(
            {"roles": 0, "people": 0, "walls": 0, "windows": 0, "users": 0},
            self.assertQuery(("GET", "/database/stats")).json()
        )
        stats = self.assertQuery(("POST", "/database/seed")).json()
        self.assertEqual(3, stats["roles"])
        self.assertEqual(2, stats["people"])

        # the access token is still valid, but its user has gone
        self.assertQuery(("GET", "/roles"), 401)


class AuthAPITests(utils.BaseAPITests):
    def _get_reset_token(self) -> str:
        message = emails.get_email_service().sent[-1]
        self.assertEqual("Reset your password", message.subject)
        return message.body.split("token=")[1].split()[0]

    def test_register(self):
        token = self.assertQuery(
            ("POST", "/auth/register"),
            json={"email": " Alice@Example.com", "password": "super secret", "first_name": "Alice"},
            r_schema=_schemas.Token
        ).json()
        self.assertEqual("bearer", token["token_type"])
        self.assertEqual(15 * 60, token["expires_in"])
        self.token = token["access_token"]

        me = self.assertQuery(("GET", "/auth/me"), r_schema=_schemas.UserInfo).json()
        self.assertEqual("alice@example.com", me["email"])
        self.assertEqual("Alice", me["first_name"])
        self.assertListEqual(["User"], me["roles"])
        self.assertFalse(me["locked"])

        self.token = None
        self.assertQuery(("POST", "/auth/register"), 400, json={"email": "alice@example.com", "password": "other secret"})
        self.assertQuery(("POST", "/auth/register"), 400, json={"email": "bob@example.com", "password": "short"})

    def test_login(self):
        self.make_user()
        self.assertQuery(("POST", "/auth/login"), 401, json={"email": "user@example.com", "password": "wrong horse"})
        self.assertQuery(("POST", "/auth/login"), 401, json={"email": "nobody@example.com", "password": "correct horse"})
        self.assertQuery(("POST", "/auth/login"), 400, json={"email": "user@example.com"})

        token = self.login("USER@example.com", "correct horse")
        self.assertIsNotNone(token["refresh_token"])
        self.assertIn("refreshToken", self.client.cookies)
        self.assertEqual("user@example.com", self.assertQuery(("GET", "/auth/me")).json()["email"])

    def test_login_with_form(self):
        self.make_user()
        self.client.cookies.clear()
        form = {"username": "User@Example.com", "password": "correct horse"}
        token = self.assertQuery(("POST", "/auth/token"), data=form, r_schema=_schemas.Token).json()
        self.assertEqual("bearer", token["token_type"])
        self.assertIn("refreshToken", self.client.cookies)
        self.token = token["access_token"]
        self.assertEqual("user@example.com", self.assertQuery(("GET", "/auth/me")).json()["email"])

        self.token = None
        self.assertQuery(("POST", "/auth/token"), 401, data={"username": "user@example.com", "password": "wrong horse"})
        self.assertQuery(("POST", "/auth/token"), 400, data={"username": "user@example.com"})
        self.assertQuery(("POST", "/auth/token"), 400, json={"email": "user@example.com", "password": "correct horse"})

        # the interactive docs use this endpoint to obtain bearer tokens
        schema = self.assertQuery(("GET", "/openapi.json")).json()
        schemes = schema["components"]["securitySchemes"].values()
        token_urls = [s["flows"]["password"]["tokenUrl"] for s in schemes if s["type"] == "oauth2"]
        self.assertListEqual(["auth/token"], token_urls)

    def test_locked_accounts(self):
        user_id = self.make_user()
        self.login()
        refresh_token = self.login()["refresh_token"]
        with database.get_new_session() as session:
            accounts.set_locked(session, accounts.load(session, user_id), True)

        response = self.assertQuery(("POST", "/auth/login"), 401, json={"email": "user@example.com", "password": "correct horse"})
        self.assertEqual("Account is locked", response.json()["message"])
        self.assertQuery(("POST", "/auth/refresh"), 401, json={"refresh_token": refresh_token})
        self.assertQuery(("GET", "/auth/me"), 401)

        with database.get_new_session() as session:
            accounts.set_locked(session, accounts.load(session, user_id), False)
        self.login()

    def test_refresh_token_rotation(self):
        self.make_user()
        first = self.login()["refresh_token"]

        second = self.assertQuery(("POST", "/auth/refresh"), json={"refresh_token": first}).json()
        self.assertNotEqual(first, second["refresh_token"])
        self.token = second["access_token"]
        self.assertQuery(("GET", "/auth/me"))

        response = self.assertQuery(("POST", "/auth/refresh"), 401, json={"refresh_token": first})
        self.assertEqual("Refresh token has been revoked", response.json()["message"])
        self.assertQuery(("POST", "/auth/refresh"), 401, json={"refresh_token": "unknown"})

        # the cookie set by the last successful refresh is used without body
        self.assertQuery(("POST", "/auth/refresh"))
        self.client.cookies.clear()
        self.assertQuery(("POST", "/auth/refresh"), 400)

    def test_revoke_and_logout(self):
        self.make_user()
        self.make_user("other@example.com", "other password")
        foreign = self.login("other@example.com", "other password")["refresh_token"]
        first = self.login()["refresh_token"]
        second = self.login()["refresh_token"]

        self.assertQuery(("POST", "/auth/revoke"), json={"refresh_token": first}, r_schema=_schemas.Message)
        self.assertQuery(("POST", "/auth/revoke"), 400, json={"refresh_token": first})
        self.assertQuery(("POST", "/auth/revoke"), 400, json={"refresh_token": "unknown"})
        self.assertQuery(("POST", "/auth/revoke"), 400, json={"refresh_token": foreign})
        self.assertQuery(("POST", "/auth/refresh"), 401, json={"refresh_token": first})

        self.assertQuery(("POST", "/auth/logout"), r_schema=_schemas.Message)
        self.assertQuery(("POST", "/auth/refresh"), 401, json={"refresh_token": second})
        self.assertQuery(("POST", "/auth/refresh"), json={"refresh_token": foreign})

        self.token = None
        self.assertQuery(("POST", "/auth/logout"), 401)

    def test_password_reset(self):
        self.make_user()
        old_refresh_token = self.login()["refresh_token"]
        self.token = None
        sent = len(emails.get_email_service().sent)

        message = self.assertQuery(("POST", "/auth/forgot-password"), json={"email": "nobody@example.com"}).json()
        self.assertEqual(sent, len(emails.get_email_service().sent))
        self.assertEqual(
            message,
            self.assertQuery(("POST", "/auth/forgot-password"), json={"email": "user@example.com"}).json()
        )
        self.assertEqual(sent + 1, len(emails.get_email_service().sent))
        outdated = self._get_reset_token()
        self.assertQuery(("POST", "/auth/forgot-password"), json={"email": "user@example.com"})
        token = self._get_reset_token()
        self.assertNotEqual(outdated, token)

        validation = self.assertQuery(("GET", f"/auth/validate-reset-token?token={token}")).json()
        self.assertTrue(validation["is_valid"])
        self.assertFalse(validation["is_used"])
        self.assertTrue(self.assertQuery(("GET", f"/auth/validate-reset-token?token={outdated}")).json()["is_expired"])
        self.assertEqual(
            {"is_valid": False, "is_expired": False, "is_used": False, "expires_at": None},
            self.assertQuery(("GET", "/auth/validate-reset-token?token=unknown")).json()
        )

        self.assertQuery(("POST", "/auth/reset-password"), 400, json={"token": outdated, "new_password": "new password"})
        self.assertQuery(("POST", "/auth/reset-password"), 400, json={"token": token, "new_password": "short"})
        self.assertQuery(("POST", "/auth/reset-password"), json={"token": token, "new_password": "new password"})
        self.assertQuery(("POST", "/auth/reset-password"), 400, json={"token": token, "new_password": "newer password"})
        self.assertEqual("Your password has been changed", emails.get_email_service().sent[-1].subject)

        validation = self.assertQuery(("GET", f"/auth/validate-reset-token?token={token}")).json()
        self.assertFalse(validation["is_valid"])
        self.assertTrue(validation["is_used"])

        self.assertQuery(("POST", "/auth/login"), 401, json={"email": "user@example.com", "password": "correct horse"})
        self.assertQuery(("POST", "/auth/refresh"), 401, json={"refresh_token": old_refresh_token})
        self.login("user@example.com", "new password")

    def test_login_rate_limit(self):
        self.make_user()
        self.app.state.rate_limiter.reset()
        for _ in range(5):
            self.assertQuery(("POST", "/auth/login"), 401, json={"email": "user@example.com", "password": "wrong horse"})

        response = self.assertQuery(
            ("POST", "/auth/login"),
            429,
            json={"email": "user@example.com", "password": "correct horse"},
            r_headers=["Retry-After"],
            r_schema=_schemas.APIError
        )
        self.assertGreater(int(response.headers["Retry-After"]), 0)
        self.assertLessEqual(int(response.headers["Retry-After"]), 15 * 60)

        # other clients and other endpoints are not affected
        self.assertQuery(
            ("POST", "/auth/login"),
            json={"email": "user@example.com", "password": "correct horse"},
            headers={"X-Forwarded-For": "192.0.2.1"}
        )
        self.assertQuery(("GET", "/health"))


class ProductionAPITests(utils.BaseAPITests):
    def get_config(self):
        config = super().get_config()
        config.server.environment = "production"
        return config

    def test_no_database_maintenance(self):
        self.assertQuery(("POST", "/database/reset"), 404)
        self.assertQuery(("POST", "/database/seed"), 404)
        self.assertQuery(("GET", "/database/stats"), 404)
        self.assertEqual("production", self.assertQuery(("GET", "/status")).json()["environment"])


if __name__ == '__main__':
    _unittest.main()
