"""Profile and grant management plus request-time authorization over HTTP."""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile
import unittest

from fastapi.testclient import TestClient

from gatekeeper.core.config import get_settings
from gatekeeper.main import create_app

ADMIN_LOGIN = "admin@example.com"
ADMIN_PASSWORD = "Admin123@"
USER_LOGIN = "viewer@example.com"
USER_PASSWORD = "View123@"
FORBIDDEN = {"message": "Forbidden Access"}


class _SettingsEnvCase(unittest.TestCase):
    _env_keys = (
        "GATEKEEPER_AUTH_STRATEGY",
        "GATEKEEPER_JWT_SECRET",
        "GATEKEEPER_BOOTSTRAP_ADMIN_LOGIN",
        "GATEKEEPER_BOOTSTRAP_ADMIN_PASSWORD",
        "GATEKEEPER_PERMISSIONS_FILE",
    )

    def extra_env(self) -> dict[str, str]:
        return {}

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["GATEKEEPER_AUTH_STRATEGY"] = "jwt"
        os.environ["GATEKEEPER_JWT_SECRET"] = "test-jwt-secret-with-32-plus-bytes"
        os.environ["GATEKEEPER_BOOTSTRAP_ADMIN_LOGIN"] = ADMIN_LOGIN
        os.environ["GATEKEEPER_BOOTSTRAP_ADMIN_PASSWORD"] = ADMIN_PASSWORD
        os.environ.pop("GATEKEEPER_PERMISSIONS_FILE", None)
        os.environ.update(self.extra_env())
        get_settings.cache_clear()

        self.app = create_app()
        self.store = self.app.state.store
        self.client = TestClient(self.app)
        self.client.__enter__()
        self.admin = self._bearer(ADMIN_LOGIN, ADMIN_PASSWORD)

    def tearDown(self) -> None:
        self.client.__exit__(None, None, None)
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()

    def _bearer(self, login: str, password: str) -> dict[str, str]:
        response = self.client.post("/auth/login", json={"login": login, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return {"Authorization": f"Bearer {response.json()['tokenOrSessionId']}"}

    def _register_user(self) -> tuple[str, dict[str, str]]:
        response = self.client.post("/auth/register", json={"login": USER_LOGIN, "password": USER_PASSWORD})
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["auth"]["id"], self._bearer(USER_LOGIN, USER_PASSWORD)

    def _create_grant(self, method: str, path: str) -> dict:
        response = self.client.post("/grants/create", json={"method": method, "path": path}, headers=self.admin)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def _create_profile(self, name: str) -> dict:
        response = self.client.post("/profile/create", json={"name": name}, headers=self.admin)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()


class AuthorizationApiTests(_SettingsEnvCase):
    def test_principal_without_grant_gets_uniform_403(self) -> None:
        _, user = self._register_user()

        for method, path in (("GET", "/grants/list"), ("GET", "/profile/list"), ("POST", "/grants/create")):
            with self.subTest(method=method, path=path):
                response = self.client.request(method, path, headers=user, json={"method": "GET", "path": "/x"})
                self.assertEqual(response.status_code, 403)
                self.assertEqual(response.json(), FORBIDDEN)

    def test_unauthenticated_request_is_401_not_403(self) -> None:
        response = self.client.get("/grants/list")

        self.assertEqual(response.status_code, 401)

    def test_viewer_scenario_allows_only_granted_method_and_path(self) -> None:
        user_id, user = self._register_user()
        viewer = self._create_profile("Viewer")
        grant = self._create_grant("GET", "/auth/:id/profiles")
        self.client.put(f"/profile/{viewer['id']}/add-grants", json=[grant["id"]], headers=self.admin)
        added = self.client.put(f"/profile/{user_id}/add-profiles", json=[viewer["id"]], headers=self.admin)
        self.assertEqual(added.status_code, 204)

        allowed = self.client.get(f"/auth/{user_id}/profiles", headers=user)
        wrong_method = self.client.delete(f"/auth/{user_id}", headers=user)
        wrong_path = self.client.get(f"/auth/{user_id}", headers=user)

        self.assertEqual(allowed.status_code, 200)
        self.assertEqual({profile["name"] for profile in allowed.json()}, {"UserComum", "Viewer"})
        self.assertEqual(wrong_method.status_code, 403)
        self.assertEqual(wrong_path.status_code, 403)

    def test_granting_and_revoking_take_effect_on_next_request(self) -> None:
        _, user = self._register_user()
        profiles = self.client.get("/profile/list", headers=self.admin).json()
        user_profile = next(profile for profile in profiles if profile["name"] == "UserComum")
        grant = self._create_grant("get", "/grants/list")
        self.assertEqual(grant["method"], "GET")

        self.assertEqual(self.client.get("/grants/list", headers=user).status_code, 403)
        self.client.put(f"/profile/{user_profile['id']}/add-grants", json=[grant["id"]], headers=self.admin)
        self.assertEqual(self.client.get("/grants/list", headers=user).status_code, 200)
        self.client.put(f"/profile/{user_profile['id']}/remove-grants", json=[grant["id"]], headers=self.admin)
        self.assertEqual(self.client.get("/grants/list", headers=user).status_code, 403)

    def test_deactivated_principal_with_valid_token_is_forbidden(self) -> None:
        user_id, user = self._register_user()
        grant = self._create_grant("GET", "/grants/list")
        user_profile_id = self.app.state.default_profile_id
        self.client.put(f"/profile/{user_profile_id}/add-grants", json=[grant["id"]], headers=self.admin)

        toggled = self.client.put(f"/auth/toggle-status/{user_id}", params={"toggle": "false"}, headers=self.admin)
        self.assertEqual(toggled.status_code, 204)

        response = self.client.get("/grants/list", headers=user)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), FORBIDDEN)

    def test_store_failure_during_authorization_is_forbidden(self) -> None:
        self.store.fail_next_lookup("get_profiles_by_authentication")

        with self.assertLogs("gatekeeper.domain.authorization", level="ERROR"):
            response = self.client.get("/grants/list", headers=self.admin)

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), FORBIDDEN)

    def test_denial_reason_is_logged_but_not_returned(self) -> None:
        _, user = self._register_user()

        with self.assertLogs("gatekeeper.routes.dependencies", level="WARNING") as logs:
            response = self.client.get("/grants/list", headers=user)

        self.assertEqual(response.json(), FORBIDDEN)
        self.assertTrue(any("reason=PERMISSION_DENIED" in line for line in logs.output))


class ProfileApiTests(_SettingsEnvCase):
    def test_seeded_profiles_exist(self) -> None:
        names = {profile["name"] for profile in self.client.get("/profile/list", headers=self.admin).json()}

        self.assertEqual(names, {"UserComum", "Admin"})

    def test_create_update_delete_profile(self) -> None:
        profile = self._create_profile("Auditor")

        duplicate = self.client.post("/profile/create", json={"name": "Auditor"}, headers=self.admin)
        blank = self.client.put(f"/profile/{profile['id']}", json={"name": "  "}, headers=self.admin)
        updated = self.client.put(f"/profile/{profile['id']}", json={"description": "Reads reports"}, headers=self.admin)
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(blank.status_code, 400)
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["name"], "Auditor")
        self.assertEqual(updated.json()["description"], "Reads reports")

        self.assertEqual(self.client.delete(f"/profile/{profile['id']}", headers=self.admin).status_code, 204)
        self.assertEqual(self.client.get(f"/profile/{profile['id']}", headers=self.admin).status_code, 404)

    def test_grant_binding_requires_known_ids(self) -> None:
        profile = self._create_profile("Auditor")
        grant = self._create_grant("GET", "/reports/:id")

        unknown_grant = self.client.put(f"/profile/{profile['id']}/add-grants", json=["missing"], headers=self.admin)
        empty = self.client.put(f"/profile/{profile['id']}/add-grants", json=[], headers=self.admin)
        added = self.client.put(f"/profile/{profile['id']}/add-grants", json=[grant["id"]], headers=self.admin)
        self.assertEqual(unknown_grant.status_code, 404)
        self.assertEqual(empty.status_code, 400)
        self.assertEqual(added.status_code, 204)

        grants = self.client.get(f"/profile/{profile['id']}/grants", headers=self.admin).json()
        self.assertEqual([item["path"] for item in grants], ["/reports/:id"])
        profiles = self.client.get(f"/grants/{grant['id']}/profiles", headers=self.admin).json()
        self.assertEqual([item["name"] for item in profiles], ["Auditor"])

    def test_profile_assignment_requires_known_principal(self) -> None:
        user_id, _ = self._register_user()
        profile = self._create_profile("Auditor")

        unknown_user = self.client.put("/profile/nobody/add-profiles", json=[profile["id"]], headers=self.admin)
        unknown_profile = self.client.put(f"/profile/{user_id}/add-profiles", json=["missing"], headers=self.admin)
        self.assertEqual(unknown_user.status_code, 404)
        self.assertEqual(unknown_profile.status_code, 404)

        self.client.put(f"/profile/{user_id}/add-profiles", json=[profile["id"]], headers=self.admin)
        members = self.client.get(f"/profile/{profile['id']}/authentications", headers=self.admin).json()
        self.assertEqual([member["login"] for member in members], [USER_LOGIN])

        self.client.put(f"/profile/{user_id}/remove-profiles", json=[profile["id"]], headers=self.admin)
        members = self.client.get(f"/profile/{profile['id']}/authentications", headers=self.admin).json()
        self.assertEqual(members, [])


class GrantApiTests(_SettingsEnvCase):
    def test_create_rejects_duplicates_and_unknown_verbs(self) -> None:
        self._create_grant("GET", "/reports/:id")

        duplicate = self.client.post("/grants/create", json={"method": "GET", "path": "/reports/:id"}, headers=self.admin)
        bad_verb = self.client.post("/grants/create", json={"method": "FETCH", "path": "/reports"}, headers=self.admin)
        bad_path = self.client.post("/grants/create", json={"method": "GET", "path": "reports"}, headers=self.admin)
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(bad_verb.status_code, 400)
        self.assertEqual(bad_path.status_code, 400)

    def test_update_and_delete_grant(self) -> None:
        first = self._create_grant("GET", "/reports/:id")
        second = self._create_grant("PUT", "/reports/:id")

        collision = self.client.put(f"/grants/{second['id']}", json={"method": "GET"}, headers=self.admin)
        moved = self.client.put(f"/grants/{second['id']}", json={"path": "/reports/:id/notes"}, headers=self.admin)
        self.assertEqual(collision.status_code, 409)
        self.assertEqual(moved.status_code, 200)
        self.assertEqual(moved.json()["method"], "PUT")

        self.assertEqual(self.client.delete(f"/grants/{first['id']}", headers=self.admin).status_code, 204)
        self.assertEqual(self.client.get(f"/grants/{first['id']}", headers=self.admin).status_code, 404)
        self.assertEqual(self.client.delete(f"/grants/{first['id']}", headers=self.admin).status_code, 404)


class PermissionSeedTests(_SettingsEnvCase):
    def extra_env(self) -> dict[str, str]:
        self._tmpdir = tempfile.TemporaryDirectory()
        path = Path(self._tmpdir.name) / "permissions.json"
        path.write_text(
            json.dumps(
                [
                    {"method": "get", "path": "/grants/list", "description": "List grants", "profiles": ["UserComum"]},
                    {"method": "GET", "path": "/profile/list", "profiles": ["Admin", "Ghost"]},
                ]
            ),
            encoding="utf-8",
        )
        return {"GATEKEEPER_PERMISSIONS_FILE": str(path)}

    def tearDown(self) -> None:
        super().tearDown()
        self._tmpdir.cleanup()

    def test_seeded_grants_authorize_registered_users(self) -> None:
        _, user = self._register_user()

        self.assertEqual(self.client.get("/grants/list", headers=user).status_code, 200)
        self.assertEqual(self.client.get("/profile/list", headers=user).status_code, 403)
        paths = {grant["path"] for grant in self.client.get("/grants/list", headers=self.admin).json()}
        self.assertEqual(paths, {"/grants/list", "/profile/list"})


if __name__ == "__main__":
    unittest.main()
