"""Authorization decisions against the in-memory credential and permission store."""

from __future__ import annotations

from datetime import UTC, datetime
import unittest

from gatekeeper.domain.authorization import (
    AuthorizationEngine,
    Decision,
    DenyReason,
    find_matching_grant,
    grant_matches,
)
from gatekeeper.repositories.memory import GrantRecord, InMemoryStore


class _EngineCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store = InMemoryStore()
        self.engine = AuthorizationEngine(self.store, self.store)
        self.viewer = await self.store.create_profile(name="Viewer", description=None)
        self.user = await self.store.create_authentication(login="user@example.com", password_hash="x")
        await self.store.add_profiles_to_authentication(self.user.id, [self.viewer.id])

    async def _grant(self, method: str, path: str) -> GrantRecord:
        grant = await self.store.create_grant(method=method, path=path, description=None)
        await self.store.add_grants_to_profile(self.viewer.id, [grant.id])
        return grant


class AuthorizationEngineTests(_EngineCase):
    async def test_matching_grant_allows_and_reports_grant(self) -> None:
        grant = await self._grant("GET", "/reports/:id")

        result = await self.engine.authorize(self.user.id, "GET", "/reports/42")

        self.assertEqual(result.decision, Decision.ALLOW)
        self.assertTrue(result.allowed)
        self.assertEqual(result.matched_grant_id, grant.id)
        self.assertFalse(result.admin_bypass)

    async def test_method_mismatch_denies(self) -> None:
        await self._grant("GET", "/reports/:id")

        result = await self.engine.authorize(self.user.id, "DELETE", "/reports/42")

        self.assertEqual(result.decision, Decision.DENY)
        self.assertEqual(result.reason, DenyReason.PERMISSION_DENIED)

    async def test_path_outside_template_denies(self) -> None:
        await self._grant("GET", "/reports/:id")

        result = await self.engine.authorize(self.user.id, "GET", "/reports/42/export")

        self.assertEqual(result.reason, DenyReason.PERMISSION_DENIED)

    async def test_principal_without_profiles_is_denied(self) -> None:
        loner = await self.store.create_authentication(login="loner@example.com", password_hash="x")

        result = await self.engine.authorize(loner.id, "GET", "/reports/1")

        self.assertEqual(result.reason, DenyReason.PERMISSION_DENIED)

    async def test_missing_principal_id_is_denied(self) -> None:
        for principal_id in (None, ""):
            result = await self.engine.authorize(principal_id, "GET", "/reports/1")
            self.assertEqual(result.reason, DenyReason.MISSING_PRINCIPAL_ID)

    async def test_unknown_principal_is_denied(self) -> None:
        result = await self.engine.authorize("no-such-principal", "GET", "/reports/1")

        self.assertEqual(result.reason, DenyReason.PRINCIPAL_INACTIVE_OR_MISSING)

    async def test_deactivated_principal_is_denied_even_with_grant(self) -> None:
        await self._grant("GET", "/reports/:id")
        await self.store.update_authentication(self.user.id, active=False)

        result = await self.engine.authorize(self.user.id, "GET", "/reports/1")

        self.assertEqual(result.reason, DenyReason.PRINCIPAL_INACTIVE_OR_MISSING)

    async def test_deactivated_admin_is_denied(self) -> None:
        admin = await self.store.create_profile(name="admin", description=None)
        await self.store.add_profiles_to_authentication(self.user.id, [admin.id])
        await self.store.update_authentication(self.user.id, active=False)

        result = await self.engine.authorize(self.user.id, "GET", "/anything")

        self.assertEqual(result.decision, Decision.DENY)

    async def test_admin_profile_bypasses_grants_in_any_casing(self) -> None:
        for name in ("admin", "Admin", "ADMIN"):
            with self.subTest(name=name):
                store = InMemoryStore()
                engine = AuthorizationEngine(store, store)
                profile = await store.create_profile(name=name, description=None)
                principal = await store.create_authentication(login=f"{name}@example.com", password_hash="x")
                await store.add_profiles_to_authentication(principal.id, [profile.id])

                result = await engine.authorize(principal.id, "DELETE", "/grants/anything")

                self.assertTrue(result.allowed)
                self.assertTrue(result.admin_bypass)

    async def test_admin_bypass_skips_grant_lookup(self) -> None:
        admin = await self.store.create_profile(name="Admin", description=None)
        await self.store.add_profiles_to_authentication(self.user.id, [admin.id])
        self.store.fail_next_lookup("get_grants_by_profiles")

        result = await self.engine.authorize(self.user.id, "POST", "/grants/create")

        self.assertTrue(result.allowed)

    async def test_configured_admin_profile_id_bypasses_regardless_of_name(self) -> None:
        root = await self.store.create_profile(name="Root", description=None, profile_id="root-profile")
        await self.store.add_profiles_to_authentication(self.user.id, [root.id])
        engine = AuthorizationEngine(self.store, self.store, admin_profile_id="root-profile")

        result = await engine.authorize(self.user.id, "PUT", "/auth/x")

        self.assertTrue(result.admin_bypass)

    async def test_grants_from_every_profile_are_considered(self) -> None:
        editor = await self.store.create_profile(name="Editor", description=None)
        grant = await self.store.create_grant(method="PUT", path="/reports/:id", description=None)
        await self.store.add_grants_to_profile(editor.id, [grant.id])
        await self.store.add_profiles_to_authentication(self.user.id, [editor.id])

        result = await self.engine.authorize(self.user.id, "PUT", "/reports/7")

        self.assertEqual(result.matched_grant_id, grant.id)

    async def test_permission_changes_apply_to_next_call(self) -> None:
        first = await self.engine.authorize(self.user.id, "GET", "/reports/1")
        await self._grant("GET", "/reports/:id")
        second = await self.engine.authorize(self.user.id, "GET", "/reports/1")

        self.assertFalse(first.allowed)
        self.assertTrue(second.allowed)

    async def test_store_failure_fails_closed(self) -> None:
        await self._grant("GET", "/reports/:id")

        for operation in ("find_by_id", "get_profiles_by_authentication", "get_grants_by_profiles"):
            with self.subTest(operation=operation):
                self.store.fail_next_lookup(operation)
                with self.assertLogs("gatekeeper.domain.authorization", level="ERROR") as logs:
                    result = await self.engine.authorize(self.user.id, "GET", "/reports/1")

                self.assertEqual(result.decision, Decision.DENY)
                self.assertEqual(result.reason, DenyReason.INTERNAL_ERROR)
                self.assertIn("authz.error", logs.output[0])

    async def test_invalid_stored_grant_path_is_skipped(self) -> None:
        await self._grant("GET", "reports-without-slash")
        valid = await self._grant("GET", "/reports/:id")

        result = await self.engine.authorize(self.user.id, "GET", "/reports/1")

        self.assertEqual(result.matched_grant_id, valid.id)


class GrantMatchingTests(unittest.TestCase):
    def _grant(self, method: str, path: str, grant_id: str = "g-1") -> GrantRecord:
        now = datetime.now(UTC)
        return GrantRecord(id=grant_id, method=method, path=path, description=None, created_at=now, updated_at=now)

    def test_method_comparison_ignores_case(self) -> None:
        self.assertTrue(grant_matches(self._grant("get", "/a"), "GET", "/a"))

    def test_first_matching_grant_is_returned(self) -> None:
        grants = [self._grant("GET", "/a/:x", "g-1"), self._grant("GET", "/a/:y", "g-2")]

        self.assertEqual(find_matching_grant(grants, "GET", "/a/1").id, "g-1")
        self.assertIsNone(find_matching_grant(grants, "POST", "/a/1"))


if __name__ == "__main__":
    unittest.main()
