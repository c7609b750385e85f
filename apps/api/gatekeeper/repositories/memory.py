"""In-memory credential and permission store used by the API and tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Iterable
from uuid import uuid4

_AUTHENTICATION_UPDATABLE_FIELDS = frozenset(
    {"login", "password_hash", "active", "password_token_reset", "password_token_expiry_date"}
)
_PROFILE_UPDATABLE_FIELDS = frozenset({"name", "description"})
_GRANT_UPDATABLE_FIELDS = frozenset({"method", "path", "description"})


class StoreUnavailableError(RuntimeError):
    """Raised when the backing store cannot serve a request."""


@dataclass(slots=True)
class AuthenticationRecord:
    id: str
    login: str
    password_hash: str | None
    active: bool
    created_at: datetime
    updated_at: datetime
    password_token_reset: str | None = None
    password_token_expiry_date: datetime | None = None


@dataclass(slots=True)
class ExternalAuthenticationRecord:
    authentication_id: str
    external_id: str
    provider: str
    email: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class ProfileRecord:
    id: str
    name: str
    description: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class GrantRecord:
    id: str
    method: str
    path: str
    description: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class InMemoryStore:
    """Deterministic persistence layer standing in for the relational datastore.

    Every accessor is a coroutine so callers are written against the same
    suspension points a database-backed store would have. Returned records are
    copies; mutation goes through the explicit update methods.
    """

    authentications: dict[str, AuthenticationRecord] = field(default_factory=dict)
    external_authentications: dict[tuple[str, str], ExternalAuthenticationRecord] = field(default_factory=dict)
    profiles: dict[str, ProfileRecord] = field(default_factory=dict)
    grants: dict[str, GrantRecord] = field(default_factory=dict)
    profiles_by_authentication: dict[str, set[str]] = field(default_factory=dict)
    grants_by_profile: dict[str, set[str]] = field(default_factory=dict)
    lookup_failpoint_operation: str | None = None
    lookup_failpoint_message: str = "Injected store lookup failure"

    # Failure injection

    def fail_next_lookup(self, operation: str, message: str | None = None) -> None:
        """Make the next call of ``operation`` raise ``StoreUnavailableError`` once."""
        self.lookup_failpoint_operation = operation
        if message is not None:
            self.lookup_failpoint_message = message

    def _lookup(self, operation: str) -> None:
        if self.lookup_failpoint_operation != operation:
            return
        self.lookup_failpoint_operation = None
        raise StoreUnavailableError(self.lookup_failpoint_message)

    # Authentications

    async def create_authentication(
        self,
        *,
        login: str,
        password_hash: str,
        active: bool = True,
        authentication_id: str | None = None,
    ) -> AuthenticationRecord:
        now = datetime.now(UTC)
        record = AuthenticationRecord(
            id=authentication_id or str(uuid4()),
            login=login,
            password_hash=password_hash,
            active=active,
            created_at=now,
            updated_at=now,
        )
        self.authentications[record.id] = record
        return _public(record)

    async def list_authentications(self) -> list[AuthenticationRecord]:
        self._lookup("list_authentications")
        records = sorted(self.authentications.values(), key=lambda record: record.created_at)
        return [_public(record) for record in records]

    async def find_by_id(self, authentication_id: str) -> AuthenticationRecord | None:
        """Lookup by id; the password hash is stripped from the result."""
        self._lookup("find_by_id")
        record = self.authentications.get(authentication_id)
        return _public(record) if record is not None else None

    async def find_by_id_with_password(self, authentication_id: str) -> AuthenticationRecord | None:
        self._lookup("find_by_id_with_password")
        record = self.authentications.get(authentication_id)
        return replace(record) if record is not None else None

    async def find_by_login(self, login: str) -> AuthenticationRecord | None:
        self._lookup("find_by_login")
        for record in self.authentications.values():
            if record.login == login:
                return _public(record)
        return None

    async def find_by_reset_token(self, token: str) -> AuthenticationRecord | None:
        self._lookup("find_by_reset_token")
        if not token:
            return None
        for record in self.authentications.values():
            if record.password_token_reset == token:
                return _public(record)
        return None

    async def update_authentication(self, authentication_id: str, **changes: Any) -> AuthenticationRecord | None:
        record = self.authentications.get(authentication_id)
        if record is None:
            return None
        _apply_changes(record, changes, _AUTHENTICATION_UPDATABLE_FIELDS)
        return _public(record)

    async def delete_authentication(self, authentication_id: str) -> bool:
        record = self.authentications.pop(authentication_id, None)
        if record is None:
            return False
        self.profiles_by_authentication.pop(authentication_id, None)
        for key in [key for key, link in self.external_authentications.items() if link.authentication_id == authentication_id]:
            del self.external_authentications[key]
        return True

    # External identity links

    async def find_external_by_authentication_id(self, authentication_id: str) -> list[ExternalAuthenticationRecord]:
        self._lookup("find_external_by_authentication_id")
        links = (link for link in self.external_authentications.values() if link.authentication_id == authentication_id)
        return [replace(link) for link in self._sorted_links(links)]

    async def find_external(self, external_id: str, provider: str) -> ExternalAuthenticationRecord | None:
        self._lookup("find_external")
        link = self.external_authentications.get((external_id, provider))
        return replace(link) if link is not None else None

    async def create_external_authentication(
        self,
        *,
        authentication_id: str,
        external_id: str,
        provider: str,
        email: str | None,
    ) -> ExternalAuthenticationRecord:
        now = datetime.now(UTC)
        link = ExternalAuthenticationRecord(
            authentication_id=authentication_id,
            external_id=external_id,
            provider=provider,
            email=email,
            created_at=now,
            updated_at=now,
        )
        self.external_authentications[(external_id, provider)] = link
        return replace(link)

    async def delete_external_authentication(self, external_id: str, provider: str) -> bool:
        return self.external_authentications.pop((external_id, provider), None) is not None

    # Profiles

    async def create_profile(
        self,
        *,
        name: str,
        description: str | None,
        profile_id: str | None = None,
    ) -> ProfileRecord:
        now = datetime.now(UTC)
        record = ProfileRecord(
            id=profile_id or str(uuid4()),
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self.profiles[record.id] = record
        return replace(record)

    async def list_profiles(self) -> list[ProfileRecord]:
        self._lookup("list_profiles")
        return [replace(record) for record in sorted(self.profiles.values(), key=lambda record: record.created_at)]

    async def find_profile_by_id(self, profile_id: str) -> ProfileRecord | None:
        self._lookup("find_profile_by_id")
        record = self.profiles.get(profile_id)
        return replace(record) if record is not None else None

    async def find_profile_by_name(self, name: str) -> ProfileRecord | None:
        self._lookup("find_profile_by_name")
        for record in self.profiles.values():
            if record.name == name:
                return replace(record)
        return None

    async def find_profiles_by_ids(self, profile_ids: Iterable[str]) -> list[ProfileRecord]:
        self._lookup("find_profiles_by_ids")
        wanted = set(profile_ids)
        records = [record for record in self.profiles.values() if record.id in wanted]
        return [replace(record) for record in sorted(records, key=lambda record: record.created_at)]

    async def update_profile(self, profile_id: str, **changes: Any) -> ProfileRecord | None:
        record = self.profiles.get(profile_id)
        if record is None:
            return None
        _apply_changes(record, changes, _PROFILE_UPDATABLE_FIELDS)
        return replace(record)

    async def delete_profile(self, profile_id: str) -> bool:
        record = self.profiles.pop(profile_id, None)
        if record is None:
            return False
        self.grants_by_profile.pop(profile_id, None)
        for bound in self.profiles_by_authentication.values():
            bound.discard(profile_id)
        return True

    # Grants

    async def create_grant(
        self,
        *,
        method: str,
        path: str,
        description: str | None,
        grant_id: str | None = None,
    ) -> GrantRecord:
        now = datetime.now(UTC)
        record = GrantRecord(
            id=grant_id or str(uuid4()),
            method=method,
            path=path,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self.grants[record.id] = record
        return replace(record)

    async def list_grants(self) -> list[GrantRecord]:
        self._lookup("list_grants")
        return [replace(record) for record in sorted(self.grants.values(), key=lambda record: record.created_at)]

    async def find_grant_by_id(self, grant_id: str) -> GrantRecord | None:
        self._lookup("find_grant_by_id")
        record = self.grants.get(grant_id)
        return replace(record) if record is not None else None

    async def find_grants_by_ids(self, grant_ids: Iterable[str]) -> list[GrantRecord]:
        self._lookup("find_grants_by_ids")
        wanted = set(grant_ids)
        records = [record for record in self.grants.values() if record.id in wanted]
        return [replace(record) for record in sorted(records, key=lambda record: record.created_at)]

    async def find_grant_by_method_and_path(self, method: str, path: str) -> GrantRecord | None:
        self._lookup("find_grant_by_method_and_path")
        for record in self.grants.values():
            if record.method == method and record.path == path:
                return replace(record)
        return None

    async def update_grant(self, grant_id: str, **changes: Any) -> GrantRecord | None:
        record = self.grants.get(grant_id)
        if record is None:
            return None
        _apply_changes(record, changes, _GRANT_UPDATABLE_FIELDS)
        return replace(record)

    async def delete_grant(self, grant_id: str) -> bool:
        record = self.grants.pop(grant_id, None)
        if record is None:
            return False
        for bound in self.grants_by_profile.values():
            bound.discard(grant_id)
        return True

    # Associations

    async def get_profiles_by_authentication(self, authentication_id: str) -> list[ProfileRecord]:
        self._lookup("get_profiles_by_authentication")
        profile_ids = self.profiles_by_authentication.get(authentication_id, set())
        records = [self.profiles[profile_id] for profile_id in profile_ids if profile_id in self.profiles]
        return [replace(record) for record in sorted(records, key=lambda record: record.created_at)]

    async def get_authentications_by_profile(self, profile_id: str) -> list[AuthenticationRecord]:
        self._lookup("get_authentications_by_profile")
        records = [
            self.authentications[authentication_id]
            for authentication_id, profile_ids in self.profiles_by_authentication.items()
            if profile_id in profile_ids and authentication_id in self.authentications
        ]
        return [_public(record) for record in sorted(records, key=lambda record: record.created_at)]

    async def add_profiles_to_authentication(self, authentication_id: str, profile_ids: Iterable[str]) -> None:
        self.profiles_by_authentication.setdefault(authentication_id, set()).update(profile_ids)

    async def remove_profiles_from_authentication(self, authentication_id: str, profile_ids: Iterable[str]) -> None:
        bound = self.profiles_by_authentication.get(authentication_id)
        if bound is None:
            return
        bound.difference_update(profile_ids)

    async def get_grants_by_profile(self, profile_id: str) -> list[GrantRecord]:
        self._lookup("get_grants_by_profile")
        grant_ids = self.grants_by_profile.get(profile_id, set())
        records = [self.grants[grant_id] for grant_id in grant_ids if grant_id in self.grants]
        return [replace(record) for record in sorted(records, key=lambda record: record.created_at)]

    async def get_grants_by_profiles(self, profile_ids: Iterable[str]) -> list[GrantRecord]:
        """Union of the grants bound to any of ``profile_ids``, deduplicated by grant id."""
        self._lookup("get_grants_by_profiles")
        seen: dict[str, GrantRecord] = {}
        for profile_id in profile_ids:
            for grant_id in self.grants_by_profile.get(profile_id, set()):
                record = self.grants.get(grant_id)
                if record is not None:
                    seen.setdefault(grant_id, record)
        return [replace(record) for record in sorted(seen.values(), key=lambda record: record.created_at)]

    async def get_profiles_by_grant(self, grant_id: str) -> list[ProfileRecord]:
        self._lookup("get_profiles_by_grant")
        records = [
            self.profiles[profile_id]
            for profile_id, grant_ids in self.grants_by_profile.items()
            if grant_id in grant_ids and profile_id in self.profiles
        ]
        return [replace(record) for record in sorted(records, key=lambda record: record.created_at)]

    async def add_grants_to_profile(self, profile_id: str, grant_ids: Iterable[str]) -> None:
        self.grants_by_profile.setdefault(profile_id, set()).update(grant_ids)

    async def remove_grants_from_profile(self, profile_id: str, grant_ids: Iterable[str]) -> None:
        bound = self.grants_by_profile.get(profile_id)
        if bound is None:
            return
        bound.difference_update(grant_ids)

    @staticmethod
    def _sorted_links(links: Iterable[ExternalAuthenticationRecord]) -> list[ExternalAuthenticationRecord]:
        return sorted(links, key=lambda link: link.created_at)


def _public(record: AuthenticationRecord) -> AuthenticationRecord:
    return replace(record, password_hash=None)


def _apply_changes(record: Any, changes: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Unsupported fields for update: {sorted(unknown)}")
    for key, value in changes.items():
        setattr(record, key, value)
    record.updated_at = datetime.now(UTC)
