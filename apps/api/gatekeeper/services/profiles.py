"""Profile service layer."""

from __future__ import annotations

from gatekeeper.errors import bad_request, conflict, not_found
from gatekeeper.repositories.memory import InMemoryStore, ProfileRecord
from gatekeeper.schemas.auth import Authentication
from gatekeeper.schemas.grant import Grant
from gatekeeper.schemas.profile import Profile


def to_profile(record: ProfileRecord) -> Profile:
    return Profile(
        id=record.id,
        name=record.name,
        description=record.description,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _present(value: str | None) -> bool:
    return value is not None and bool(value.strip())


class ProfileService:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def list_profiles(self) -> list[Profile]:
        return [to_profile(record) for record in await self._store.list_profiles()]

    async def get_profile(self, profile_id: str) -> Profile:
        return to_profile(await self._require(profile_id))

    async def create_profile(self, *, name: str, description: str | None) -> Profile:
        if await self._store.find_profile_by_name(name) is not None:
            raise conflict("Profile already exists")
        return to_profile(await self._store.create_profile(name=name, description=description))

    async def update_profile(
        self,
        profile_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Profile:
        await self._require(profile_id)

        changes: dict[str, str] = {}
        if _present(name):
            existing = await self._store.find_profile_by_name(name)
            if existing is not None and existing.id != profile_id:
                raise conflict("Profile already exists")
            changes["name"] = name
        if _present(description):
            changes["description"] = description
        if not changes:
            raise bad_request("No valid fields provided for update")

        record = await self._store.update_profile(profile_id, **changes)
        if record is None:
            raise not_found("Profile not found")
        return to_profile(record)

    async def delete_profile(self, profile_id: str) -> None:
        if not await self._store.delete_profile(profile_id):
            raise not_found("Profile not found")

    async def get_grants(self, profile_id: str) -> list[Grant]:
        await self._require(profile_id)
        records = await self._store.get_grants_by_profile(profile_id)
        return [Grant.model_validate(record, from_attributes=True) for record in records]

    async def add_grants(self, profile_id: str, grant_ids: list[str]) -> None:
        await self._require(profile_id)
        await self._require_grants(grant_ids)
        await self._store.add_grants_to_profile(profile_id, grant_ids)

    async def remove_grants(self, profile_id: str, grant_ids: list[str]) -> None:
        await self._require(profile_id)
        await self._require_grants(grant_ids)
        await self._store.remove_grants_from_profile(profile_id, grant_ids)

    async def get_authentications(self, profile_id: str) -> list[Authentication]:
        await self._require(profile_id)
        records = await self._store.get_authentications_by_profile(profile_id)
        return [Authentication.model_validate(record, from_attributes=True) for record in records]

    async def add_profiles_to_authentication(self, authentication_id: str, profile_ids: list[str]) -> None:
        await self._require_profiles(profile_ids)
        await self._require_authentication(authentication_id)
        await self._store.add_profiles_to_authentication(authentication_id, profile_ids)

    async def remove_profiles_from_authentication(self, authentication_id: str, profile_ids: list[str]) -> None:
        await self._require_profiles(profile_ids)
        await self._require_authentication(authentication_id)
        await self._store.remove_profiles_from_authentication(authentication_id, profile_ids)

    async def _require(self, profile_id: str) -> ProfileRecord:
        record = await self._store.find_profile_by_id(profile_id)
        if record is None:
            raise not_found("Profile not found")
        return record

    async def _require_profiles(self, profile_ids: list[str]) -> None:
        found = await self._store.find_profiles_by_ids(profile_ids)
        if len(found) != len(set(profile_ids)):
            raise not_found("Profile not found")

    async def _require_grants(self, grant_ids: list[str]) -> None:
        found = await self._store.find_grants_by_ids(grant_ids)
        if len(found) != len(set(grant_ids)):
            raise not_found("Grants not found")

    async def _require_authentication(self, authentication_id: str) -> None:
        if await self._store.find_by_id(authentication_id) is None:
            raise not_found("User not found")
