"""Grant service layer."""

from __future__ import annotations

from gatekeeper.domain.path_template import PathTemplateError, compile_path_template
from gatekeeper.errors import bad_request, conflict, not_found
from gatekeeper.repositories.memory import GrantRecord, InMemoryStore
from gatekeeper.schemas.grant import Grant
from gatekeeper.schemas.profile import Profile
from gatekeeper.services.profiles import to_profile


def to_grant(record: GrantRecord) -> Grant:
    return Grant(
        id=record.id,
        method=record.method,
        path=record.path,
        description=record.description,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def validate_grant_path(path: str) -> str:
    """Reject grant paths that could never be matched against a request."""
    try:
        compile_path_template(path)
    except PathTemplateError as exc:
        raise bad_request(str(exc)) from exc
    return path


class GrantService:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def list_grants(self) -> list[Grant]:
        return [to_grant(record) for record in await self._store.list_grants()]

    async def get_grant(self, grant_id: str) -> Grant:
        return to_grant(await self._require(grant_id))

    async def create_grant(self, *, method: str, path: str, description: str | None) -> Grant:
        validate_grant_path(path)
        if await self._store.find_grant_by_method_and_path(method, path) is not None:
            raise conflict("Grant already exists")
        record = await self._store.create_grant(method=method, path=path, description=description)
        return to_grant(record)

    async def update_grant(
        self,
        grant_id: str,
        *,
        method: str | None = None,
        path: str | None = None,
        description: str | None = None,
    ) -> Grant:
        current = await self._require(grant_id)

        changes: dict[str, str] = {}
        if method is not None:
            changes["method"] = method
        if path is not None and path.strip():
            changes["path"] = validate_grant_path(path)
        if description is not None and description.strip():
            changes["description"] = description
        if not changes:
            raise bad_request("No valid fields provided for update")

        target_method = changes.get("method", current.method)
        target_path = changes.get("path", current.path)
        existing = await self._store.find_grant_by_method_and_path(target_method, target_path)
        if existing is not None and existing.id != grant_id:
            raise conflict("Grant already exists")

        record = await self._store.update_grant(grant_id, **changes)
        if record is None:
            raise not_found("Grant not found")
        return to_grant(record)

    async def delete_grant(self, grant_id: str) -> None:
        if not await self._store.delete_grant(grant_id):
            raise not_found("Grant not found")

    async def get_profiles(self, grant_id: str) -> list[Profile]:
        await self._require(grant_id)
        return [to_profile(record) for record in await self._store.get_profiles_by_grant(grant_id)]

    async def _require(self, grant_id: str) -> GrantRecord:
        record = await self._store.find_grant_by_id(grant_id)
        if record is None:
            raise not_found("Grant not found")
        return record
