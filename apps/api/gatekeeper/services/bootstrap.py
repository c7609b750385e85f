"""Startup seeding of default profiles, the admin account and grants."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from gatekeeper.core.config import Settings
from gatekeeper.core.logging_safety import safe_log_login
from gatekeeper.core.passwords import hash_password
from gatekeeper.repositories.memory import InMemoryStore, ProfileRecord
from gatekeeper.schemas.grant import HttpMethod
from gatekeeper.services.grants import validate_grant_path

logger = logging.getLogger(__name__)

DEFAULT_USER_PROFILE_NAME = "UserComum"
DEFAULT_ADMIN_PROFILE_NAME = "Admin"


class PermissionSeed(BaseModel):
    method: HttpMethod
    path: str = Field(min_length=1)
    description: str | None = None
    profiles: list[str] = Field(default_factory=list)


_PERMISSION_SEEDS = TypeAdapter(list[PermissionSeed])


@dataclass(frozen=True, slots=True)
class BootstrapResult:
    default_profile_id: str
    admin_profile_id: str
    seeded_grant_count: int = 0


def load_permission_seeds(path: str | Path) -> list[PermissionSeed]:
    return _PERMISSION_SEEDS.validate_json(Path(path).read_bytes())


async def _ensure_profile(
    store: InMemoryStore,
    *,
    name: str,
    description: str,
    profile_id: str | None,
) -> ProfileRecord:
    if profile_id is not None:
        existing = await store.find_profile_by_id(profile_id)
        if existing is not None:
            return existing
    existing = await store.find_profile_by_name(name)
    if existing is not None:
        return existing
    return await store.create_profile(name=name, description=description, profile_id=profile_id)


async def seed_permissions(store: InMemoryStore, seeds: list[PermissionSeed]) -> int:
    profiles = {profile.name: profile for profile in await store.list_profiles()}
    created = 0
    for seed in seeds:
        validate_grant_path(seed.path)
        grant = await store.find_grant_by_method_and_path(seed.method, seed.path)
        if grant is None:
            grant = await store.create_grant(method=seed.method, path=seed.path, description=seed.description)
            created += 1
        for profile_name in seed.profiles:
            profile = profiles.get(profile_name)
            if profile is None:
                logger.warning("bootstrap.unknown_profile profile=%s path=%s", profile_name, seed.path)
                continue
            await store.add_grants_to_profile(profile.id, [grant.id])
    return created


async def bootstrap_store(store: InMemoryStore, settings: Settings) -> BootstrapResult:
    user_profile = await _ensure_profile(
        store,
        name=DEFAULT_USER_PROFILE_NAME,
        description="Default profile for regular users",
        profile_id=settings.default_profile_id,
    )
    admin_profile = await _ensure_profile(
        store,
        name=DEFAULT_ADMIN_PROFILE_NAME,
        description="System administrator profile",
        profile_id=settings.admin_profile_id,
    )

    if settings.bootstrap_admin_login and settings.bootstrap_admin_password:
        admin = await store.find_by_login(settings.bootstrap_admin_login)
        if admin is None:
            admin = await store.create_authentication(
                login=settings.bootstrap_admin_login,
                password_hash=await hash_password(settings.bootstrap_admin_password),
            )
            logger.info("bootstrap.admin_created login=%s", safe_log_login(settings.bootstrap_admin_login))
        await store.add_profiles_to_authentication(admin.id, [admin_profile.id])

    seeded = 0
    if settings.permissions_file:
        seeded = await seed_permissions(store, load_permission_seeds(settings.permissions_file))
        logger.info("bootstrap.grants_seeded count=%s", seeded)

    return BootstrapResult(
        default_profile_id=user_profile.id,
        admin_profile_id=admin_profile.id,
        seeded_grant_count=seeded,
    )
