"""Sign-in and account linking through third-party identity providers."""

from __future__ import annotations

import logging
from typing import Callable

from gatekeeper.adapters.oauth import (
    OAuthError,
    OAuthProvider,
    OAuthUserInfo,
    UnsupportedOAuthProvider,
    normalize_provider,
)
from gatekeeper.core.logging_safety import safe_log_identifier
from gatekeeper.core.passwords import generate_password, hash_password
from gatekeeper.errors import ApiError, bad_request, conflict, not_found
from gatekeeper.repositories.memory import AuthenticationRecord, ExternalAuthenticationRecord, InMemoryStore
from gatekeeper.schemas.auth import Authentication, ExternalAuthentication
from gatekeeper.services.authentication import to_authentication

logger = logging.getLogger(__name__)

OAuthProviderFactory = Callable[[str], OAuthProvider]


def to_external_authentication(record: ExternalAuthenticationRecord) -> ExternalAuthentication:
    return ExternalAuthentication(
        authentication_id=record.authentication_id,
        external_id=record.external_id,
        email=record.email,
        provider=record.provider,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class ExternalAuthenticationService:
    def __init__(
        self,
        store: InMemoryStore,
        provider_factory: OAuthProviderFactory,
        *,
        default_profile_id: str | None = None,
    ) -> None:
        self._store = store
        self._provider_factory = provider_factory
        self._default_profile_id = default_profile_id

    async def list_links(self, authentication_id: str) -> list[ExternalAuthentication]:
        if await self._store.find_by_id(authentication_id) is None:
            raise not_found("Authentication not found")
        links = await self._store.find_external_by_authentication_id(authentication_id)
        return [to_external_authentication(link) for link in links]

    async def authenticate(self, *, provider: str, code: str) -> Authentication:
        """Resolve (or provision) the principal behind a provider authorization code.

        A known ``(external_id, provider)`` link wins. Otherwise the provider
        email is matched against existing logins, and only then is a new
        principal created with a random password and the default profile.
        """
        provider_name = normalize_provider(provider)
        user_info = await self._exchange(provider_name, code)

        link = await self._store.find_external(user_info.id, provider_name)
        if link is not None:
            record = await self._store.find_by_id(link.authentication_id)
            if record is None:
                raise not_found("Authentication not found")
        else:
            record = await self._store.find_by_login(user_info.email) if user_info.email else None
            if record is None:
                record = await self._provision(user_info)
            elif not record.active:
                raise ApiError(status_code=403, message="Inactive user", code="INACTIVE")
            await self._store.create_external_authentication(
                authentication_id=record.id,
                external_id=user_info.id,
                provider=provider_name,
                email=user_info.email,
            )
            logger.info(
                "auth.external_linked principal_id=%s provider=%s",
                safe_log_identifier(record.id, prefix="pid"),
                provider_name,
            )

        if not record.active:
            raise ApiError(status_code=403, message="Inactive user", code="INACTIVE")
        return to_authentication(record)

    async def link(self, authentication_id: str, *, provider: str, code: str) -> ExternalAuthentication:
        provider_name = normalize_provider(provider)
        if await self._store.find_by_id(authentication_id) is None:
            raise not_found("Authentication not found")

        user_info = await self._exchange(provider_name, code)
        if await self._store.find_external(user_info.id, provider_name) is not None:
            raise conflict("External authentication already linked")

        existing = await self._store.find_external_by_authentication_id(authentication_id)
        if any(link.provider == provider_name for link in existing):
            raise conflict(f"Account already linked to {provider_name}")

        link = await self._store.create_external_authentication(
            authentication_id=authentication_id,
            external_id=user_info.id,
            provider=provider_name,
            email=user_info.email,
        )
        logger.info(
            "auth.external_linked principal_id=%s provider=%s",
            safe_log_identifier(authentication_id, prefix="pid"),
            provider_name,
        )
        return to_external_authentication(link)

    async def unlink(self, authentication_id: str, *, provider: str) -> None:
        provider_name = normalize_provider(provider)
        links = await self._store.find_external_by_authentication_id(authentication_id)
        link = next((link for link in links if link.provider == provider_name), None)
        if link is None:
            raise not_found("External authentication not found")
        await self._store.delete_external_authentication(link.external_id, link.provider)

    async def _exchange(self, provider_name: str, code: str) -> OAuthUserInfo:
        try:
            provider = self._provider_factory(provider_name)
        except UnsupportedOAuthProvider as exc:
            raise bad_request(str(exc)) from exc

        try:
            return await provider.exchange(code)
        except OAuthError as exc:
            logger.warning("auth.external_rejected provider=%s error=%s", provider_name, exc)
            raise ApiError(
                status_code=401,
                message="External authentication failed",
                code="UNAUTHORIZED",
            ) from exc

    async def _provision(self, user_info: OAuthUserInfo) -> AuthenticationRecord:
        if not user_info.email:
            raise bad_request("Provider did not return an email address")

        record = await self._store.create_authentication(
            login=user_info.email,
            password_hash=await hash_password(generate_password()),
        )
        if self._default_profile_id is not None:
            if await self._store.find_profile_by_id(self._default_profile_id) is None:
                await self._store.delete_authentication(record.id)
                raise not_found("Profile not found")
            await self._store.add_profiles_to_authentication(record.id, [self._default_profile_id])
        return record
