"""Credential service layer."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import logging

from gatekeeper.adapters.mail import MailDeliveryError, PasswordResetMailer
from gatekeeper.core.logging_safety import safe_log_identifier, safe_log_login
from gatekeeper.core.passwords import generate_reset_token, hash_password, verify_password
from gatekeeper.errors import ApiError, bad_request, conflict, not_found
from gatekeeper.repositories.memory import AuthenticationRecord, InMemoryStore
from gatekeeper.schemas.auth import Authentication
from gatekeeper.schemas.profile import Profile
from gatekeeper.services.profiles import to_profile

logger = logging.getLogger(__name__)

_DEFAULT_RESET_TTL = timedelta(hours=1)


def to_authentication(record: AuthenticationRecord) -> Authentication:
    return Authentication(
        id=record.id,
        login=record.login,
        active=record.active,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class AuthenticationService:
    def __init__(
        self,
        store: InMemoryStore,
        *,
        default_profile_id: str | None = None,
        reset_token_ttl: timedelta = _DEFAULT_RESET_TTL,
    ) -> None:
        self._store = store
        self._default_profile_id = default_profile_id
        self._reset_token_ttl = reset_token_ttl

    async def list_authentications(self) -> list[Authentication]:
        return [to_authentication(record) for record in await self._store.list_authentications()]

    async def get_authentication(self, authentication_id: str) -> Authentication:
        return to_authentication(await self._require(authentication_id))

    async def register(self, *, login: str, password: str) -> Authentication:
        if await self._store.find_by_login(login) is not None:
            raise conflict("Authentication already exists")

        record = await self._store.create_authentication(login=login, password_hash=await hash_password(password))
        if self._default_profile_id is not None:
            try:
                await self._bind_default_profile(record.id)
            except Exception:
                # Registration is all-or-nothing.
                await self._store.delete_authentication(record.id)
                raise

        logger.info("auth.registered principal_id=%s", safe_log_identifier(record.id, prefix="pid"))
        return to_authentication(record)

    async def _bind_default_profile(self, authentication_id: str) -> None:
        profile = await self._store.find_profile_by_id(self._default_profile_id)
        if profile is None:
            raise not_found("Profile not found")
        await self._store.add_profiles_to_authentication(authentication_id, [profile.id])

    async def authenticate(self, *, login: str, password: str) -> Authentication:
        """Check a login/password pair; the caller establishes the session artifact."""
        record = await self._store.find_by_login(login)
        if record is None:
            logger.warning("auth.login_rejected login=%s reason=unknown_login", safe_log_login(login))
            raise not_found("Authentication not found")

        if not record.active:
            logger.warning("auth.login_rejected login=%s reason=inactive", safe_log_login(login))
            raise ApiError(status_code=403, message="Inactive user", code="INACTIVE")

        if not await self.validate_password(record.id, password):
            logger.warning("auth.login_rejected login=%s reason=bad_password", safe_log_login(login))
            raise ApiError(status_code=401, message="Invalid login or password", code="UNAUTHORIZED")

        return to_authentication(record)

    async def update_authentication(
        self,
        authentication_id: str,
        *,
        login: str | None = None,
        password: str | None = None,
    ) -> Authentication:
        await self._require(authentication_id)

        # A federated account's data is owned by its provider.
        if await self._store.find_external_by_authentication_id(authentication_id):
            raise conflict("Remove every external authentication before updating this account")

        changes: dict[str, object] = {}
        if login is not None and login.strip():
            existing = await self._store.find_by_login(login)
            if existing is not None and existing.id != authentication_id:
                raise conflict("Authentication already exists")
            changes["login"] = login
        if password is not None and password.strip():
            changes["password_hash"] = await hash_password(password)

        if not changes:
            raise bad_request("No data to update")

        record = await self._store.update_authentication(authentication_id, **changes)
        if record is None:
            raise not_found("Authentication not found")
        return to_authentication(record)

    async def delete_authentication(self, authentication_id: str) -> None:
        if not await self._store.delete_authentication(authentication_id):
            raise not_found("Authentication not found")
        logger.info("auth.deleted principal_id=%s", safe_log_identifier(authentication_id, prefix="pid"))

    async def set_active(self, authentication_id: str, active: bool) -> None:
        if await self._store.update_authentication(authentication_id, active=active) is None:
            raise not_found("Authentication not found")
        logger.info(
            "auth.status_changed principal_id=%s active=%s",
            safe_log_identifier(authentication_id, prefix="pid"),
            active,
        )

    async def validate_password(self, authentication_id: str, password: str) -> bool:
        record = await self._store.find_by_id_with_password(authentication_id)
        if record is None or not record.password_hash:
            raise not_found("Authentication not found")
        return await verify_password(password, record.password_hash)

    async def change_password(self, authentication_id: str, *, old_password: str, new_password: str) -> None:
        if not await self.validate_password(authentication_id, old_password):
            raise bad_request("Invalid password")
        await self._store.update_authentication(authentication_id, password_hash=await hash_password(new_password))

    async def request_password_reset(self, *, login: str, mailer: PasswordResetMailer) -> None:
        record = await self._store.find_by_login(login)
        if record is None:
            raise not_found("Authentication not found")

        token = generate_reset_token()
        await self._store.update_authentication(
            record.id,
            password_token_reset=token,
            password_token_expiry_date=datetime.now(UTC) + self._reset_token_ttl,
        )
        try:
            await mailer.send_password_reset(recipient=record.login, token=token)
        except MailDeliveryError as exc:
            raise ApiError(status_code=500, message="Error sending email", code="MAIL_DELIVERY_FAILED") from exc

    async def is_password_token_valid(self, authentication_id: str, token: str) -> bool:
        record = await self._store.find_by_id_with_password(authentication_id)
        if record is None:
            raise not_found("Authentication not found")
        if not record.password_token_reset or record.password_token_expiry_date is None:
            return False
        if record.password_token_expiry_date < datetime.now(UTC):
            return False
        return record.password_token_reset == token

    async def reset_password(self, *, token: str, password: str) -> None:
        record = await self._store.find_by_reset_token(token)
        if record is None:
            raise not_found("Authentication not found")
        if not await self.is_password_token_valid(record.id, token):
            raise ApiError(status_code=403, message="Token is not valid", code="RESET_TOKEN_INVALID")

        await self._store.update_authentication(
            record.id,
            password_hash=await hash_password(password),
            password_token_reset=None,
            password_token_expiry_date=None,
        )
        logger.info("auth.password_reset principal_id=%s", safe_log_identifier(record.id, prefix="pid"))

    async def get_profiles(self, authentication_id: str) -> list[Profile]:
        await self._require(authentication_id)
        return [to_profile(record) for record in await self._store.get_profiles_by_authentication(authentication_id)]

    async def _require(self, authentication_id: str) -> AuthenticationRecord:
        record = await self._store.find_by_id(authentication_id)
        if record is None:
            raise not_found("Authentication not found")
        return record
