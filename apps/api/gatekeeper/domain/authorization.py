"""Request-time access control decisions.

``AuthorizationEngine.authorize`` answers whether a principal may invoke an
HTTP method on a path. It re-reads the principal, its profiles and their
grants on every call and fails closed: any error becomes a denial whose
reason is kept for logging but never shown to the client.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Iterable, Protocol, Sequence

from gatekeeper.core.logging_safety import safe_log_identifier
from gatekeeper.domain.path_template import PathTemplateError, compile_path_template

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class DenyReason(str, Enum):
    MISSING_PRINCIPAL_ID = "MISSING_PRINCIPAL_ID"
    PRINCIPAL_INACTIVE_OR_MISSING = "PRINCIPAL_INACTIVE_OR_MISSING"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True, slots=True)
class AuthorizationResult:
    decision: Decision
    reason: DenyReason | None = None
    matched_grant_id: str | None = None
    admin_bypass: bool = False

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW

    @classmethod
    def allow(cls, *, matched_grant_id: str | None = None, admin_bypass: bool = False) -> AuthorizationResult:
        return cls(decision=Decision.ALLOW, matched_grant_id=matched_grant_id, admin_bypass=admin_bypass)

    @classmethod
    def deny(cls, reason: DenyReason) -> AuthorizationResult:
        return cls(decision=Decision.DENY, reason=reason)


class PrincipalView(Protocol):
    id: str
    active: bool


class ProfileView(Protocol):
    id: str
    name: str


class GrantView(Protocol):
    id: str
    method: str
    path: str


class CredentialReader(Protocol):
    async def find_by_id(self, authentication_id: str) -> PrincipalView | None: ...

    async def get_profiles_by_authentication(self, authentication_id: str) -> Sequence[ProfileView]: ...


class PermissionReader(Protocol):
    async def get_grants_by_profiles(self, profile_ids: Iterable[str]) -> Sequence[GrantView]: ...


def grant_matches(grant: GrantView, method: str, path: str) -> bool:
    """Exact (case-insensitive) method equality, then a full-path template match."""
    if str(grant.method).upper() != method.upper():
        return False
    return compile_path_template(grant.path).matches(path)


def find_matching_grant(grants: Iterable[GrantView], method: str, path: str) -> GrantView | None:
    for grant in grants:
        try:
            if grant_matches(grant, method, path):
                return grant
        except PathTemplateError:
            logger.warning("authz.grant_skipped grant_id=%s reason=invalid_path", grant.id)
    return None


def unique_grants(grants: Iterable[GrantView]) -> list[GrantView]:
    seen: dict[str, GrantView] = {}
    for grant in grants:
        seen.setdefault(grant.id, grant)
    return list(seen.values())


class AuthorizationEngine:
    """Decides ALLOW or DENY for (principal, method, path).

    Holds no per-request state; every call loads principal, profiles and grants
    afresh, so permission changes apply to the very next request.
    """

    def __init__(
        self,
        credentials: CredentialReader,
        permissions: PermissionReader,
        *,
        admin_profile_name: str = "admin",
        admin_profile_id: str | None = None,
    ) -> None:
        self._credentials = credentials
        self._permissions = permissions
        self._admin_profile_name = admin_profile_name.casefold()
        self._admin_profile_id = admin_profile_id

    def is_admin_profile(self, profile: ProfileView) -> bool:
        if self._admin_profile_id is not None and profile.id == self._admin_profile_id:
            return True
        return str(profile.name).casefold() == self._admin_profile_name

    async def authorize(self, principal_id: str | None, method: str, path: str) -> AuthorizationResult:
        try:
            return await self._decide(principal_id, method, path)
        except Exception:
            logger.exception(
                "authz.error principal_id=%s method=%s path=%s",
                safe_log_identifier(principal_id, prefix="pid"),
                method,
                path,
            )
            return AuthorizationResult.deny(DenyReason.INTERNAL_ERROR)

    async def _decide(self, principal_id: str | None, method: str, path: str) -> AuthorizationResult:
        if not principal_id:
            return AuthorizationResult.deny(DenyReason.MISSING_PRINCIPAL_ID)

        principal = await self._credentials.find_by_id(principal_id)
        if principal is None or not principal.active:
            return AuthorizationResult.deny(DenyReason.PRINCIPAL_INACTIVE_OR_MISSING)

        profiles = await self._credentials.get_profiles_by_authentication(principal.id)
        if any(self.is_admin_profile(profile) for profile in profiles):
            return AuthorizationResult.allow(admin_bypass=True)

        grants = unique_grants(await self._permissions.get_grants_by_profiles([profile.id for profile in profiles]))
        matched = find_matching_grant(grants, method, path)
        if matched is None:
            return AuthorizationResult.deny(DenyReason.PERMISSION_DENIED)
        return AuthorizationResult.allow(matched_grant_id=matched.id)


__all__ = [
    "AuthorizationEngine",
    "AuthorizationResult",
    "CredentialReader",
    "Decision",
    "DenyReason",
    "PermissionReader",
    "find_matching_grant",
    "grant_matches",
    "unique_grants",
]
