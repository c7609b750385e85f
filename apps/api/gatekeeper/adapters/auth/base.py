"""Authentication strategy interfaces."""

from abc import ABC, abstractmethod

from starlette.requests import HTTPConnection

from gatekeeper.schemas.auth import AuthPrincipal


class AuthVerificationError(Exception):
    """Base class for every failure to establish or verify an identity."""


class InvalidCredentialArtifact(AuthVerificationError):
    """A token or session marker is malformed, missing or expired."""


class InvalidToken(InvalidCredentialArtifact):
    """Bad signature, bad shape or expired bearer token."""


class InvalidSession(InvalidCredentialArtifact):
    """Session marker is missing or unusable."""


class Unauthorized(AuthVerificationError):
    """Request carries no acceptable credential artifact (HTTP 401)."""


class AuthStrategy(ABC):
    """Mechanism carrying the principal id between requests.

    Exactly one concrete strategy is active per process. ``check_authentication``
    is the only entry point the request pipeline uses; it either returns a
    principal or raises ``Unauthorized`` and never mutates the request on failure.
    """

    name: str

    @abstractmethod
    def authenticate(self, request: HTTPConnection, principal_id: str) -> str:
        """Establish the session artifact for a verified principal."""

    @abstractmethod
    def verify(self, artifact: str) -> AuthPrincipal:
        """Validate an inbound artifact and extract the principal."""

    @abstractmethod
    def check_authentication(self, request: HTTPConnection) -> AuthPrincipal:
        """Extract the principal from the current request or raise ``Unauthorized``."""

    def logout(self, request: HTTPConnection) -> None:
        """End the current session; stateless strategies have nothing to do."""


__all__ = [
    "AuthStrategy",
    "AuthVerificationError",
    "InvalidCredentialArtifact",
    "InvalidSession",
    "InvalidToken",
    "Unauthorized",
]
