"""Stateless bearer-token strategy backed by signed JWTs."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Callable

import jwt
from starlette.requests import HTTPConnection

from gatekeeper.adapters.auth.base import AuthStrategy, InvalidToken, Unauthorized
from gatekeeper.schemas.auth import AuthPrincipal

DEFAULT_TOKEN_LIFETIME = timedelta(hours=12)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class JwtAuthStrategy(AuthStrategy):
    """Signs ``{"id": <principal_id>}`` with a server secret and a fixed expiry.

    There is no server-side revocation: a token stays valid until it expires.
    """

    name = "jwt"

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        lifetime: timedelta = DEFAULT_TOKEN_LIFETIME,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = lifetime
        self._clock = clock

    def authenticate(self, request: HTTPConnection, principal_id: str) -> str:
        issued_at = self._clock()
        payload = {
            "id": principal_id,
            "iat": issued_at,
            "exp": issued_at + self._lifetime,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        # Mirrors the session strategy so handlers can read the artifact the same way.
        request.state.session_artifact = token
        return token

    def verify(self, artifact: str) -> AuthPrincipal:
        try:
            decoded = jwt.decode(
                artifact,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken("Invalid token") from exc

        principal_id = decoded.get("id")
        if not isinstance(principal_id, str) or not principal_id.strip():
            raise InvalidToken("Token missing principal identity")
        return AuthPrincipal(id=principal_id)

    def check_authentication(self, request: HTTPConnection) -> AuthPrincipal:
        header = request.headers.get("Authorization")
        if not header:
            raise Unauthorized("Invalid token")

        parts = header.split(" ")
        if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
            raise Unauthorized("Invalid token")

        try:
            return self.verify(parts[1])
        except InvalidToken as exc:
            raise Unauthorized(str(exc)) from exc


__all__ = ["DEFAULT_TOKEN_LIFETIME", "JwtAuthStrategy"]
