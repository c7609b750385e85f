"""Stateful strategy keeping the principal id in a signed session cookie."""

from __future__ import annotations

import secrets
import threading
import time
from typing import Any, Callable

from starlette.requests import HTTPConnection

from gatekeeper.adapters.auth.base import AuthStrategy, InvalidSession, Unauthorized
from gatekeeper.schemas.auth import AuthPrincipal


class SessionRevocationList:
    """Nonces of sessions ended by logout, kept until their cookie would expire anyway."""

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._revoked: dict[str, float] = {}
        self._lock = threading.Lock()

    def revoke(self, nonce: str) -> None:
        with self._lock:
            self._prune()
            self._revoked[nonce] = self._clock() + self._ttl_seconds

    def is_revoked(self, nonce: str) -> bool:
        with self._lock:
            self._prune()
            return nonce in self._revoked

    def __len__(self) -> int:
        with self._lock:
            self._prune()
            return len(self._revoked)

    def _prune(self) -> None:
        now = self._clock()
        for nonce in [nonce for nonce, expires_at in self._revoked.items() if expires_at <= now]:
            del self._revoked[nonce]


def _session_of(request: HTTPConnection) -> dict[str, Any] | None:
    # request.session asserts when SessionMiddleware is missing; a missing
    # carrier is just an unauthenticated request here.
    session = request.scope.get("session")
    return session if isinstance(session, dict) else None


class SessionAuthStrategy(AuthStrategy):
    """Writes ``{"auth": {"id": <principal_id>}}`` into the session carrier.

    Integrity of the carrier comes from the signed cookie transport. Each
    session also gets a random nonce so that logout can reject replays of the
    pre-logout cookie.
    """

    name = "session"

    def __init__(self, revocations: SessionRevocationList) -> None:
        self._revocations = revocations

    def authenticate(self, request: HTTPConnection, principal_id: str) -> str:
        session = _session_of(request)
        if session is None:
            raise InvalidSession("Session support is not enabled")
        session["auth"] = {"id": principal_id, "nonce": secrets.token_urlsafe(16)}
        return f"Session started for user {principal_id}"

    def verify(self, artifact: str) -> AuthPrincipal:
        """Shape check only; the session table is the signed cookie itself."""
        if not artifact or not str(artifact).strip():
            raise InvalidSession("Invalid session")
        return AuthPrincipal(id=str(artifact))

    def check_authentication(self, request: HTTPConnection) -> AuthPrincipal:
        session = _session_of(request)
        auth = session.get("auth") if session else None
        if not isinstance(auth, dict) or not auth.get("id"):
            raise Unauthorized("Invalid session")

        nonce = auth.get("nonce")
        if not isinstance(nonce, str) or self._revocations.is_revoked(nonce):
            raise Unauthorized("Invalid session")

        try:
            return self.verify(auth["id"])
        except InvalidSession as exc:
            raise Unauthorized(str(exc)) from exc

    def logout(self, request: HTTPConnection) -> None:
        session = _session_of(request)
        if session is None:
            raise InvalidSession("Session support is not enabled")
        auth = session.get("auth")
        if isinstance(auth, dict) and isinstance(auth.get("nonce"), str):
            self._revocations.revoke(auth["nonce"])
        session.clear()


__all__ = ["SessionAuthStrategy", "SessionRevocationList"]
