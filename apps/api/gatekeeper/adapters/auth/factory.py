"""Resolve the process-wide authentication strategy from configuration."""

from __future__ import annotations

from datetime import timedelta
import logging

from gatekeeper.adapters.auth.base import AuthStrategy
from gatekeeper.adapters.auth.session_auth import SessionAuthStrategy, SessionRevocationList
from gatekeeper.adapters.auth.token_auth import JwtAuthStrategy
from gatekeeper.core.config import Settings

logger = logging.getLogger(__name__)


def create_auth_strategy(settings: Settings) -> AuthStrategy:
    if settings.auth_strategy == "jwt":
        if settings.uses_insecure_jwt_secret:
            log = logger.error if settings.is_production else logger.warning
            log("auth.config insecure_jwt_secret=true environment=%s", settings.environment)
        return JwtAuthStrategy(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            lifetime=timedelta(hours=settings.jwt_expires_hours),
        )

    if settings.auth_strategy == "session":
        return SessionAuthStrategy(SessionRevocationList(ttl_seconds=settings.session_max_age_seconds))

    raise ValueError(f"Unsupported auth strategy: {settings.auth_strategy}")


__all__ = ["create_auth_strategy"]
