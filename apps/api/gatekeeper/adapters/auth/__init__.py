"""Authentication strategy adapters."""

from .base import (
    AuthStrategy,
    AuthVerificationError,
    InvalidCredentialArtifact,
    InvalidSession,
    InvalidToken,
    Unauthorized,
)
from .factory import create_auth_strategy
from .session_auth import SessionAuthStrategy, SessionRevocationList
from .token_auth import JwtAuthStrategy

__all__ = [
    "AuthStrategy",
    "AuthVerificationError",
    "InvalidCredentialArtifact",
    "InvalidSession",
    "InvalidToken",
    "JwtAuthStrategy",
    "SessionAuthStrategy",
    "SessionRevocationList",
    "Unauthorized",
    "create_auth_strategy",
]
