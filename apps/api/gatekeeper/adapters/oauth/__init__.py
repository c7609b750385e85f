"""OAuth2 provider adapters."""

from gatekeeper.core.config import Settings

from .base import OAuthError, OAuthProvider, OAuthUserInfo, UnsupportedOAuthProvider
from .google import GoogleOAuthProvider


def normalize_provider(provider: str) -> str:
    return provider.strip().lower()


def create_oauth_provider(provider: str, settings: Settings) -> OAuthProvider:
    """Resolve the strategy for a provider name such as ``"Google "``."""
    name = normalize_provider(provider)
    if name == "google":
        return GoogleOAuthProvider(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_url=settings.google_redirect_url,
        )
    raise UnsupportedOAuthProvider(f"Unsupported OAuth2 provider: {provider}")


__all__ = [
    "GoogleOAuthProvider",
    "OAuthError",
    "OAuthProvider",
    "OAuthUserInfo",
    "UnsupportedOAuthProvider",
    "create_oauth_provider",
    "normalize_provider",
]
