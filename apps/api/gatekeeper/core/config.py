"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_JWT_SECRET = "insecure-dev-jwt-secret-change-me-now"
INSECURE_SESSION_SECRET = "insecure-dev-session-secret"


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    environment: Literal["development", "production"] = "development"
    auth_strategy: Literal["jwt", "session"] = "jwt"

    # Fallback secrets are for local development and tests only.
    jwt_secret: str = INSECURE_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expires_hours: int = 12

    session_secret: str = INSECURE_SESSION_SECRET
    session_cookie_name: str = "authSession"
    session_max_age_seconds: int = 24 * 60 * 60

    admin_profile_name: str = "admin"
    admin_profile_id: str | None = None
    default_profile_id: str | None = None

    bootstrap_admin_login: str | None = None
    bootstrap_admin_password: str | None = None
    permissions_file: str | None = None

    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_redirect_url: str | None = None

    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    email_sender: str = "no-reply@localhost"
    password_reset_link: str = "http://localhost:3000/reset-password"
    password_reset_ttl_minutes: int = 60

    model_config = SettingsConfigDict(env_prefix="GATEKEEPER_", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def uses_insecure_jwt_secret(self) -> bool:
        return self.jwt_secret == INSECURE_JWT_SECRET


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
