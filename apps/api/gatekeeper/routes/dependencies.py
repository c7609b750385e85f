"""Dependency wiring for routes."""

from __future__ import annotations

from datetime import timedelta
import logging
from typing import Annotated, Callable
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gatekeeper.adapters.auth import AuthStrategy, AuthVerificationError
from gatekeeper.adapters.mail import PasswordResetMailer
from gatekeeper.adapters.oauth import OAuthProvider, create_oauth_provider
from gatekeeper.core.config import Settings, get_settings
from gatekeeper.core.logging_safety import safe_log_identifier
from gatekeeper.domain.authorization import AuthorizationEngine
from gatekeeper.errors import ApiError
from gatekeeper.repositories.memory import InMemoryStore
from gatekeeper.schemas.auth import AuthPrincipal
from gatekeeper.schemas.error import FORBIDDEN_MESSAGE
from gatekeeper.services.authentication import AuthenticationService
from gatekeeper.services.external_authentication import ExternalAuthenticationService
from gatekeeper.services.grants import GrantService
from gatekeeper.services.profiles import ProfileService

# Documents the bearer header in OpenAPI; the strategy does the parsing.
bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _auth_error(message: str) -> ApiError:
    return ApiError(status_code=401, message=message)


def _forbidden() -> ApiError:
    return ApiError(status_code=403, message=FORBIDDEN_MESSAGE)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def request_path(request: Request) -> str:
    """Path as sent by the client, before the server decodes escapes."""
    raw_path = request.scope.get("raw_path")
    if isinstance(raw_path, bytes) and raw_path:
        return raw_path.decode("latin-1")
    return request.url.path


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def get_auth_strategy(request: Request) -> AuthStrategy:
    return request.app.state.auth_strategy


def get_authorization_engine(request: Request) -> AuthorizationEngine:
    return request.app.state.authorization_engine


def get_password_reset_mailer(request: Request) -> PasswordResetMailer:
    return request.app.state.mailer


def _default_profile_id(request: Request) -> str | None:
    return getattr(request.app.state, "default_profile_id", None)


def get_oauth_provider_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Callable[[str], OAuthProvider]:
    return lambda provider: create_oauth_provider(provider, settings)


async def get_authenticated_principal(
    request: Request,
    strategy: Annotated[AuthStrategy, Depends(get_auth_strategy)],
    _credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
) -> AuthPrincipal:
    """Run the configured strategy's check and attach the principal to the request."""
    correlation_id = _request_correlation_id(request)
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    try:
        principal = strategy.check_authentication(request)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s strategy=%s reason=%s",
            safe_correlation_id,
            request.method,
            request.url.path,
            strategy.name,
            type(exc).__name__,
        )
        raise _auth_error(str(exc) or "Unauthorized") from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.id, prefix="pid"),
    )
    request.state.auth_principal = principal
    return principal


async def require_authorization(
    request: Request,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    engine: Annotated[AuthorizationEngine, Depends(get_authorization_engine)],
) -> AuthPrincipal:
    """Gate a route on the principal holding a grant for this method and path."""
    path = request_path(request)
    result = await engine.authorize(principal.id, request.method, path)
    safe_correlation_id = safe_log_identifier(_request_correlation_id(request), prefix="cid")
    safe_principal_id = safe_log_identifier(principal.id, prefix="pid")
    if not result.allowed:
        logger.warning(
            "authz.denied correlation_id=%s method=%s path=%s principal_id=%s reason=%s",
            safe_correlation_id,
            request.method,
            path,
            safe_principal_id,
            result.reason.value if result.reason else None,
        )
        raise _forbidden()

    logger.info(
        "authz.allowed correlation_id=%s method=%s path=%s principal_id=%s grant_id=%s admin=%s",
        safe_correlation_id,
        request.method,
        path,
        safe_principal_id,
        result.matched_grant_id,
        result.admin_bypass,
    )
    return principal


def get_authentication_service(
    request: Request,
    store: Annotated[InMemoryStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthenticationService:
    return AuthenticationService(
        store,
        default_profile_id=_default_profile_id(request),
        reset_token_ttl=timedelta(minutes=settings.password_reset_ttl_minutes),
    )


def get_external_authentication_service(
    request: Request,
    store: Annotated[InMemoryStore, Depends(get_store)],
    provider_factory: Annotated[Callable[[str], OAuthProvider], Depends(get_oauth_provider_factory)],
) -> ExternalAuthenticationService:
    return ExternalAuthenticationService(
        store,
        provider_factory,
        default_profile_id=_default_profile_id(request),
    )


def get_profile_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> ProfileService:
    return ProfileService(store)


def get_grant_service(store: Annotated[InMemoryStore, Depends(get_store)]) -> GrantService:
    return GrantService(store)
