"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from gatekeeper.adapters.auth import create_auth_strategy
from gatekeeper.adapters.mail import create_password_reset_mailer
from gatekeeper.core.config import INSECURE_SESSION_SECRET, Settings, get_settings
from gatekeeper.domain.authorization import AuthorizationEngine
from gatekeeper.errors import ApiError
from gatekeeper.repositories.memory import InMemoryStore
from gatekeeper.routes import authentication_router, grants_router, profiles_router
from gatekeeper.schemas.error import ErrorResponse
from gatekeeper.services.bootstrap import bootstrap_store

logger = logging.getLogger(__name__)


def _install_session_support(app: FastAPI, settings: Settings) -> None:
    if settings.session_secret == INSECURE_SESSION_SECRET:
        log = logger.error if settings.is_production else logger.warning
        log("auth.config insecure_session_secret=true environment=%s", settings.environment)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.is_production,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        result = await bootstrap_store(app.state.store, settings)
        app.state.default_profile_id = result.default_profile_id
        logger.info(
            "app.started strategy=%s environment=%s seeded_grants=%s",
            settings.auth_strategy,
            settings.environment,
            result.seeded_grant_count,
        )
        yield

    app = FastAPI(title="Gatekeeper API", version="1.0.0", lifespan=lifespan)

    store = InMemoryStore()
    app.state.store = store
    app.state.default_profile_id = settings.default_profile_id
    app.state.auth_strategy = create_auth_strategy(settings)
    app.state.authorization_engine = AuthorizationEngine(
        store,
        store,
        admin_profile_name=settings.admin_profile_name,
        admin_profile_id=settings.admin_profile_id,
    )
    app.state.mailer = create_password_reset_mailer(settings)

    if settings.auth_strategy == "session":
        _install_session_support(app, settings)

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        payload = ErrorResponse(
            message="Invalid request payload",
            details={"errors": jsonable_encoder(exc.errors())},
        )
        return JSONResponse(status_code=400, content=payload.model_dump(mode="json", exclude_none=True))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "app.unhandled_error method=%s path=%s error=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc_info=exc,
        )
        payload = ErrorResponse(message="Internal server error")
        return JSONResponse(status_code=500, content=payload.model_dump(mode="json", exclude_none=True))

    app.include_router(authentication_router)
    app.include_router(profiles_router)
    app.include_router(grants_router)

    return app


app = create_app()
