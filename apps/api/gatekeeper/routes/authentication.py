"""Credential routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status

from gatekeeper.adapters.auth import AuthStrategy, AuthVerificationError
from gatekeeper.adapters.mail import PasswordResetMailer
from gatekeeper.errors import ApiError
from gatekeeper.routes.dependencies import (
    get_auth_strategy,
    get_authenticated_principal,
    get_authentication_service,
    get_external_authentication_service,
    get_password_reset_mailer,
    require_authorization,
)
from gatekeeper.schemas.auth import (
    AuthPrincipal,
    Authentication,
    ChangePasswordRequest,
    ExternalAuthentication,
    ExternalLoginRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    PasswordRequest,
    RegisterRequest,
    RegisterResponse,
    UpdateAuthenticationRequest,
)
from gatekeeper.schemas.error import ErrorResponse, ForbiddenResponse, MessageResponse
from gatekeeper.schemas.profile import Profile
from gatekeeper.services.authentication import AuthenticationService
from gatekeeper.services.external_authentication import ExternalAuthenticationService

router = APIRouter(prefix="/auth", tags=["Authentication"])

_PROTECTED = {401: {"model": ErrorResponse}, 403: {"model": ForbiddenResponse}}
_AUTHENTICATED = {401: {"model": ErrorResponse}}


def _start_session(strategy: AuthStrategy, request: Request, principal_id: str) -> LoginResponse:
    try:
        artifact = strategy.authenticate(request, principal_id)
    except AuthVerificationError as exc:
        raise ApiError(status_code=401, message=str(exc) or "Unauthorized") from exc
    return LoginResponse(token_or_session_id=artifact)


@router.get("/list", response_model=list[Authentication], responses=_PROTECTED)
async def list_authentications(
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> list[Authentication]:
    return await service.list_authentications()


@router.get("/me", response_model=Authentication, responses=_AUTHENTICATED)
async def get_me(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> Authentication:
    return await service.get_authentication(principal.id)


@router.get("/externals/{id}", response_model=list[ExternalAuthentication], responses=_PROTECTED)
async def list_external_authentications(
    authentication_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ExternalAuthenticationService, Depends(get_external_authentication_service)],
) -> list[ExternalAuthentication]:
    return await service.list_links(authentication_id)


@router.get("/{id}", response_model=Authentication, responses={**_PROTECTED, 404: {"model": ErrorResponse}})
async def get_authentication(
    authentication_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> Authentication:
    return await service.get_authentication(authentication_id)


@router.get("/{id}/profiles", response_model=list[Profile], responses=_PROTECTED)
async def list_authentication_profiles(
    authentication_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> list[Profile]:
    return await service.get_profiles(authentication_id)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def register(
    payload: RegisterRequest,
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> RegisterResponse:
    auth = await service.register(login=payload.login, password=payload.password)
    return RegisterResponse(auth=auth)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def login(
    payload: LoginRequest,
    request: Request,
    strategy: Annotated[AuthStrategy, Depends(get_auth_strategy)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> LoginResponse:
    auth = await service.authenticate(login=payload.login, password=payload.password)
    return _start_session(strategy, request, auth.id)


@router.post(
    "/authenticate/external",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def authenticate_external(
    payload: ExternalLoginRequest,
    request: Request,
    strategy: Annotated[AuthStrategy, Depends(get_auth_strategy)],
    service: Annotated[ExternalAuthenticationService, Depends(get_external_authentication_service)],
) -> LoginResponse:
    auth = await service.authenticate(provider=payload.provider, code=payload.code)
    return _start_session(strategy, request, auth.id)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, responses=_AUTHENTICATED)
async def logout(
    request: Request,
    _principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    strategy: Annotated[AuthStrategy, Depends(get_auth_strategy)],
) -> Response:
    try:
        strategy.logout(request)
    except AuthVerificationError as exc:
        raise ApiError(status_code=401, message=str(exc) or "Unauthorized") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/me/add-external",
    response_model=ExternalAuthentication,
    status_code=status.HTTP_201_CREATED,
    responses={**_AUTHENTICATED, 409: {"model": ErrorResponse}},
)
async def add_external_authentication(
    payload: ExternalLoginRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[ExternalAuthenticationService, Depends(get_external_authentication_service)],
) -> ExternalAuthentication:
    return await service.link(principal.id, provider=payload.provider, code=payload.code)


@router.delete("/me/externals/{provider}", status_code=status.HTTP_204_NO_CONTENT, responses=_AUTHENTICATED)
async def remove_external_authentication(
    provider: str,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[ExternalAuthenticationService, Depends(get_external_authentication_service)],
) -> Response:
    await service.unlink(principal.id, provider=provider)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/forgot-password", response_model=MessageResponse, responses={404: {"model": ErrorResponse}})
async def forgot_password(
    payload: ForgotPasswordRequest,
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
    mailer: Annotated[PasswordResetMailer, Depends(get_password_reset_mailer)],
) -> MessageResponse:
    await service.request_password_reset(login=payload.login, mailer=mailer)
    return MessageResponse(message="Email sent")


@router.post("/validate-password", response_model=MessageResponse, responses=_AUTHENTICATED)
async def validate_password(
    payload: PasswordRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> MessageResponse:
    if not await service.validate_password(principal.id, payload.password):
        raise ApiError(status_code=400, message="Invalid password", code="BAD_REQUEST")
    return MessageResponse(message="Valid password")


@router.put("/toggle-status/{id}", status_code=status.HTTP_204_NO_CONTENT, responses=_PROTECTED)
async def toggle_status(
    authentication_id: Annotated[str, Path(alias="id")],
    toggle: Annotated[bool, Query()],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> Response:
    await service.set_active(authentication_id, toggle)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/update-password", response_model=MessageResponse, responses=_AUTHENTICATED)
async def update_password(
    payload: ChangePasswordRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> MessageResponse:
    await service.change_password(
        principal.id,
        old_password=payload.old_password,
        new_password=payload.new_password,
    )
    return MessageResponse(message="Password updated")


@router.put(
    "/reset-password",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def reset_password(
    payload: PasswordRequest,
    token: Annotated[str, Query(min_length=1)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> MessageResponse:
    await service.reset_password(token=token, password=payload.password)
    return MessageResponse(message="Password reset")


@router.put("/me", response_model=Authentication, responses={**_AUTHENTICATED, 409: {"model": ErrorResponse}})
async def update_me(
    payload: UpdateAuthenticationRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> Authentication:
    return await service.update_authentication(principal.id, login=payload.login, password=payload.password)


@router.put("/{id}", response_model=Authentication, responses={**_PROTECTED, 409: {"model": ErrorResponse}})
async def update_authentication(
    authentication_id: Annotated[str, Path(alias="id")],
    payload: UpdateAuthenticationRequest,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> Authentication:
    return await service.update_authentication(authentication_id, login=payload.login, password=payload.password)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT, responses=_PROTECTED)
async def delete_authentication(
    authentication_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
) -> Response:
    await service.delete_authentication(authentication_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
