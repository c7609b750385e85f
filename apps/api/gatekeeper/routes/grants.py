"""Grant routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status

from gatekeeper.routes.dependencies import get_grant_service, require_authorization
from gatekeeper.schemas.auth import AuthPrincipal
from gatekeeper.schemas.error import ErrorResponse, ForbiddenResponse
from gatekeeper.schemas.grant import CreateGrantRequest, Grant, UpdateGrantRequest
from gatekeeper.schemas.profile import Profile
from gatekeeper.services.grants import GrantService

router = APIRouter(prefix="/grants", tags=["Grants"])

_PROTECTED = {401: {"model": ErrorResponse}, 403: {"model": ForbiddenResponse}}
_NOT_FOUND = {**_PROTECTED, 404: {"model": ErrorResponse}}


@router.get("/list", response_model=list[Grant], responses=_PROTECTED)
async def list_grants(
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[GrantService, Depends(get_grant_service)],
) -> list[Grant]:
    return await service.list_grants()


@router.get("/{id}", response_model=Grant, responses=_NOT_FOUND)
async def get_grant(
    grant_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[GrantService, Depends(get_grant_service)],
) -> Grant:
    return await service.get_grant(grant_id)


@router.get("/{id}/profiles", response_model=list[Profile], responses=_NOT_FOUND)
async def list_grant_profiles(
    grant_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[GrantService, Depends(get_grant_service)],
) -> list[Profile]:
    return await service.get_profiles(grant_id)


@router.post(
    "/create",
    response_model=Grant,
    status_code=status.HTTP_201_CREATED,
    responses={**_PROTECTED, 400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_grant(
    payload: CreateGrantRequest,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[GrantService, Depends(get_grant_service)],
) -> Grant:
    return await service.create_grant(method=payload.method, path=payload.path, description=payload.description)


@router.put("/{id}", response_model=Grant, responses={**_NOT_FOUND, 409: {"model": ErrorResponse}})
async def update_grant(
    grant_id: Annotated[str, Path(alias="id")],
    payload: UpdateGrantRequest,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[GrantService, Depends(get_grant_service)],
) -> Grant:
    return await service.update_grant(
        grant_id,
        method=payload.method,
        path=payload.path,
        description=payload.description,
    )


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT, responses=_NOT_FOUND)
async def delete_grant(
    grant_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[GrantService, Depends(get_grant_service)],
) -> Response:
    await service.delete_grant(grant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
