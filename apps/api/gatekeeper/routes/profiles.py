"""Profile routes."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Path, Response, status

from gatekeeper.routes.dependencies import get_profile_service, require_authorization
from gatekeeper.schemas.auth import AuthPrincipal, Authentication
from gatekeeper.schemas.error import ErrorResponse, ForbiddenResponse
from gatekeeper.schemas.grant import Grant
from gatekeeper.schemas.profile import CreateProfileRequest, Profile, UpdateProfileRequest
from gatekeeper.services.profiles import ProfileService

router = APIRouter(prefix="/profile", tags=["Profiles"])

_PROTECTED = {401: {"model": ErrorResponse}, 403: {"model": ForbiddenResponse}}
_NOT_FOUND = {**_PROTECTED, 404: {"model": ErrorResponse}}

IdList = Annotated[list[str], Body(min_length=1)]


@router.get("/list", response_model=list[Profile], responses=_PROTECTED)
async def list_profiles(
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> list[Profile]:
    return await service.list_profiles()


@router.get("/{id}", response_model=Profile, responses=_NOT_FOUND)
async def get_profile(
    profile_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Profile:
    return await service.get_profile(profile_id)


@router.get("/{id}/grants", response_model=list[Grant], responses=_NOT_FOUND)
async def list_profile_grants(
    profile_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> list[Grant]:
    return await service.get_grants(profile_id)


@router.get("/{id}/authentications", response_model=list[Authentication], responses=_NOT_FOUND)
async def list_profile_authentications(
    profile_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> list[Authentication]:
    return await service.get_authentications(profile_id)


@router.post(
    "/create",
    response_model=Profile,
    status_code=status.HTTP_201_CREATED,
    responses={**_PROTECTED, 409: {"model": ErrorResponse}},
)
async def create_profile(
    payload: CreateProfileRequest,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Profile:
    return await service.create_profile(name=payload.name, description=payload.description)


@router.put("/{id}", response_model=Profile, responses={**_NOT_FOUND, 409: {"model": ErrorResponse}})
async def update_profile(
    profile_id: Annotated[str, Path(alias="id")],
    payload: UpdateProfileRequest,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Profile:
    return await service.update_profile(profile_id, name=payload.name, description=payload.description)


@router.put("/{id}/add-grants", status_code=status.HTTP_204_NO_CONTENT, responses=_NOT_FOUND)
async def add_grants(
    profile_id: Annotated[str, Path(alias="id")],
    grant_ids: IdList,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Response:
    await service.add_grants(profile_id, grant_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{id}/remove-grants", status_code=status.HTTP_204_NO_CONTENT, responses=_NOT_FOUND)
async def remove_grants(
    profile_id: Annotated[str, Path(alias="id")],
    grant_ids: IdList,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Response:
    await service.remove_grants(profile_id, grant_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{authId}/add-profiles", status_code=status.HTTP_204_NO_CONTENT, responses=_NOT_FOUND)
async def add_profiles_to_authentication(
    authentication_id: Annotated[str, Path(alias="authId")],
    profile_ids: IdList,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Response:
    await service.add_profiles_to_authentication(authentication_id, profile_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{authId}/remove-profiles", status_code=status.HTTP_204_NO_CONTENT, responses=_NOT_FOUND)
async def remove_profiles_from_authentication(
    authentication_id: Annotated[str, Path(alias="authId")],
    profile_ids: IdList,
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Response:
    await service.remove_profiles_from_authentication(authentication_id, profile_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT, responses=_NOT_FOUND)
async def delete_profile(
    profile_id: Annotated[str, Path(alias="id")],
    _principal: Annotated[AuthPrincipal, Depends(require_authorization)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
) -> Response:
    await service.delete_profile(profile_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
