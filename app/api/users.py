"""
Profile Service — Users API

Endpoints for user profiles, photos and tags.  Handlers only bind the
request to a ``UserService`` operation; domain errors are translated to
HTTP responses by the handlers registered in ``app.main``.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from app.api.dependencies import get_photo_service, get_user_service
from app.errors import ProfileServiceError
from app.models.photo import UserPhoto
from app.models.tag import UserTag
from app.models.user import User
from app.schemas.photo import PhotoResponse, PrimaryPhotoUpdate
from app.schemas.tag import TagCreate, TagResponse
from app.schemas.user import (
    AboutUpdate,
    NameUpdate,
    ProfileUpdate,
    SurnameUpdate,
    UserCreate,
    UserDetailResponse,
    UserResponse,
)
from app.services.photo_service import PhotoService
from app.services.user_service import UserService

logger = structlog.get_logger("profile_service.api.users")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Create a new user
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=UserResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new user",
)
async def create_user(
    payload: UserCreate,
    service: UserService = Depends(get_user_service),
) -> User:
    """Create a user and announce their initial anket downstream."""
    return await service.create_user(
        name=payload.name,
        surname=payload.surname,
        about_myself=payload.about_myself,
        gender=payload.gender,
    )


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} — User with photos and tags
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=UserDetailResponse,
    response_model_exclude_none=True,
    summary="Get user by ID",
)
async def get_user(
    user_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
) -> User:
    return await service.get_user(user_id)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete user",
)
async def delete_user(
    user_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ──────────────────────────────────────────────────────────────────────────────
# PATCH /{user_id}/profile — Partial profile update
# ──────────────────────────────────────────────────────────────────────────────

@router.patch(
    "/{user_id}/profile",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Update profile fields",
)
async def update_profile(
    user_id: uuid.UUID,
    payload: ProfileUpdate,
    service: UserService = Depends(get_user_service),
) -> Response:
    """Apply only the fields present in the body.

    Changing gender or birth date publishes an anket event.
    """
    await service.update_profile(user_id, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Single-field endpoints kept for older clients; they share the profile
# update path so validation and events stay identical.

@router.patch("/{user_id}/about", status_code=status.HTTP_204_NO_CONTENT, deprecated=True)
async def update_about(
    user_id: uuid.UUID,
    payload: AboutUpdate,
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.update_profile(user_id, ProfileUpdate(about_myself=payload.about_myself))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/name", status_code=status.HTTP_204_NO_CONTENT, deprecated=True)
async def update_name(
    user_id: uuid.UUID,
    payload: NameUpdate,
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.update_profile(user_id, ProfileUpdate(name=payload.name))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/surname", status_code=status.HTTP_204_NO_CONTENT, deprecated=True)
async def update_surname(
    user_id: uuid.UUID,
    payload: SurnameUpdate,
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.update_profile(user_id, ProfileUpdate(surname=payload.surname))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ──────────────────────────────────────────────────────────────────────────────
# Photos
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}/photos",
    response_model=list[PhotoResponse],
    summary="List user photos",
)
async def list_photos(
    user_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
) -> list[UserPhoto]:
    return await service.list_photos(user_id)


@router.post(
    "/{user_id}/addphoto",
    response_model=PhotoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a photo",
)
async def upload_photo(
    user_id: uuid.UUID,
    photo: UploadFile = File(..., description="JPEG or PNG image"),
    service: UserService = Depends(get_user_service),
    photo_service: PhotoService = Depends(get_photo_service),
) -> UserPhoto:
    """Store the image in object storage and attach it to the user.

    The upload does not change the primary photo.
    """
    log = logger.bind(user_id=str(user_id), content_type=photo.content_type)
    log.info("upload_photo_start")

    await service.require_user(user_id)
    data = await photo.read()
    object_name = await photo_service.upload_photo(data, photo.content_type)
    try:
        created = await service.add_photo(user_id, object_name)
    except ProfileServiceError:
        log.warning("upload_photo_orphan_cleanup", object_name=object_name)
        await photo_service.delete_photo(object_name)
        raise

    log.info("upload_photo_complete", photo_id=str(created.id))
    return created


@router.delete(
    "/{user_id}/photos/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a photo",
)
async def remove_photo(
    user_id: uuid.UUID,
    photo_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.remove_photo(user_id, photo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/{user_id}/primary_photo",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Choose the primary photo",
)
async def set_primary_photo(
    user_id: uuid.UUID,
    payload: PrimaryPhotoUpdate,
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.set_primary_photo(user_id, payload.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ──────────────────────────────────────────────────────────────────────────────
# Tags
# ──────────────────────────────────────────────────────────────────────────────

@router.put(
    "/{user_id}/tag",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a tag",
)
async def add_tag(
    user_id: uuid.UUID,
    payload: TagCreate,
    service: UserService = Depends(get_user_service),
) -> UserTag:
    return await service.add_tag(user_id, payload.tag)


@router.get(
    "/{user_id}/tags",
    response_model=list[TagResponse],
    summary="List user tags",
)
async def list_tags(
    user_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
) -> list[UserTag]:
    return await service.list_tags(user_id)


@router.delete(
    "/{user_id}/tags/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a tag",
)
async def remove_tag(
    user_id: uuid.UUID,
    tag_id: uuid.UUID,
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.remove_tag(user_id, tag_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
