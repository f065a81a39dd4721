""" User router for handling registration and profile related endpoints.
"""

import asyncio

import logfire

from fastapi import APIRouter, status, Depends, Form, File, UploadFile

from beanie.operators import In

from models.users import User
from models.videos import Video

from controllers.cloudinary import destroy_cloudinary_asset
from controllers.file_upload import (
    ALLOWED_IMAGE_TYPES,
    MAX_IMAGE_SIZE,
    to_upload_response,
    upload_file_to_cloudinary,
    validate_upload,
)

from security.credentials import CurrentUser
from security.helpers import get_password_hash

from services.accounts import AccountStore, get_account_store

from schema.responses import api_response
from schema.users import UpdateAccountRequest, UserProfile
from schema.videos import WatchedVideo

from utils.exceptions import Conflict, InvalidInput, NotFound

from typing import Annotated, Optional

from pydantic import EmailStr

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Users"],
)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    full_name: Annotated[str, Form(alias="fullName", min_length=1, max_length=100)],
    email: Annotated[EmailStr, Form(max_length=100)],
    username: Annotated[str, Form(min_length=3, max_length=30)],
    password: Annotated[str, Form(min_length=8)],
    avatar: Annotated[UploadFile, File(description="Profile picture of the user")],
    store: Annotated[AccountStore, Depends(get_account_store)],
    cover_image: Annotated[Optional[UploadFile], File(alias="coverImage", description="Channel banner")] = None,
):
    """Create a new account. The avatar is required, the cover image is optional.

    ## Possible Errors
    - 400 Bad Request: If a field is missing or an image has the wrong type or size.
    - 409 Conflict: If the username or email is already registered.
    - 503 Service Unavailable: If the database or the media store cannot be reached.

    ## Success response structure
    ```json
    {
        "statusCode": 201,
        "success": true,
        "message": "User registered successfully",
        "data": {"id": "...", "username": "...", "email": "...", "fullName": "...", "avatar": "...", "coverImage": null}
    }
    ```
    """
    username = username.strip().lower()
    if not full_name.strip() or not username:
        raise InvalidInput("All fields are required")

    with logfire.span(f"Registering new user: {username}"):
        if await store.find_by_identifier(username=username, email=email) is not None:
            logfire.warning(f"Attempt to register duplicate user: {username} / {email}")
            raise Conflict("User with email or username already exists")

        await validate_upload(avatar, ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE, "avatar")
        if cover_image is not None:
            await validate_upload(cover_image, ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE, "cover image")

        upload_tasks = [upload_file_to_cloudinary(avatar)]
        if cover_image is not None:
            upload_tasks.append(upload_file_to_cloudinary(cover_image))

        # Upload both images concurrently
        results = await asyncio.gather(*upload_tasks)

        avatar_upload = to_upload_response(results[0], "Failed to upload avatar")
        cover_image_upload = (
            to_upload_response(results[1], "Failed to upload cover image") if len(results) > 1 else None
        )

        new_user = User(
            full_name=full_name.strip(),
            email=email,
            username=username,
            password=get_password_hash(password),
            avatar=avatar_upload.secure_url,
            cover_image=cover_image_upload.secure_url if cover_image_upload else None,
        )
        try:
            new_user = await store.create(new_user)
        except Conflict:
            # Lost a race with a concurrent registration; the uploads are orphans now
            uploaded = [avatar_upload, cover_image_upload]
            await asyncio.gather(
                *(destroy_cloudinary_asset(upload.secure_url) for upload in uploaded if upload)
            )
            raise

    return api_response(
        UserProfile.model_validate(new_user).model_dump(mode="json", by_alias=True),
        "User registered successfully",
        status.HTTP_201_CREATED,
    )


@router.get("/current-user")
async def get_current_user_details(current_user: CurrentUser):
    """Get the profile of the authenticated user.

    ## Possible Errors
    - 401 Unauthorized: If the access token is missing, invalid or expired.
    """
    return api_response(
        UserProfile.model_validate(current_user).model_dump(mode="json", by_alias=True),
        "User fetched successfully",
    )


@router.get("/watch-history")
async def get_watch_history(current_user: CurrentUser):
    """Get the videos the authenticated user has watched, most recently added first.

    Each video carries the username, full name and avatar of its owner.
    """
    pipeline = [
        {
            "$lookup": {
                "from": "users",
                "localField": "owner",
                "foreignField": "_id",
                "as": "owner",
            }
        },
        {"$unwind": "$owner"},
        {
            "$project": {
                "video_file": 1,
                "thumbnail": 1,
                "title": 1,
                "description": 1,
                "duration": 1,
                "views": 1,
                "created_at": 1,
                "owner._id": 1,
                "owner.username": 1,
                "owner.full_name": 1,
                "owner.avatar": 1,
            }
        },
    ]
    documents = await Video.find(In(Video.id, current_user.watch_history)).aggregate(pipeline).to_list()

    watched = {str(document["_id"]): WatchedVideo.model_validate(document) for document in documents}
    history = [watched[str(video_id)] for video_id in reversed(current_user.watch_history) if str(video_id) in watched]

    return api_response(
        [video.model_dump(mode="json", by_alias=True) for video in history],
        "Watch history fetched successfully",
    )


@router.patch("/update-account")
async def update_account_details(
    payload: UpdateAccountRequest,
    current_user: CurrentUser,
    store: Annotated[AccountStore, Depends(get_account_store)],
):
    """Update the full name and email address of the authenticated user.

    ## Possible Errors
    - 400 Bad Request: If a field is missing or blank.
    - 409 Conflict: If the email belongs to another account.
    """
    if not payload.full_name.strip():
        raise InvalidInput("All fields are required")

    existing = await store.find_by_identifier(email=payload.email)
    if existing is not None and str(existing.id) != str(current_user.id):
        raise Conflict("Email is already in use")

    updated = await store.update_fields(
        str(current_user.id), {"full_name": payload.full_name.strip(), "email": payload.email}
    )
    if updated is None:
        raise NotFound("User does not exist")

    logfire.info(f"Account details updated for user {current_user.username}")
    return api_response(
        UserProfile.model_validate(updated).model_dump(mode="json", by_alias=True),
        "Account details updated successfully",
    )


async def _replace_image(
    current_user: User,
    store: AccountStore,
    file: UploadFile,
    field: str,
    label: str,
) -> User:
    """Upload `file`, point `field` at it and delete the image it replaces."""
    await validate_upload(file, ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE, label)

    upload = to_upload_response(await upload_file_to_cloudinary(file), f"Failed to upload {label}")
    previous_url = getattr(current_user, field)

    updated = await store.update_fields(str(current_user.id), {field: upload.secure_url})
    if updated is None:
        raise NotFound("User does not exist")

    if previous_url:
        await destroy_cloudinary_asset(previous_url)

    logfire.info(f"{label.capitalize()} updated for user {current_user.username}")
    return updated


@router.patch("/avatar")
async def update_avatar(
    avatar: Annotated[UploadFile, File(description="New profile picture")],
    current_user: CurrentUser,
    store: Annotated[AccountStore, Depends(get_account_store)],
):
    """Replace the avatar of the authenticated user."""
    updated = await _replace_image(current_user, store, avatar, "avatar", "avatar")
    return api_response(
        UserProfile.model_validate(updated).model_dump(mode="json", by_alias=True),
        "Avatar image updated successfully",
    )


@router.patch("/cover-image")
async def update_cover_image(
    cover_image: Annotated[UploadFile, File(alias="coverImage", description="New channel banner")],
    current_user: CurrentUser,
    store: Annotated[AccountStore, Depends(get_account_store)],
):
    """Replace the cover image of the authenticated user."""
    updated = await _replace_image(current_user, store, cover_image, "cover_image", "cover image")
    return api_response(
        UserProfile.model_validate(updated).model_dump(mode="json", by_alias=True),
        "Cover image updated successfully",
    )
