"""
Video router for publishing, browsing and managing videos.
"""

import asyncio
import re

import logfire

from fastapi import APIRouter, status, Depends, Form, File, UploadFile, Query

from beanie.operators import Inc, Or, RegEx
from pymongo import ASCENDING, DESCENDING

from models.comments import Comment
from models.helpers import SortType, utc_now
from models.videos import VIDEO_SORT_FIELDS, Video, VideoSortField

from controllers.cloudinary import destroy_cloudinary_asset
from controllers.file_upload import (
    ALLOWED_IMAGE_TYPES,
    ALLOWED_VIDEO_TYPES,
    MAX_IMAGE_SIZE,
    MAX_VIDEO_SIZE,
    ResourceType,
    to_upload_response,
    upload_file_to_cloudinary,
    validate_upload,
)

from security.credentials import CurrentUser

from services.accounts import AccountStore, get_account_store

from schema.responses import Page, api_response
from schema.videos import VideoResponse

from utils.exceptions import NotFound
from utils.validators import ensure_owner, require_text, to_object_id

from typing import Annotated, Optional

router = APIRouter(
    prefix="/api/v1/videos",
    tags=["Videos"],
)


async def _get_video(video_id: str) -> Video:
    video = await Video.get(to_object_id(video_id, "video id"))
    if video is None:
        raise NotFound("Video not found")
    return video


@router.get("")
async def get_all_videos(
    current_user: CurrentUser,
    offset: Annotated[
        int,
        Query(ge=0, description="The number of items to skip before starting to collect the result set."),
    ] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    query: Annotated[Optional[str], Query(description="Text searched in titles and descriptions")] = None,
    user_id: Annotated[Optional[str], Query(alias="userId", description="Only videos owned by this user")] = None,
    sort_by: Annotated[VideoSortField, Query(alias="sortBy")] = VideoSortField.CREATED_AT,
    sort_type: Annotated[SortType, Query(alias="sortType")] = SortType.DESC,
):
    """List videos, newest first by default.

    Unpublished videos are only listed when `userId` is the caller's own id.

    ## Possible Errors
    - 400 Bad Request: If `userId` is not a valid id.
    """
    conditions = []

    if user_id is not None:
        owner_id = to_object_id(user_id, "user id")
        conditions.append(Video.owner == owner_id)
        if str(owner_id) != str(current_user.id):
            conditions.append(Video.is_published == True)  # noqa: E712
    else:
        conditions.append(Video.is_published == True)  # noqa: E712

    if query and query.strip():
        pattern = re.escape(query.strip())
        conditions.append(Or(RegEx(Video.title, pattern, "i"), RegEx(Video.description, pattern, "i")))

    direction = ASCENDING if sort_type == SortType.ASC else DESCENDING

    videos_query = Video.find(*conditions)
    total = await videos_query.count()
    videos = await videos_query.sort((VIDEO_SORT_FIELDS[sort_by], direction)).skip(offset).limit(limit).to_list()

    page = Page[VideoResponse](
        items=[VideoResponse.model_validate(video) for video in videos],
        total=total,
        offset=offset,
        limit=limit,
    )
    return api_response(page.model_dump(mode="json", by_alias=True), "Videos fetched successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
async def publish_video(
    title: Annotated[str, Form(max_length=200)],
    description: Annotated[str, Form(max_length=5000)],
    video_file: Annotated[UploadFile, File(alias="videoFile", description="The video to publish")],
    thumbnail: Annotated[UploadFile, File(description="Thumbnail image of the video")],
    current_user: CurrentUser,
    duration: Annotated[Optional[float], Form(ge=0, description="Length in seconds. Detected on upload when omitted")] = None,
):
    """Upload a video and its thumbnail and publish it.

    ## Possible Errors
    - 400 Bad Request: If a field is blank or a file has the wrong type or size.
    - 503 Service Unavailable: If the media store cannot be reached.
    """
    title = require_text(title, "Title is required")
    description = require_text(description, "Description is required")

    await validate_upload(video_file, ALLOWED_VIDEO_TYPES, MAX_VIDEO_SIZE, "video")
    await validate_upload(thumbnail, ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE, "thumbnail")

    with logfire.span(f"Publishing video '{title}' for user {current_user.username}"):
        video_result, thumbnail_result = await asyncio.gather(
            upload_file_to_cloudinary(video_file, ResourceType.VIDEO),
            upload_file_to_cloudinary(thumbnail),
        )

        video_upload = to_upload_response(video_result, "Failed to upload video")
        thumbnail_upload = to_upload_response(thumbnail_result, "Failed to upload thumbnail")

        video = Video(
            video_file=video_upload.secure_url,
            thumbnail=thumbnail_upload.secure_url,
            title=title,
            description=description,
            duration=duration if duration is not None else (video_upload.duration or 0),
            owner=current_user.id,
        )
        await video.insert()

    logfire.info(f"Video {video.id} published by user {current_user.username}")
    return api_response(
        VideoResponse.model_validate(video).model_dump(mode="json", by_alias=True),
        "Video published successfully",
        status.HTTP_201_CREATED,
    )


@router.get("/{video_id}")
async def get_video_by_id(
    video_id: str,
    current_user: CurrentUser,
    store: Annotated[AccountStore, Depends(get_account_store)],
):
    """Get a single video. Unpublished videos are only visible to their owner.

    Fetching a video counts as a view and adds it to the caller's watch history.

    ## Possible Errors
    - 400 Bad Request: If the id is malformed.
    - 404 Not Found: If the video does not exist.
    """
    video = await _get_video(video_id)

    if not video.is_published and str(video.owner) != str(current_user.id):
        raise NotFound("Video not found")

    await video.update(Inc({Video.views: 1}))
    await store.add_to_watch_history(str(current_user.id), video.id)

    return api_response(
        VideoResponse.model_validate(video).model_dump(mode="json", by_alias=True),
        "Video fetched successfully",
    )


@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    current_user: CurrentUser,
    title: Annotated[Optional[str], Form(max_length=200)] = None,
    description: Annotated[Optional[str], Form(max_length=5000)] = None,
    duration: Annotated[Optional[float], Form(ge=0)] = None,
    thumbnail: Annotated[Optional[UploadFile], File(description="Replacement thumbnail")] = None,
):
    """Update the details or thumbnail of a video owned by the caller.

    ## Possible Errors
    - 400 Bad Request: If a provided field is blank.
    - 403 Forbidden: If the caller does not own the video.
    - 404 Not Found: If the video does not exist.
    """
    video = await _get_video(video_id)
    ensure_owner(video.owner, current_user, "You can only update your own videos")

    changes = {}
    if title is not None:
        changes["title"] = require_text(title, "Title cannot be empty")
    if description is not None:
        changes["description"] = require_text(description, "Description cannot be empty")
    if duration is not None:
        changes["duration"] = duration

    previous_thumbnail = None
    if thumbnail is not None:
        await validate_upload(thumbnail, ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE, "thumbnail")
        upload = to_upload_response(await upload_file_to_cloudinary(thumbnail), "Failed to upload thumbnail")
        previous_thumbnail = video.thumbnail
        changes["thumbnail"] = upload.secure_url

    if changes:
        await video.set({**changes, "updated_at": utc_now()})

    if previous_thumbnail:
        await destroy_cloudinary_asset(previous_thumbnail)

    return api_response(
        VideoResponse.model_validate(video).model_dump(mode="json", by_alias=True),
        "Video updated successfully",
    )


@router.delete("/{video_id}")
async def delete_video(video_id: str, current_user: CurrentUser):
    """Delete a video owned by the caller together with its comments and media.

    ## Possible Errors
    - 403 Forbidden: If the caller does not own the video.
    - 404 Not Found: If the video does not exist.
    """
    video = await _get_video(video_id)
    ensure_owner(video.owner, current_user, "You can only delete your own videos")

    await video.delete()
    await Comment.find(Comment.video == video.id).delete()

    await asyncio.gather(
        destroy_cloudinary_asset(video.video_file, ResourceType.VIDEO.value),
        destroy_cloudinary_asset(video.thumbnail),
    )

    logfire.info(f"Video {video_id} deleted by user {current_user.username}")
    return api_response({}, "Video deleted successfully")


@router.patch("/toggle/publish/{video_id}")
async def toggle_publish_status(video_id: str, current_user: CurrentUser):
    """Publish an unpublished video or unpublish a published one.

    ## Possible Errors
    - 403 Forbidden: If the caller does not own the video.
    - 404 Not Found: If the video does not exist.
    """
    video = await _get_video(video_id)
    ensure_owner(video.owner, current_user, "You can only change the status of your own videos")

    await video.set({"is_published": not video.is_published, "updated_at": utc_now()})

    return api_response(
        VideoResponse.model_validate(video).model_dump(mode="json", by_alias=True),
        "Video publish status toggled successfully",
    )
