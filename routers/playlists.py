"""
Playlist router for user curated collections of videos.
"""

import logfire

from fastapi import APIRouter, status, Query

from beanie.operators import AddToSet, Pull, Set

from models.helpers import utc_now
from models.playlists import Playlist
from models.videos import Video

from security.credentials import CurrentUser

from schema.playlists import CreatePlaylistRequest, PlaylistResponse, UpdatePlaylistRequest
from schema.responses import Page, api_response

from utils.exceptions import Forbidden, NotFound
from utils.validators import ensure_owner, require_text, to_object_id

from typing import Annotated

router = APIRouter(
    prefix="/api/v1/playlists",
    tags=["Playlists"],
)


async def _get_playlist(playlist_id: str) -> Playlist:
    playlist = await Playlist.get(to_object_id(playlist_id, "playlist id"))
    if playlist is None:
        raise NotFound("Playlist not found")
    return playlist


async def _get_owned_playlist_and_video(video_id: str, playlist_id: str, current_user) -> tuple:
    video = await Video.get(to_object_id(video_id, "video id"))
    if video is None:
        raise NotFound("Video not found")

    playlist = await _get_playlist(playlist_id)
    ensure_owner(playlist.owner, current_user, "You can only change your own playlists")
    return playlist, video


def _playlist_response(playlist: Playlist, message: str, status_code: int = status.HTTP_200_OK):
    return api_response(
        PlaylistResponse.model_validate(playlist).model_dump(mode="json", by_alias=True),
        message,
        status_code,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_playlist(payload: CreatePlaylistRequest, current_user: CurrentUser):
    playlist = Playlist(
        name=require_text(payload.name, "Name is required"),
        description=payload.description.strip(),
        owner=current_user.id,
    )
    await playlist.insert()

    logfire.info(f"Playlist {playlist.id} created by user {current_user.username}")
    return _playlist_response(playlist, "Playlist created successfully", status.HTTP_201_CREATED)


@router.get("/user/{user_id}")
async def get_user_playlists(
    user_id: str,
    current_user: CurrentUser,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    """List the playlists of the authenticated user.

    ## Possible Errors
    - 403 Forbidden: If `user_id` is not the caller's own id.
    """
    owner_id = to_object_id(user_id, "user id")
    if str(owner_id) != str(current_user.id):
        raise Forbidden("You can only view your own playlists")

    playlists_query = Playlist.find(Playlist.owner == owner_id)
    total = await playlists_query.count()
    playlists = await playlists_query.sort(-Playlist.created_at).skip(offset).limit(limit).to_list()

    page = Page[PlaylistResponse](
        items=[PlaylistResponse.model_validate(playlist) for playlist in playlists],
        total=total,
        offset=offset,
        limit=limit,
    )
    return api_response(page.model_dump(mode="json", by_alias=True), "Playlists fetched successfully")


@router.get("/{playlist_id}")
async def get_playlist_by_id(playlist_id: str, current_user: CurrentUser):
    playlist = await _get_playlist(playlist_id)
    return _playlist_response(playlist, "Playlist fetched successfully")


@router.patch("/add/{video_id}/{playlist_id}")
async def add_video_to_playlist(video_id: str, playlist_id: str, current_user: CurrentUser):
    """Add a video to a playlist owned by the caller. Adding it twice is a no-op."""
    playlist, video = await _get_owned_playlist_and_video(video_id, playlist_id, current_user)

    await playlist.update(AddToSet({Playlist.videos: video.id}), Set({Playlist.updated_at: utc_now()}))
    playlist = await _get_playlist(playlist_id)

    return _playlist_response(playlist, "Video added to playlist successfully")


@router.patch("/remove/{video_id}/{playlist_id}")
async def remove_video_from_playlist(video_id: str, playlist_id: str, current_user: CurrentUser):
    playlist, video = await _get_owned_playlist_and_video(video_id, playlist_id, current_user)

    await playlist.update(Pull({Playlist.videos: video.id}), Set({Playlist.updated_at: utc_now()}))
    playlist = await _get_playlist(playlist_id)

    return _playlist_response(playlist, "Video removed from playlist successfully")


@router.patch("/{playlist_id}")
async def update_playlist(playlist_id: str, payload: UpdatePlaylistRequest, current_user: CurrentUser):
    """Rename a playlist or change its description.

    ## Possible Errors
    - 400 Bad Request: If a provided field is blank.
    - 403 Forbidden: If the caller does not own the playlist.
    """
    playlist = await _get_playlist(playlist_id)
    ensure_owner(playlist.owner, current_user, "You can only update your own playlists")

    changes = {}
    if payload.name is not None:
        changes["name"] = require_text(payload.name, "Name cannot be empty")
    if payload.description is not None:
        changes["description"] = require_text(payload.description, "Description cannot be empty")

    if changes:
        await playlist.set({**changes, "updated_at": utc_now()})

    return _playlist_response(playlist, "Playlist updated successfully")


@router.delete("/{playlist_id}")
async def delete_playlist(playlist_id: str, current_user: CurrentUser):
    playlist = await _get_playlist(playlist_id)
    ensure_owner(playlist.owner, current_user, "You can only delete your own playlists")

    await playlist.delete()

    logfire.info(f"Playlist {playlist_id} deleted by user {current_user.username}")
    return api_response({}, "Playlist deleted successfully")
