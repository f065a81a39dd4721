"""
Comment router for discussions under videos.
"""

import logfire

from fastapi import APIRouter, status, Query

from models.comments import Comment
from models.helpers import utc_now
from models.videos import Video

from security.credentials import CurrentUser

from schema.comments import CommentRequest, CommentResponse, CommentWithOwner
from schema.responses import Page, api_response

from utils.exceptions import NotFound
from utils.validators import ensure_owner, require_text, to_object_id

from typing import Annotated

router = APIRouter(
    prefix="/api/v1/comments",
    tags=["Comments"],
)


async def _get_comment(comment_id: str) -> Comment:
    comment = await Comment.get(to_object_id(comment_id, "comment id"))
    if comment is None:
        raise NotFound("Comment not found")
    return comment


@router.get("/{video_id}")
async def get_video_comments(
    video_id: str,
    current_user: CurrentUser,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
):
    """List the comments of a video, newest first, with each author's username and avatar.

    ## Possible Errors
    - 400 Bad Request: If the video id is malformed.
    """
    video = to_object_id(video_id, "video id")

    comments_query = Comment.find(Comment.video == video)

    # Comments whose author no longer exists drop out here, before paging and counting
    with_author = [
        {
            "$lookup": {
                "from": "users",
                "localField": "owner",
                "foreignField": "_id",
                "as": "author",
            }
        },
        {"$unwind": "$author"},
    ]

    counted = await comments_query.aggregate([*with_author, {"$count": "total"}]).to_list()
    total = counted[0]["total"] if counted else 0

    pipeline = [
        *with_author,
        {"$sort": {"created_at": -1}},
        {"$skip": offset},
        {"$limit": limit},
        {
            "$project": {
                "_id": 1,
                "content": 1,
                "owner": 1,
                "created_at": 1,
                "username": "$author.username",
                "avatar": "$author.avatar",
            }
        },
    ]
    comments = await comments_query.aggregate(pipeline, projection_model=CommentWithOwner).to_list()

    page = Page[CommentWithOwner](items=comments, total=total, offset=offset, limit=limit)
    return api_response(page.model_dump(mode="json", by_alias=True), "Comments fetched successfully")


@router.post("/{video_id}", status_code=status.HTTP_201_CREATED)
async def add_comment(video_id: str, payload: CommentRequest, current_user: CurrentUser):
    """Comment on a video.

    ## Possible Errors
    - 400 Bad Request: If the content is blank.
    - 404 Not Found: If the video does not exist.
    """
    content = require_text(payload.content, "Content is required")

    video = await Video.get(to_object_id(video_id, "video id"))
    if video is None:
        raise NotFound("Video not found")

    comment = Comment(content=content, video=video.id, owner=current_user.id)
    await comment.insert()

    logfire.info(f"Comment {comment.id} added to video {video_id} by user {current_user.username}")
    return api_response(
        CommentResponse.model_validate(comment).model_dump(mode="json", by_alias=True),
        "Comment added successfully",
        status.HTTP_201_CREATED,
    )


@router.patch("/c/{comment_id}")
async def update_comment(comment_id: str, payload: CommentRequest, current_user: CurrentUser):
    content = require_text(payload.content, "Content is required")

    comment = await _get_comment(comment_id)
    ensure_owner(comment.owner, current_user, "You can only edit your own comments")

    await comment.set({"content": content, "updated_at": utc_now()})

    return api_response(
        CommentResponse.model_validate(comment).model_dump(mode="json", by_alias=True),
        "Comment updated successfully",
    )


@router.delete("/c/{comment_id}")
async def delete_comment(comment_id: str, current_user: CurrentUser):
    comment = await _get_comment(comment_id)
    ensure_owner(comment.owner, current_user, "You can only delete your own comments")

    await comment.delete()

    logfire.info(f"Comment {comment_id} deleted by user {current_user.username}")
    return api_response({}, "Comment deleted successfully")
