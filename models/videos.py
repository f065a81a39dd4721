from enum import Enum

from datetime import datetime

from pydantic import Field

from typing import Annotated
from beanie import Document, Indexed, PydanticObjectId

from .helpers import utc_now


class VideoSortField(str, Enum):
    """Fields a video listing can be sorted by, as exposed to clients."""
    CREATED_AT = "createdAt"
    VIEWS = "views"
    DURATION = "duration"
    TITLE = "title"


# Maps the public sort names onto document field names
VIDEO_SORT_FIELDS = {
    VideoSortField.CREATED_AT: "created_at",
    VideoSortField.VIEWS: "views",
    VideoSortField.DURATION: "duration",
    VideoSortField.TITLE: "title",
}


class Video(Document):
    video_file: Annotated[str, Field(serialization_alias="videoFile")]  # Cloudinary URL
    thumbnail: Annotated[str, Field()]  # Cloudinary URL
    title: Annotated[str, Field(min_length=1, max_length=200)]
    description: Annotated[str, Field(max_length=5000)]
    duration: Annotated[float, Field(ge=0, default=0)]  # seconds
    views: Annotated[int, Field(ge=0, default=0)]
    is_published: Annotated[bool, Field(default=True, serialization_alias="isPublished")]
    owner: Annotated[PydanticObjectId, Indexed()]
    created_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="updatedAt")]

    class Settings:
        name = "videos"
