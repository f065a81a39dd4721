"""Schema for responses related to videos."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from typing import Annotated, Any, Optional

from schema.responses import DocumentResponse


class VideoResponse(DocumentResponse):
    video_file: Annotated[str, Field(serialization_alias="videoFile")]
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: Annotated[bool, Field(serialization_alias="isPublished")]
    owner: str
    created_at: Annotated[datetime, Field(serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(serialization_alias="updatedAt")]

    @field_validator("owner", mode="before")
    @classmethod
    def convert_owner_to_string(cls, value: Any) -> str:
        return str(value)


class VideoOwner(BaseModel):
    """Public details of the channel that published a video."""

    id: Annotated[str, Field(validation_alias="_id")]
    username: str
    full_name: Annotated[str, Field(serialization_alias="fullName")]
    avatar: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def convert_id_to_string(cls, value: Any) -> str:
        return str(value)


class WatchedVideo(BaseModel):
    """A watch history entry: the video joined with its owner."""

    id: Annotated[str, Field(validation_alias="_id")]
    video_file: Annotated[str, Field(serialization_alias="videoFile")]
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    owner: VideoOwner
    created_at: Annotated[datetime, Field(serialization_alias="createdAt")]

    @field_validator("id", mode="before")
    @classmethod
    def convert_id_to_string(cls, value: Any) -> str:
        return str(value)
