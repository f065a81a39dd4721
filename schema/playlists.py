"""Schema for requests and responses related to playlists."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from typing import Annotated, Any, List, Optional

from schema.responses import DocumentResponse


class CreatePlaylistRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(max_length=100)]
    description: Annotated[str, Field(default="", max_length=1000)]


class UpdatePlaylistRequest(BaseModel):
    """Only the fields present in the body are changed."""

    model_config = ConfigDict(extra="forbid")

    name: Annotated[Optional[str], Field(default=None, max_length=100)]
    description: Annotated[Optional[str], Field(default=None, max_length=1000)]


class PlaylistResponse(DocumentResponse):
    name: str
    description: str
    videos: List[str]
    owner: str
    created_at: Annotated[datetime, Field(serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(serialization_alias="updatedAt")]

    @field_validator("owner", mode="before")
    @classmethod
    def convert_owner_to_string(cls, value: Any) -> str:
        return str(value)

    @field_validator("videos", mode="before")
    @classmethod
    def convert_video_ids_to_string(cls, value: Any) -> List[str]:
        return [str(video_id) for video_id in value]
