"""Schema for requests and responses related to video comments."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from typing import Annotated, Any, Optional

from schema.responses import DocumentResponse


class CommentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: Annotated[str, Field(max_length=1000)]


class CommentResponse(DocumentResponse):
    content: str
    video: str
    owner: str
    created_at: Annotated[datetime, Field(serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(serialization_alias="updatedAt")]

    @field_validator("video", "owner", mode="before")
    @classmethod
    def convert_object_ids_to_string(cls, value: Any) -> str:
        return str(value)


class CommentWithOwner(BaseModel):
    """A comment joined with the username and avatar of its author.

    Used as the projection model of the comments aggregation pipeline.
    """

    id: Annotated[str, Field(validation_alias="_id")]
    content: str
    owner: str
    username: str
    avatar: Optional[str] = None
    created_at: Annotated[datetime, Field(serialization_alias="createdAt")]

    @field_validator("id", "owner", mode="before")
    @classmethod
    def convert_object_ids_to_string(cls, value: Any) -> str:
        return str(value)
