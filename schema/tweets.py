"""Schema for requests and responses related to tweets."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from typing import Annotated, Any

from schema.responses import DocumentResponse


class TweetRequest(BaseModel):
    """Body used both to create and to edit a tweet."""

    model_config = ConfigDict(extra="forbid")

    content: Annotated[str, Field(max_length=500)]


class TweetResponse(DocumentResponse):
    content: str
    owner: str
    created_at: Annotated[datetime, Field(serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(serialization_alias="updatedAt")]

    @field_validator("owner", mode="before")
    @classmethod
    def convert_owner_to_string(cls, value: Any) -> str:
        return str(value)
