from datetime import datetime

from pydantic import Field

from typing import Annotated
from beanie import Document, Indexed, PydanticObjectId

from .helpers import utc_now


class Tweet(Document):
    """A short text post published by a user."""
    content: Annotated[str, Field(min_length=1, max_length=500)]
    owner: Annotated[PydanticObjectId, Indexed()]
    created_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="updatedAt")]

    class Settings:
        name = "tweets"
