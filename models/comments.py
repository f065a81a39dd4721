from datetime import datetime

from pydantic import Field

from typing import Annotated
from beanie import Document, Indexed, PydanticObjectId

from .helpers import utc_now


class Comment(Document):
    content: Annotated[str, Field(min_length=1, max_length=1000)]
    video: Annotated[PydanticObjectId, Indexed()]
    owner: Annotated[PydanticObjectId, Field()]
    created_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="updatedAt")]

    class Settings:
        name = "comments"
