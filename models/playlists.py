from datetime import datetime

from pydantic import Field

from typing import Annotated, List
from beanie import Document, Indexed, PydanticObjectId

from .helpers import utc_now


class Playlist(Document):
    """An ordered, duplicate free collection of videos curated by one user."""
    name: Annotated[str, Field(min_length=1, max_length=100)]
    description: Annotated[str, Field(default="", max_length=1000)]
    videos: Annotated[List[PydanticObjectId], Field(default=[])]  # ids of videos in the playlist
    owner: Annotated[PydanticObjectId, Indexed()]
    created_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="updatedAt")]

    class Settings:
        name = "playlists"
