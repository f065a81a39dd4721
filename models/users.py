from pydantic import Field, EmailStr, field_serializer, field_validator
from typing import Annotated, List, Optional

from datetime import datetime

from beanie import Document, Indexed, PydanticObjectId

from .helpers import utc_now


class User(Document):
    """An account on the platform. Also acts as the channel that owns videos.

    `refresh_token` holds the single refresh token currently honored for the
    account. Issuing a new one overwrites it and clearing it revokes the session.
    """
    username: Annotated[str, Indexed(unique=True), Field(min_length=3, max_length=30)]
    email: Annotated[EmailStr, Indexed(unique=True), Field(max_length=100)]
    full_name: Annotated[str, Field(min_length=1, max_length=100, serialization_alias="fullName")]
    avatar: Annotated[str, Field()]  # Cloudinary URL
    cover_image: Annotated[Optional[str], Field(default=None, serialization_alias="coverImage")]
    password: Annotated[str, Field()]  # bcrypt hash
    refresh_token: Annotated[Optional[str], Field(default=None, serialization_alias="refreshToken")]
    watch_history: Annotated[List[PydanticObjectId], Field(default=[], serialization_alias="watchHistory")]
    created_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="createdAt")]
    updated_at: Annotated[datetime, Field(default_factory=utc_now, serialization_alias="updatedAt")]

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        return value.strip().lower()

    @field_serializer("id")
    def convert_pydantic_object_id_to_string(self, id: PydanticObjectId):
        return str(id)

    class Settings:
        name = "users"
