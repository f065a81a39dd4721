"""Contains the schema definition for requests and responses related to users
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from typing import Annotated, Optional

from schema.responses import DocumentResponse


class UserProfile(DocumentResponse):
    """Public view of an account. Never carries the password hash or refresh token."""

    username: str
    email: str
    full_name: Annotated[str, Field(serialization_alias="fullName")]
    avatar: str
    cover_image: Annotated[Optional[str], Field(default=None, serialization_alias="coverImage")]
    created_at: Annotated[Optional[datetime], Field(default=None, serialization_alias="createdAt")]
    updated_at: Annotated[Optional[datetime], Field(default=None, serialization_alias="updatedAt")]


class LoginResponse(BaseModel):
    """Describes the structure of the login response data."""

    user: UserProfile
    access_token: Annotated[str, Field(serialization_alias="accessToken")]
    refresh_token: Annotated[str, Field(serialization_alias="refreshToken")]


class UpdateAccountRequest(BaseModel):
    """Describes the structure of the update account request."""

    model_config = ConfigDict(extra="forbid")

    full_name: Annotated[
        str,
        Field(max_length=100, validation_alias=AliasChoices("fullName", "full_name")),
    ]
    email: Annotated[EmailStr, Field(max_length=100)]
