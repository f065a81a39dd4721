"""Defines schema of requests, responses and settings related to security"""

import os

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, model_validator

from typing import Annotated, Optional, Self


class TokenType(str, Enum):
    """The two classes of bearer token issued by the API."""
    ACCESS = "access"
    REFRESH = "refresh"


class TokenSettings(BaseModel):
    """Secrets and lifetimes used to sign both token classes."""

    access_token_secret: Annotated[str, Field(min_length=1)]
    access_token_expire_minutes: Annotated[int, Field(gt=0, default=15)]
    refresh_token_secret: Annotated[str, Field(min_length=1)]
    refresh_token_expire_days: Annotated[int, Field(gt=0, default=10)]
    algorithm: Annotated[str, Field(default="HS256")]

    @model_validator(mode="after")
    def check_secrets_are_distinct(self) -> Self:
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("Access and refresh tokens must be signed with different secrets")
        return self

    @classmethod
    def from_env(cls) -> "TokenSettings":
        """Build the settings from the process environment."""
        return cls(
            access_token_secret=os.getenv("ACCESS_TOKEN_SECRET", ""),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")),
            refresh_token_secret=os.getenv("REFRESH_TOKEN_SECRET", ""),
            refresh_token_expire_days=int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "10")),
            algorithm=os.getenv("TOKEN_ALGORITHM", "HS256"),
        )


class TokenClaims(BaseModel):
    """Model representing the claims carried by both token classes."""

    sub: str  # account id
    type: TokenType
    jti: str  # random nonce, keeps tokens issued in the same second distinct
    iat: int  # Unix timestamp
    exp: int  # Unix timestamp


class TokenPair(BaseModel):
    """Model representing both access and refresh tokens."""

    access_token: Annotated[str, Field(serialization_alias="accessToken")]
    refresh_token: Annotated[str, Field(serialization_alias="refreshToken")]
    token_type: Annotated[str, Field(default="Bearer", serialization_alias="tokenType")]
    expires_in: Annotated[int, Field(serialization_alias="expiresIn")]  # Access token expiry in seconds


class LoginRequest(BaseModel):
    """Credentials submitted to the login endpoint. Either identifier may be used."""

    model_config = ConfigDict(extra="forbid")

    username: Annotated[Optional[str], Field(default=None, max_length=30)]
    email: Annotated[Optional[EmailStr], Field(default=None)]
    password: Annotated[str, Field(min_length=1)]


class RefreshTokenRequest(BaseModel):
    """Body fallback for clients that cannot send the refresh token cookie."""

    model_config = ConfigDict(extra="forbid")

    refresh_token: Annotated[
        Optional[str],
        Field(default=None, validation_alias=AliasChoices("refreshToken", "refresh_token")),
    ]


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    old_password: Annotated[
        str, Field(min_length=1, validation_alias=AliasChoices("oldPassword", "old_password"))
    ]
    new_password: Annotated[
        str, Field(min_length=8, validation_alias=AliasChoices("newPassword", "new_password"))
    ]
