"""
Auth router for handling login, logout, token refresh and password changes.
"""

import logfire

from fastapi import APIRouter, Body, Cookie, Depends, status

from security.credentials import CredentialManager, CurrentUser, get_credential_manager
from security.helpers import (
    REFRESH_TOKEN_COOKIE,
    clear_auth_cookies,
    get_password_hash,
    set_auth_cookies,
)

from services.accounts import AccountStore, get_account_store

from schema.responses import api_response
from schema.security import ChangePasswordRequest, LoginRequest, RefreshTokenRequest
from schema.users import LoginResponse, UserProfile

from utils.exceptions import InvalidInput

from typing import Annotated, Optional

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Auth"],
)


@router.post("/login", status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    manager: Annotated[CredentialManager, Depends(get_credential_manager)],
):
    """Log in with a username or an email address and a password.

    Both tokens are returned in the body and set as HTTP-only cookies.
    Logging in again replaces the refresh token of any earlier session.

    ## Possible Errors
    - 400 Bad Request: If neither a username nor an email is provided.
    - 401 Unauthorized: If the password is wrong.
    - 404 Not Found: If no account matches the identifier.

    ## Success response structure
    ```json
    {
        "statusCode": 200,
        "success": true,
        "message": "User logged in successfully",
        "data": {"user": {...}, "accessToken": "...", "refreshToken": "..."}
    }
    ```
    """
    with logfire.span(f"Login attempt for {payload.username or payload.email}"):
        account, tokens = await manager.login(
            payload.password, username=payload.username, email=payload.email
        )

    data = LoginResponse(
        user=UserProfile.model_validate(account),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )

    response = api_response(data.model_dump(mode="json", by_alias=True), "User logged in successfully")
    set_auth_cookies(response, tokens, manager.settings)
    return response


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(
    current_user: CurrentUser,
    manager: Annotated[CredentialManager, Depends(get_credential_manager)],
):
    """Revoke the current session's refresh token and clear both cookies.

    Access tokens already issued stay valid until they expire.
    """
    await manager.revoke(str(current_user.id))

    response = api_response({}, "User logged out")
    clear_auth_cookies(response)
    return response


@router.post("/refresh-token", status_code=status.HTTP_200_OK)
async def refresh_access_token(
    manager: Annotated[CredentialManager, Depends(get_credential_manager)],
    refresh_token_cookie: Annotated[Optional[str], Cookie(alias=REFRESH_TOKEN_COOKIE)] = None,
    payload: Annotated[Optional[RefreshTokenRequest], Body()] = None,
):
    """Exchange the current refresh token for a new access/refresh pair.

    The token is read from the `refreshToken` cookie, falling back to the
    `refreshToken` field of the JSON body. A refresh token can only be used once.

    ## Possible Errors
    - 401 Unauthorized: If the token is missing, invalid, expired or already used.
    """
    incoming_token = refresh_token_cookie or (payload.refresh_token if payload else None)

    tokens = await manager.rotate(incoming_token)

    response = api_response(
        tokens.model_dump(mode="json", by_alias=True, include={"access_token", "refresh_token"}),
        "Access token refreshed",
    )
    set_auth_cookies(response, tokens, manager.settings)
    return response


@router.post("/change-password", status_code=status.HTTP_200_OK)
async def change_password(
    payload: ChangePasswordRequest,
    current_user: CurrentUser,
    store: Annotated[AccountStore, Depends(get_account_store)],
):
    """Change the password of the authenticated user.

    The current session stays active.
    """
    if not store.verify_password(current_user, payload.old_password):
        raise InvalidInput("Invalid old password")

    await store.update_fields(str(current_user.id), {"password": get_password_hash(payload.new_password)})
    logfire.info(f"Password changed for user {current_user.username}")

    return api_response({}, "Password changed successfully")
