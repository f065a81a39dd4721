"""
Credential manager: issues, verifies, rotates and revokes bearer tokens.

Access tokens are stateless and verified from their signature and expiry alone.
Refresh tokens are additionally checked against the single value stored on the
account, which is what makes rotation and logout effective before expiry.
"""

import asyncio
import hmac

import logfire

from datetime import timedelta
from typing import Annotated, Optional, Tuple

from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from jose.exceptions import JOSEError

from models.users import User

from schema.security import TokenPair, TokenSettings, TokenType

from security.helpers import ACCESS_TOKEN_COOKIE, create_token, decode_token

from services.accounts import AccountStore, get_account_store

from utils.exceptions import Internal, InvalidInput, NotFound, ServiceUnavailable, Unauthorized


# Login takes a JSON body, so the docs only offer a plain bearer token field
bearer_scheme = HTTPBearer(auto_error=False)


class CredentialManager:
    """Owns the token lifecycle for every account.

    Args:
        store (AccountStore): Where accounts and their current refresh token live.
        settings (TokenSettings): Signing secrets and token lifetimes.
        write_retries (int): Extra attempts for a refresh token write when the
            store is unreachable.
        backoff_base (float): First retry delay in seconds, doubled per attempt.
        backoff_cap (float): Upper bound for a single retry delay in seconds.
    """

    def __init__(
        self,
        store: AccountStore,
        settings: TokenSettings,
        write_retries: int = 2,
        backoff_base: float = 0.2,
        backoff_cap: float = 2.0,
    ):
        self.store = store
        self.settings = settings
        self.write_retries = write_retries
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap

    def issue(self, account_id: str) -> TokenPair:
        """Sign a fresh access/refresh pair for `account_id`. No store access."""
        try:
            access_token = create_token(
                account_id,
                TokenType.ACCESS,
                self.settings.access_token_secret,
                timedelta(minutes=self.settings.access_token_expire_minutes),
                self.settings.algorithm,
            )
            refresh_token = create_token(
                account_id,
                TokenType.REFRESH,
                self.settings.refresh_token_secret,
                timedelta(days=self.settings.refresh_token_expire_days),
                self.settings.algorithm,
            )
        except JOSEError as e:
            logfire.error(f"Failed to sign tokens for account {account_id}: {e}")
            raise Internal("Something went wrong while generating access and refresh token")

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=self.settings.access_token_expire_minutes * 60,
        )

    def verify_access(self, token: Optional[str]) -> str:
        """Return the account id carried by a valid access token."""
        if not token:
            raise Unauthorized("Unauthorized request")

        claims = decode_token(
            token, TokenType.ACCESS, self.settings.access_token_secret, self.settings.algorithm
        )
        if claims is None:
            raise Unauthorized("Invalid access token")
        return claims.sub

    async def authenticate(self, token: Optional[str]) -> User:
        """Verify an access token and load the account it was issued to."""
        account_id = self.verify_access(token)

        account = await self.store.get_by_id(account_id)
        if account is None:
            raise Unauthorized("Invalid access token")
        return account

    async def login(
        self,
        password: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Tuple[User, TokenPair]:
        """Check credentials and start a new session, replacing any previous one."""
        username = (username or "").strip() or None
        email = (email or "").strip() or None

        if not username and not email:
            raise InvalidInput("Username or email is required")

        account = await self.store.find_by_identifier(username=username, email=email)
        if account is None:
            raise NotFound("User does not exist")

        if not self.store.verify_password(account, password):
            logfire.info(f"Rejected login for {account.username}: wrong password")
            raise Unauthorized("Invalid user credentials")

        tokens = await self._issue_and_store(str(account.id))
        account.refresh_token = tokens.refresh_token

        logfire.info(f"User {account.username} logged in successfully")
        return account, tokens

    async def rotate(self, refresh_token: Optional[str]) -> TokenPair:
        """Exchange the current refresh token for a new pair.

        The presented token is superseded on success, so replaying it later
        fails even though its signature and expiry are still fine.
        """
        if not refresh_token:
            raise Unauthorized("Unauthorized request")

        claims = decode_token(
            refresh_token,
            TokenType.REFRESH,
            self.settings.refresh_token_secret,
            self.settings.algorithm,
        )
        if claims is None:
            raise Unauthorized("Invalid refresh token")

        account = await self.store.get_by_id(claims.sub)
        if account is None:
            raise Unauthorized("Invalid refresh token")

        if not hmac.compare_digest(refresh_token, account.refresh_token or ""):
            logfire.warning(f"Superseded refresh token presented for account {claims.sub}")
            raise Unauthorized("Refresh token is expired or used")

        # Two concurrent rotations with the same valid token both get here; the
        # later write wins and the earlier caller's new pair is superseded.
        tokens = await self._issue_and_store(claims.sub)

        logfire.info(f"Tokens refreshed for account {claims.sub}")
        return tokens

    async def revoke(self, account_id: str) -> None:
        """Clear the stored refresh token. Issued access tokens run to expiry."""
        await self._write_refresh_token(account_id, None)
        logfire.info(f"Refresh token revoked for account {account_id}")

    async def _issue_and_store(self, account_id: str) -> TokenPair:
        tokens = self.issue(account_id)
        await self._write_refresh_token(account_id, tokens.refresh_token)
        return tokens

    async def _write_refresh_token(self, account_id: str, refresh_token: Optional[str]) -> None:
        attempt = 0
        while True:
            try:
                await self.store.set_refresh_token(account_id, refresh_token)
                return
            except ServiceUnavailable:
                if attempt >= self.write_retries:
                    logfire.error(
                        f"Giving up storing refresh token for account {account_id} after {attempt + 1} attempts"
                    )
                    raise
                delay = min(self.backoff_cap, self.backoff_base * (2**attempt))
                attempt += 1
                logfire.warning(
                    f"Account store unavailable, retrying refresh token write for {account_id} in {delay:.2f}s"
                )
                await asyncio.sleep(delay)


_credential_manager: Optional[CredentialManager] = None


def get_credential_manager() -> CredentialManager:
    """Get the credential manager instance, built from the environment on first use."""
    global _credential_manager

    if _credential_manager is None:
        _credential_manager = CredentialManager(
            store=get_account_store(), settings=TokenSettings.from_env()
        )

    return _credential_manager


async def get_current_user(
    manager: Annotated[CredentialManager, Depends(get_credential_manager)],
    bearer: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    access_token: Annotated[Optional[str], Cookie(alias=ACCESS_TOKEN_COOKIE)] = None,
) -> User:
    """Resolve the account behind the access token sent as a cookie or bearer header.

    Raises:
        Unauthorized: Raised when the token is absent, invalid or expired, or
            the account no longer exists.

    Returns:
        User: The authenticated account.
    """
    bearer_token = bearer.credentials if bearer else None
    return await manager.authenticate(access_token or bearer_token)


CurrentUser = Annotated[User, Depends(get_current_user)]
