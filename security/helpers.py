"""Contains all security related helper functions
"""
import secrets

from datetime import datetime, timedelta, timezone

from fastapi import Response

from passlib.context import CryptContext
from jose import JWTError, jwt

from pydantic import ValidationError

from schema.security import TokenClaims, TokenPair, TokenSettings, TokenType

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies that `plain_password` and `hashed_password` are equal.

    Args:
        plain_password (str): The plain text password to verify.
        hashed_password (str): The hashed password to compare against.

    Returns:
        bool: True if the passwords match, False otherwise.
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generates a hash for the given password.

    Args:
        password (str): The plain text password to hash.

    Returns:
        str: The hashed password.
    """
    return pwd_context.hash(password)


def create_token(
    subject: str,
    token_type: TokenType,
    secret: str,
    expires_delta: timedelta,
    algorithm: str = "HS256",
) -> str:
    """Creates a signed token for `subject`.

    Args:
        subject (str): The account id the token is issued to.
        token_type (TokenType): Whether this is an access or a refresh token.
        secret (str): The signing secret for this token class.
        expires_delta (timedelta): How long the token stays valid.
        algorithm (str, optional): HMAC algorithm. Defaults to "HS256".

    Raises:
        JOSEError: Raised when the token cannot be signed.

    Returns:
        str: The encoded JWT.
    """
    issued_at = datetime.now(timezone.utc)
    to_encode = {
        "sub": subject,
        "type": token_type.value,
        "jti": secrets.token_urlsafe(16),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + expires_delta).timestamp()),
    }
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_token(
    token: str, token_type: TokenType, secret: str, algorithm: str = "HS256"
) -> TokenClaims | None:
    """Decode and validate a token of the given class.

    Bad signatures, expired tokens, malformed tokens and tokens of the other
    class all yield None so callers cannot tell which check failed.

    Args:
        token (str): The encoded JWT.
        token_type (TokenType): The class the token must belong to.
        secret (str): The signing secret for that class.
        algorithm (str, optional): HMAC algorithm. Defaults to "HS256".

    Returns:
        TokenClaims | None: Token claims if valid, None if invalid.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
        claims = TokenClaims(**payload)
    except (JWTError, ValidationError, AttributeError, TypeError):
        return None

    if claims.type != token_type:
        return None
    return claims


def _cookie_options() -> dict:
    return {"httponly": True, "secure": True, "samesite": "strict", "path": "/"}


def set_auth_cookies(response: Response, tokens: TokenPair, settings: TokenSettings) -> None:
    """Write both tokens to the response as HTTP-only, secure, same-site cookies."""
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        **_cookie_options(),
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 3600,
        **_cookie_options(),
    )


def clear_auth_cookies(response: Response) -> None:
    """Instruct the client to drop both token cookies."""
    for cookie in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(cookie, **_cookie_options())
