"""
Authentication utilities.
Handles JWT access/refresh tokens for staff.

The subject claim is the auth principal id (a UUID string). Everything
else about the caller (staff row, role, branch) is resolved server-side
per request, so a role change takes effect without re-issuing tokens.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt
from fastapi import Cookie, Header

from shared.config.logging import get_logger
from shared.config.settings import JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET, settings
from shared.utils.exceptions import UnauthorizedError

logger = get_logger(__name__)

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


# =============================================================================
# JWT Functions
# =============================================================================


def sign_jwt(
    payload: dict[str, Any],
    ttl_seconds: int | None = None,
    token_type: str = "access",
) -> str:
    """
    Sign a JWT token with the given payload.

    Args:
        payload: Claims to include in the token (sub, franchise_id, ...)
        ttl_seconds: Token lifetime in seconds. Defaults to the configured expiry.
        token_type: Type of token ("access" or "refresh").

    Returns:
        Signed JWT token string.
    """
    if ttl_seconds is None:
        if token_type == "refresh":
            ttl_seconds = settings.jwt_refresh_token_expire_days * 24 * 60 * 60
        else:
            ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "type": token_type,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def sign_access_token(principal_id: str, franchise_id: str, staff_id: str) -> str:
    return sign_jwt(
        {"sub": principal_id, "franchise_id": franchise_id, "staff_id": staff_id},
        token_type="access",
    )


def sign_refresh_token(principal_id: str) -> str:
    """
    Create a refresh token for a principal.

    Refresh tokens have longer expiry and contain minimal claims.
    They can only be used to obtain new access tokens.
    """
    return sign_jwt({"sub": principal_id}, token_type="refresh")


def verify_jwt(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Returns:
        Decoded token claims.

    Raises:
        UnauthorizedError: If token is invalid, expired or of the wrong type.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.InvalidTokenError as e:
        # Generic message to the client, details in the log
        logger.warning("JWT validation failed", error=str(e))
        raise UnauthorizedError("Invalid token")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise UnauthorizedError("Invalid token: missing subject claim")
    if payload.get("type") != expected_type:
        raise UnauthorizedError(f"Invalid token type. Expected {expected_type} token.")
    return payload


def verify_refresh_token(token: str) -> dict[str, Any]:
    return verify_jwt(token, expected_type="refresh")


def get_token(authorization: str | None, cookie_token: str | None) -> str:
    """
    Pick the access token from the Authorization header, else the cookie.

    Raises:
        UnauthorizedError: If neither carries a token or the header is malformed.
    """
    if authorization:
        if not authorization.startswith("Bearer "):
            raise UnauthorizedError("Invalid Authorization header format. Expected: Bearer <token>")
        return authorization.split(" ", 1)[1].strip()
    if cookie_token:
        return cookie_token
    raise UnauthorizedError("Not authenticated")


def current_token_claims(
    authorization: str | None = Header(default=None, alias="Authorization"),
    access_token: str | None = Cookie(default=None, alias=ACCESS_COOKIE),
) -> dict[str, Any]:
    """
    FastAPI dependency returning the verified access-token claims.

    Usage:
        @router.get("/protected")
        def protected(claims = Depends(current_token_claims)):
            principal_id = claims["sub"]
    """
    return verify_jwt(get_token(authorization, access_token))
