"""
Security module: JWT tokens, password hashing, rate limiting.
"""

from shared.security.auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    current_token_claims,
    get_token,
    sign_access_token,
    sign_jwt,
    sign_refresh_token,
    verify_jwt,
    verify_refresh_token,
)
from shared.security.password import hash_password, verify_password
from shared.security.rate_limit import (
    LOGIN_RATE_LIMIT,
    limiter,
    rate_limit_exceeded_handler,
)

__all__ = [
    # auth
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "current_token_claims",
    "get_token",
    "sign_access_token",
    "sign_jwt",
    "sign_refresh_token",
    "verify_jwt",
    "verify_refresh_token",
    # password
    "hash_password",
    "verify_password",
    # rate_limit
    "LOGIN_RATE_LIMIT",
    "limiter",
    "rate_limit_exceeded_handler",
]
