"""
Login throttling with slowapi.

Attempts are counted per client IP against LOGIN_RATE_LIMIT
(settings.login_rate_limit, e.g. "5/minute"). Over the limit the caller
gets a 429 with a Retry-After header.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from shared.config.logging import get_logger
from shared.config.settings import settings

logger = get_logger(__name__)

LOGIN_RATE_LIMIT = settings.login_rate_limit

limiter = Limiter(key_func=get_remote_address)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after = str(exc.detail)
    logger.warning(
        "Login rate limit hit",
        path=request.url.path,
        ip_address=get_remote_address(request),
        limit=retry_after,
    )
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many login attempts. Try again later.", "retry_after": retry_after},
        headers={"Retry-After": retry_after},
    )
