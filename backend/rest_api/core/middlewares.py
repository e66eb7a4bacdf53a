"""
HTTP middleware stack.

Order of execution for a request (outermost first):
CORS -> correlation id -> JSON body check -> security headers -> route.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config.settings import settings
from shared.infrastructure.correlation import REQUEST_ID_HEADER, CorrelationIdMiddleware

# POS terminals and the back-office run on these during development
DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

_DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Hardening headers. The API only ever returns JSON."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "no-referrer"
        if not request.url.path.startswith(_DOCS_PATHS):
            headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        if settings.environment == "production":
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class JsonBodyMiddleware(BaseHTTPMiddleware):
    """Reject non-JSON bodies with 415. Bodiless POSTs (transitions, payment) pass."""

    async def dispatch(self, request: Request, call_next):
        if request.method in ("POST", "PUT", "PATCH"):
            content_type = request.headers.get("content-type")
            if content_type and not content_type.startswith("application/json"):
                return JSONResponse(
                    status_code=415,
                    content={"detail": "Request body must be application/json"},
                )
        return await call_next(request)


def cors_origins() -> list[str]:
    """ALLOWED_ORIGINS (comma-separated) when set, the dev origins otherwise."""
    configured = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    return configured or DEV_ORIGINS


def register_middlewares(app: FastAPI) -> None:
    # Starlette runs the last-added middleware first
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(JsonBodyMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        # Sessions ride in HttpOnly cookies
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=0 if settings.environment == "development" else 600,
    )
