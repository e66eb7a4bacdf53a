"""
Authentication router.
Handles login, token refresh, logout and the current staff profile.
"""

from fastapi import APIRouter, Cookie, Depends, Request, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from rest_api.routers._common import current_staff
from rest_api.services.domain import IdentityResolver
from rest_api.services.permissions import StaffContext
from shared.config.logging import audit_auth_event
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.security.auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    sign_access_token,
    sign_refresh_token,
    verify_refresh_token,
)
from shared.security.rate_limit import LOGIN_RATE_LIMIT, limiter
from shared.utils.exceptions import UnauthorizedError
from shared.utils.schemas import LoginRequest, LoginResponse, RefreshTokenRequest, StaffInfo


router = APIRouter(prefix="/api/auth", tags=["auth"])


# =============================================================================
# HttpOnly Cookie Helpers
# =============================================================================


def set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """
    Set both tokens as HttpOnly cookies.

    - httponly: Cannot be accessed by JavaScript
    - secure: Only sent over HTTPS (configurable for dev)
    - samesite: CSRF protection (lax allows top-level navigation)
    - the refresh cookie is only sent to /api/auth endpoints
    """
    domain = settings.cookie_domain or None
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        max_age=settings.jwt_access_token_expire_minutes * 60,
        path="/",
        domain=domain,
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        max_age=settings.jwt_refresh_token_expire_days * 24 * 60 * 60,
        path="/api/auth",
        domain=domain,
    )


def clear_auth_cookies(response: Response) -> None:
    domain = settings.cookie_domain or None
    response.delete_cookie(key=ACCESS_COOKIE, path="/", domain=domain)
    response.delete_cookie(key=REFRESH_COOKIE, path="/api/auth", domain=domain)


def staff_info(ctx: StaffContext) -> StaffInfo:
    return StaffInfo(
        staff_id=ctx.staff_id,
        principal_id=ctx.principal_id,
        email=ctx.email,
        first_name=ctx.first_name,
        last_name=ctx.last_name,
        franchise_id=ctx.franchise_id,
        branch_id=ctx.branch_id,
        role_id=ctx.role_id,
        role_name=ctx.role_name,
        is_owner=ctx.is_owner,
        permissions=ctx.capabilities.keys(),
    )


def _issue_tokens(response: Response, ctx: StaffContext) -> LoginResponse:
    access_token = sign_access_token(ctx.principal_id, ctx.franchise_id, ctx.staff_id)
    refresh_token = sign_refresh_token(ctx.principal_id)
    set_auth_cookies(response, access_token, refresh_token)
    return LoginResponse(
        access_token=access_token,
        token_type="Bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        staff=staff_info(ctx),
    )


class LogoutResponse(BaseModel):
    success: bool
    message: str


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_RATE_LIMIT)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate a staff member.

    Sets HttpOnly access and refresh cookies and also returns the access
    token in the body for API clients. Capabilities are recomputed, not
    read from the cache.
    """
    ip_address = request.client.host if request.client else None
    resolver = IdentityResolver(db)
    try:
        principal = resolver.authenticate(body.email, body.password)
        ctx = resolver.resolve(principal.id, refresh=True)
    except UnauthorizedError as e:
        audit_auth_event(
            "LOGIN",
            email=body.email,
            success=False,
            reason=e.detail,
            ip_address=ip_address,
        )
        raise

    audit_auth_event(
        "LOGIN",
        principal_id=ctx.principal_id,
        email=ctx.email,
        ip_address=ip_address,
        staff_id=ctx.staff_id,
        role=ctx.role_name,
    )
    return _issue_tokens(response, ctx)


@router.post("/refresh", response_model=LoginResponse)
@limiter.limit("10/minute")
def refresh(
    request: Request,
    response: Response,
    body: RefreshTokenRequest | None = None,
    refresh_token_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
    db: Session = Depends(get_db),
) -> LoginResponse:
    """
    Exchange a refresh token for new access and refresh tokens.

    Reads the refresh token from the HttpOnly cookie first, then the body.
    The staff record is resolved again, so a deactivated account cannot
    refresh.
    """
    token_value = refresh_token_cookie or (body.refresh_token if body else None)
    if not token_value:
        raise UnauthorizedError("Refresh token not provided")

    payload = verify_refresh_token(token_value)
    try:
        ctx = IdentityResolver(db).resolve(payload["sub"], refresh=True)
    except UnauthorizedError as e:
        audit_auth_event("TOKEN_REFRESH", principal_id=payload["sub"], success=False, reason=e.detail)
        raise

    audit_auth_event("TOKEN_REFRESH", principal_id=ctx.principal_id, staff_id=ctx.staff_id)
    return _issue_tokens(response, ctx)


@router.get("/me", response_model=StaffInfo)
def me(ctx: StaffContext = Depends(current_staff)) -> StaffInfo:
    """Current staff member with role and effective permissions."""
    return staff_info(ctx)


@router.post("/logout", response_model=LogoutResponse)
def logout(response: Response, ctx: StaffContext = Depends(current_staff)) -> LogoutResponse:
    """Clear the auth cookies. Tokens expire on their own."""
    clear_auth_cookies(response)
    audit_auth_event("LOGOUT", principal_id=ctx.principal_id, email=ctx.email, staff_id=ctx.staff_id)
    return LogoutResponse(success=True, message="Logged out successfully.")
