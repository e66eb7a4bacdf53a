"""
Tests for authentication: password hashing, JWT handling and the auth endpoints.
"""

import time

import jwt
import pytest

from conftest import login
from shared.config.settings import settings
from shared.security.auth import (
    get_token,
    sign_access_token,
    sign_jwt,
    sign_refresh_token,
    verify_jwt,
    verify_refresh_token,
)
from shared.security.password import hash_password, verify_password
from shared.utils.exceptions import UnauthorizedError


class TestPasswordHashing:
    """Test password hashing utilities."""

    def test_hash_password_returns_bcrypt_hash(self):
        hashed = hash_password("mypassword")
        assert hashed.startswith("$2b$")

    def test_verify_password_correct(self):
        hashed = hash_password("mypassword")
        assert verify_password("mypassword", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("mypassword")
        assert verify_password("wrongpassword", hashed) is False

    def test_plain_text_hash_is_rejected(self):
        """Stored values that are not bcrypt hashes never verify."""
        assert verify_password("plaintext", "plaintext") is False


class TestTokens:
    """Test JWT signing and verification."""

    def test_access_token_round_trip(self):
        token = sign_access_token("principal-1", "franchise-1", "staff-1")
        claims = verify_jwt(token)
        assert claims["sub"] == "principal-1"
        assert claims["franchise_id"] == "franchise-1"
        assert claims["staff_id"] == "staff-1"
        assert claims["type"] == "access"

    def test_refresh_token_is_not_an_access_token(self):
        token = sign_refresh_token("principal-1")
        with pytest.raises(UnauthorizedError):
            verify_jwt(token)
        assert verify_refresh_token(token)["sub"] == "principal-1"

    def test_expired_token_rejected(self):
        token = sign_jwt({"sub": "principal-1"}, ttl_seconds=-10)
        with pytest.raises(UnauthorizedError) as exc_info:
            verify_jwt(token)
        assert exc_info.value.detail == "Token has expired"

    def test_token_signed_with_other_secret_rejected(self):
        now = int(time.time())
        forged = jwt.encode(
            {
                "sub": "principal-1",
                "type": "access",
                "iss": settings.jwt_issuer,
                "aud": settings.jwt_audience,
                "iat": now,
                "exp": now + 60,
            },
            "another-secret-that-is-long-enough-123",
            algorithm="HS256",
        )
        with pytest.raises(UnauthorizedError) as exc_info:
            verify_jwt(forged)
        assert exc_info.value.detail == "Invalid token"

    def test_header_takes_precedence_over_cookie(self):
        assert get_token("Bearer header-token", "cookie-token") == "header-token"
        assert get_token(None, "cookie-token") == "cookie-token"

    def test_malformed_header_rejected(self):
        with pytest.raises(UnauthorizedError):
            get_token("Token abc", None)

    def test_missing_token_rejected(self):
        with pytest.raises(UnauthorizedError):
            get_token(None, None)


class TestAuthEndpoints:
    """Test authentication API endpoints."""

    def test_login_success(self, client, seeded):
        response = client.post(
            "/api/auth/login",
            json={"email": "manager@demo.com", "password": "manager123"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "Bearer"
        assert data["access_token"]
        assert data["staff"]["email"] == "manager@demo.com"
        assert data["staff"]["role_name"] == "Manager"
        assert data["staff"]["is_owner"] is False
        assert "staff_create" in data["staff"]["permissions"]
        assert "franchise_edit" not in data["staff"]["permissions"]

    def test_login_sets_httponly_cookies(self, client, seeded):
        response = client.post(
            "/api/auth/login",
            json={"email": "waiter@demo.com", "password": "waiter123"},
        )
        assert response.status_code == 200
        set_cookie = " ".join(response.headers.get_list("set-cookie"))
        assert "access_token=" in set_cookie
        assert "refresh_token=" in set_cookie
        assert "HttpOnly" in set_cookie
        assert "Path=/api/auth" in set_cookie

    def test_login_email_is_case_insensitive(self, client, seeded):
        response = client.post(
            "/api/auth/login",
            json={"email": "Owner@Demo.com", "password": "owner123"},
        )
        assert response.status_code == 200
        assert response.json()["staff"]["is_owner"] is True

    def test_login_invalid_password(self, client, seeded):
        response = client.post(
            "/api/auth/login",
            json={"email": "owner@demo.com", "password": "wrongpassword"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_login_unknown_email(self, client, seeded):
        response = client.post(
            "/api/auth/login",
            json={"email": "nobody@demo.com", "password": "owner123"},
        )
        assert response.status_code == 401

    def test_login_rate_limited(self, client, seeded):
        """Sixth attempt within a minute from the same address is refused."""
        for _ in range(5):
            client.post("/api/auth/login", json={"email": "owner@demo.com", "password": "bad"})
        response = client.post(
            "/api/auth/login",
            json={"email": "owner@demo.com", "password": "owner123"},
        )
        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_me_with_bearer_token(self, client, owner_headers):
        client.cookies.clear()
        response = client.get("/api/auth/me", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "owner@demo.com"
        assert data["is_owner"] is True
        assert "franchise_edit" in data["permissions"]

    def test_me_with_cookie_only(self, client, seeded):
        login(client, "kitchen@demo.com", "kitchen123")
        response = client.get("/api/auth/me")
        assert response.status_code == 200
        assert response.json()["role_name"] == "Kitchen"

    def test_me_unauthenticated(self, client, seeded):
        client.cookies.clear()
        response = client.get("/api/auth/me")
        assert response.status_code == 401

    def test_refresh_with_cookie(self, client, seeded):
        login(client, "waiter@demo.com", "waiter123")
        response = client.post("/api/auth/refresh")
        assert response.status_code == 200
        assert response.json()["staff"]["email"] == "waiter@demo.com"

    def test_refresh_with_body(self, client, seeded):
        login(client, "waiter@demo.com", "waiter123")
        refresh_token = client.cookies.get("refresh_token")
        client.cookies.clear()

        response = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 200

    def test_refresh_rejects_access_token(self, client, owner_headers):
        access_token = owner_headers["Authorization"].split(" ", 1)[1]
        client.cookies.clear()
        response = client.post("/api/auth/refresh", json={"refresh_token": access_token})
        assert response.status_code == 401

    def test_refresh_without_token(self, client, seeded):
        client.cookies.clear()
        response = client.post("/api/auth/refresh")
        assert response.status_code == 401

    def test_logout_clears_cookies(self, client, owner_headers):
        response = client.post("/api/auth/logout", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.cookies.get("access_token") is None


class TestDeactivatedStaff:
    """A deactivated staff member is logged out on their next request."""

    def test_deactivated_staff_gets_401(self, client, seeded, db_session):
        waiter_headers = login(client, "waiter@demo.com", "waiter123")
        owner_headers = login(client, "owner@demo.com", "owner123")
        client.cookies.clear()

        waiter_id = seeded["staff"]["waiter@demo.com"]
        response = client.delete(f"/api/admin/staff/{waiter_id}", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "INACTIVE"

        response = client.get("/api/auth/me", headers=waiter_headers)
        assert response.status_code == 401

    def test_deactivated_staff_cannot_log_in(self, client, seeded):
        owner_headers = login(client, "owner@demo.com", "owner123")
        client.cookies.clear()
        waiter_id = seeded["staff"]["waiter@demo.com"]
        client.delete(f"/api/admin/staff/{waiter_id}", headers=owner_headers)

        response = client.post(
            "/api/auth/login",
            json={"email": "waiter@demo.com", "password": "waiter123"},
        )
        assert response.status_code == 401
