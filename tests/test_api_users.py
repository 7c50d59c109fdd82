"""Tests for the user endpoints and the auth gate."""

import json
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from conftest import PASSWORD, user_payload

BASE = "/api/v1/user"


class TestRegister:
    """Test account registration."""

    def test_register_returns_public_fields(self, client):
        resp = client.post(f"{BASE}/register", json=user_payload("Asha@Example.com"))

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        user = body["data"]
        assert user["email"] == "asha@example.com"
        assert user["role"] == "seller"
        assert "password" not in user
        assert "passwordHash" not in user
        assert "refreshTokenHash" not in user

    def test_numeric_phone_accepted(self, client):
        resp = client.post(f"{BASE}/register", json=user_payload("num@example.com", phone=9876543210))

        assert resp.status_code == 201
        assert resp.json()["data"]["phone"] == "9876543210"

    def test_duplicate_email_conflict(self, client, user_store):
        client.post(f"{BASE}/register", json=user_payload("dup@example.com"))
        writes = user_store.writes

        resp = client.post(f"{BASE}/register", json=user_payload("dup@example.com", name="Other"))

        assert resp.status_code == 409
        assert resp.json()["success"] is False
        assert user_store.writes == writes
        assert len(user_store.rows) == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "not-an-email"},
            {"phone": "12345"},
            {"phone": "98765432ab"},
            {"password": "short"},
            {"role": "admin"},
            {"name": ""},
        ],
    )
    def test_invalid_payload(self, client, user_store, overrides):
        payload = {**user_payload("bad@example.com"), **overrides}

        resp = client.post(f"{BASE}/register", json=payload)

        assert resp.status_code == 400
        assert resp.json()["errors"]
        assert user_store.rows == {}


class TestLogin:
    """Test login and the token cookies."""

    def test_login_sets_cookies(self, client):
        client.post(f"{BASE}/register", json=user_payload("seller@example.com"))

        resp = client.post(f"{BASE}/login", json={"email": "seller@example.com", "password": PASSWORD})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["user"]["email"] == "seller@example.com"
        assert resp.cookies.get("accessToken") == data["accessToken"]
        assert resp.cookies.get("refreshToken") == data["refreshToken"]
        set_cookie = ",".join(resp.headers.get_list("set-cookie")).lower()
        assert "httponly" in set_cookie

    def test_wrong_password(self, client):
        client.post(f"{BASE}/register", json=user_payload("seller@example.com"))

        resp = client.post(f"{BASE}/login", json={"email": "seller@example.com", "password": "wrong-pass"})

        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email or password"

    def test_unknown_email(self, client):
        resp = client.post(f"{BASE}/login", json={"email": "ghost@example.com", "password": PASSWORD})

        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email or password"


class TestAuthGate:
    """Test how protected routes resolve the acting user."""

    def test_me_with_bearer(self, client, seller):
        resp = client.get(f"{BASE}/me", headers=seller["headers"])

        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == seller["id"]

    def test_me_with_cookie(self, client):
        client.post(f"{BASE}/register", json=user_payload("cookie@example.com"))
        client.post(f"{BASE}/login", json={"email": "cookie@example.com", "password": PASSWORD})

        resp = client.get(f"{BASE}/me")

        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "cookie@example.com"

    def test_missing_token(self, client):
        resp = client.get(f"{BASE}/me")

        assert resp.status_code == 401
        assert resp.json()["message"] == "Unauthorized request"

    def test_tampered_token(self, client, seller):
        token = seller["headers"]["Authorization"].split()[1]
        resp = client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {token[:-2]}xx"})

        assert resp.status_code == 401

    def test_expired_token(self, client, seller, settings):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": seller["id"], "type": "access", "iat": past, "exp": past + timedelta(minutes=1)},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

        resp = client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 401
        assert resp.json()["message"] == "Token expired"

    def test_wrong_secret(self, client, seller, settings):
        token = jwt.encode({"sub": seller["id"], "type": "access"}, "other-secret", algorithm="HS256")

        resp = client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 401


class TestLogoutAndRefresh:
    """Test logout and refresh-token rotation."""

    def test_logout_clears_cookies_and_refresh(self, client, seller, user_store):
        resp = client.post(f"{BASE}/logout", headers=seller["headers"])

        assert resp.status_code == 200
        assert resp.json()["data"] == {}
        set_cookie = ",".join(resp.headers.get_list("set-cookie"))
        assert "accessToken=" in set_cookie
        assert "refreshToken=" in set_cookie

        refreshed = client.post(f"{BASE}/refresh-token", json={"refreshToken": seller["refresh_token"]})
        assert refreshed.status_code == 401

    def test_logout_requires_auth(self, client):
        assert client.post(f"{BASE}/logout").status_code == 401

    def test_refresh_rotates_token(self, client, seller):
        resp = client.post(f"{BASE}/refresh-token", json={"refreshToken": seller["refresh_token"]})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["refreshToken"] != seller["refresh_token"]
        client.cookies.clear()

        reused = client.post(f"{BASE}/refresh-token", json={"refreshToken": seller["refresh_token"]})
        assert reused.status_code == 401

        me = client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {data['accessToken']}"})
        assert me.status_code == 200

    def test_refresh_from_cookie(self, client):
        client.post(f"{BASE}/register", json=user_payload("cookie@example.com"))
        client.post(f"{BASE}/login", json={"email": "cookie@example.com", "password": PASSWORD})

        resp = client.post(f"{BASE}/refresh-token")

        assert resp.status_code == 200

    def test_refresh_missing_token(self, client):
        resp = client.post(f"{BASE}/refresh-token")

        assert resp.status_code == 401


class TestEnvelope:
    """Test app-wide response behaviour."""

    def test_unknown_route(self, client):
        resp = client.get("/api/v1/nothing-here")

        assert resp.status_code == 404
        assert resp.json()["success"] is False
        assert resp.json()["statusCode"] == 404

    def test_body_too_large(self, client, settings):
        payload = user_payload("big@example.com", name="x" * (settings.max_body_bytes + 1))

        resp = client.post(f"{BASE}/register", json=payload)

        assert resp.status_code == 413
        assert resp.json()["success"] is False

    def test_body_too_large_has_cors_headers(self, client, settings):
        payload = user_payload("big@example.com", name="x" * (settings.max_body_bytes + 1))

        resp = client.post(
            f"{BASE}/register", json=payload, headers={"Origin": "http://localhost:3000"}
        )

        assert resp.status_code == 413
        assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_streamed_body_too_large(self, client, settings, user_store):
        def chunks():
            yield b'{"name": "'
            yield b"x" * (settings.max_body_bytes + 1)
            yield b'"}'

        resp = client.post(
            f"{BASE}/register", content=chunks(), headers={"Content-Type": "application/json"}
        )

        assert resp.status_code == 413
        assert user_store.rows == {}

    def test_streamed_body_within_limit(self, client):
        body = json.dumps(user_payload("chunked@example.com")).encode()

        def chunks():
            yield body[:20]
            yield body[20:]

        resp = client.post(
            f"{BASE}/register", content=chunks(), headers={"Content-Type": "application/json"}
        )

        assert resp.status_code == 201
        assert resp.json()["data"]["email"] == "chunked@example.com"

    def test_health(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json()["cache"] == "memory"

    def test_second_login_is_a_different_user(self, client, seller, buyer):
        assert seller["id"] != buyer["id"]
        me = client.get(f"{BASE}/me", headers=buyer["headers"]).json()["data"]
        assert me["role"] == "buyer"
