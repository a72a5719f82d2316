"""Tests for bearer JWT authentication (HS256 access tokens)."""

from __future__ import annotations

import time

import jwt
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

import travelmate.api.deps as deps
from travelmate.api.auth import verify_token
from travelmate.api.deps import get_lifecycle
from travelmate.api.factory import create_app
from travelmate.infra.config import Settings

SECRET = "test-jwt-secret-with-enough-length-1234"


def _create_token(
    sub: str | None = "user-123",
    aud: str = "authenticated",
    exp: int | None = None,
    secret: str = SECRET,
    email: str | None = "user@example.com",
) -> str:
    """Create signed JWT for testing."""
    now = int(time.time())
    payload = {
        "aud": aud,
        "exp": exp if exp is not None else now + 3600,
        "iat": now,
        "role": "authenticated",
    }
    if sub is not None:
        payload["sub"] = sub
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def jwt_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", SECRET)
    monkeypatch.delenv("SUPABASE_JWT_AUDIENCE", raising=False)


@pytest.fixture
def auth_client(lifecycle):
    """App with real auth and a fake-backed lifecycle."""
    app = create_app()
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    return TestClient(app)


def _get(client, token: str | None = None, header: str | None = None):
    headers = {}
    if header is not None:
        headers["Authorization"] = header
    elif token is not None:
        headers["Authorization"] = f"Bearer {token}"
    return client.get("/reservations", headers=headers)


class TestVerifyToken:
    def test_valid_token(self, jwt_env):
        claims = verify_token(_create_token())
        assert claims["sub"] == "user-123"

    def test_not_configured(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
        with pytest.raises(HTTPException) as exc_info:
            verify_token(_create_token())
        assert exc_info.value.detail == "Auth not configured"

    def test_expired(self, jwt_env):
        with pytest.raises(HTTPException) as exc_info:
            verify_token(_create_token(exp=int(time.time()) - 60))
        assert exc_info.value.detail == "Token expired"

    def test_wrong_secret(self, jwt_env):
        with pytest.raises(HTTPException) as exc_info:
            verify_token(_create_token(secret="another-secret-of-sufficient-length"))
        assert exc_info.value.status_code == 401

    def test_wrong_audience(self, jwt_env):
        with pytest.raises(HTTPException):
            verify_token(_create_token(aud="anon"))

    def test_missing_sub(self, jwt_env):
        with pytest.raises(HTTPException):
            verify_token(_create_token(sub=None))

    def test_secret_read_from_settings(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
        monkeypatch.setattr(deps, "_settings", Settings(supabase_jwt_secret=SECRET))

        assert verify_token(_create_token())["sub"] == "user-123"

    def test_custom_audience(self, jwt_env, monkeypatch):
        monkeypatch.setenv("SUPABASE_JWT_AUDIENCE", "travelmate")
        assert verify_token(_create_token(aud="travelmate"))["sub"] == "user-123"


class TestAuthDependency:
    def test_missing_auth_header(self, jwt_env, auth_client):
        response = _get(auth_client)
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization header"

    def test_invalid_bearer_format(self, jwt_env, auth_client):
        response = _get(auth_client, header="Token abc")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid authorization header"

    def test_malformed_token(self, jwt_env, auth_client):
        response = _get(auth_client, token="not-a-jwt")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"

    def test_valid_token_scopes_to_user(self, jwt_env, auth_client, lifecycle):
        from datetime import date

        lifecycle.create(
            user_id="user-123",
            destination_id="dest-x",
            start_date=date(2024, 6, 1),
            end_date=date(2024, 6, 5),
            number_of_people=2,
            total_price="400",
        )
        lifecycle.create(
            user_id="someone-else",
            destination_id="dest-y",
            start_date=date(2024, 6, 1),
            end_date=date(2024, 6, 5),
            number_of_people=2,
            total_price="400",
        )

        response = _get(auth_client, token=_create_token())

        assert response.status_code == 200
        assert [r["user_id"] for r in response.json()] == ["user-123"]
