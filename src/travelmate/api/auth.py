"""Bearer JWT authentication for backend-as-a-service access tokens.

The hosted auth service signs user access tokens with HS256 and a shared
project secret. We only verify them; sessions live with the auth service.

Provides:
- verify_token(): Validates JWT and returns its claims
- get_current_user(): FastAPI dependency for the explicit user context
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request

from travelmate.api.deps import get_settings


@dataclass
class CurrentUser:
    """Authenticated user context."""

    id: str
    email: str | None
    role: str | None


def _get_settings() -> dict[str, str | None]:
    """JWT settings from the service configuration."""
    settings = get_settings()
    return {
        "secret": settings.supabase_jwt_secret,
        "audience": settings.supabase_jwt_audience,
    }


def verify_token(token: str) -> dict[str, Any]:
    """Verify JWT and return its claims.

    Args:
        token: JWT token string.

    Returns:
        Decoded claims (sub guaranteed present).

    Raises:
        HTTPException: 401 if token is invalid or auth is not configured.
    """
    settings = _get_settings()
    secret = settings.get("secret")
    if not secret:
        raise HTTPException(status_code=401, detail="Auth not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=settings.get("audience"),
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")

    return payload


def _extract_bearer_token(request: Request) -> str:
    """Extract Bearer token from Authorization header.

    Raises:
        HTTPException: 401 if header missing or malformed.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    return parts[1]


def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: get authenticated user.

    Raises:
        HTTPException: 401 if token invalid/missing.
    """
    token = _extract_bearer_token(request)
    claims = verify_token(token)
    return CurrentUser(
        id=str(claims["sub"]),
        email=claims.get("email"),
        role=claims.get("role"),
    )


# Dependency alias for cleaner imports
CurrentUserDep = Depends(get_current_user)
