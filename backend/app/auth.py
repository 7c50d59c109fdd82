"""Authentication utilities: password hashing, JWT access tokens, refresh tokens, cookies."""

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Response
from passlib.context import CryptContext
from pydantic import BaseModel

from propertyhub.config import Settings
from propertyhub.models import Role

from .errors import AuthError, InternalError

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


class CurrentUser(BaseModel):
    """Verified identity attached to a request by the auth gate."""

    id: uuid.UUID
    email: str
    role: Role


# --- Password Helpers ---


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# --- JWT Helpers ---


def create_access_token(user_id: str, email: str, role: str, settings: Settings) -> str:
    """Sign an access JWT. Raises InternalError if signing fails."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    try:
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
        logger.error(f"Access token generation failed: {e}")
        raise InternalError("Something went wrong while generating access and refresh tokens")


def create_refresh_token_value() -> str:
    """Generate a random opaque refresh token string."""
    return uuid.uuid4().hex + uuid.uuid4().hex


def hash_token(token: str) -> str:
    """SHA-256 hash for storing refresh tokens."""
    return hashlib.sha256(token.encode()).hexdigest()


def decode_access_token(token: str, settings: Settings) -> dict:
    """Decode and verify an access JWT. Raises AuthError on invalid/expired."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid access token")
    if payload.get("type") != "access" or "sub" not in payload:
        raise AuthError("Invalid token type")
    return payload


# --- Cookies ---


def set_auth_cookies(response: Response, access_token: str, refresh_token: str, settings: Settings) -> None:
    options = {"httponly": True, "secure": settings.is_production, "samesite": "lax"}
    response.set_cookie(
        ACCESS_COOKIE, access_token,
        max_age=settings.access_token_expire_minutes * 60, **options,
    )
    response.set_cookie(
        REFRESH_COOKIE, refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 3600, **options,
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    options = {"httponly": True, "secure": settings.is_production, "samesite": "lax"}
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
