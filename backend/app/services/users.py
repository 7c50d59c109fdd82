"""Account registration, login, logout and token refresh."""

import logging
import uuid
from typing import Optional

from propertyhub.config import Settings
from propertyhub.models import AuthResult, User, UserCreate, UserLogin

from ..auth import (
    CurrentUser,
    create_access_token,
    create_refresh_token_value,
    decode_access_token,
    hash_password,
    hash_token,
    verify_password,
)
from ..errors import AuthError, ConflictError

logger = logging.getLogger(__name__)


class UserService:
    """User accounts backed by a user store.

    The store provides ``get_by_email``, ``get_by_id``,
    ``get_by_refresh_token``, ``create`` and ``set_refresh_token``.
    """

    def __init__(self, store, settings: Settings):
        self.store = store
        self.settings = settings

    async def register(self, payload: UserCreate) -> User:
        """Create an account. Raises ConflictError for a taken email."""
        if await self.store.get_by_email(payload.email):
            raise ConflictError("User with this email already exists")

        row = await self.store.create(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            password_hash=hash_password(payload.password),
            role=payload.role.value,
        )
        logger.info(f"Registered {payload.role.value} {row['id']}")
        return User.from_row(row)

    async def login(self, payload: UserLogin) -> AuthResult:
        user = await self.store.get_by_email(payload.email)
        if not user or not verify_password(payload.password, user["password_hash"]):
            raise AuthError("Invalid email or password")
        return await self._issue_tokens(user)

    async def logout(self, user_id: uuid.UUID) -> None:
        await self.store.set_refresh_token(user_id, None)

    async def refresh(self, refresh_token: Optional[str]) -> AuthResult:
        """Rotate a refresh token. The presented token stops working."""
        if not refresh_token:
            raise AuthError("Refresh token is required")
        user = await self.store.get_by_refresh_token(hash_token(refresh_token))
        if not user:
            raise AuthError("Invalid or expired refresh token")
        return await self._issue_tokens(user)

    async def get(self, user_id: uuid.UUID) -> User:
        row = await self.store.get_by_id(user_id)
        if not row:
            raise AuthError("User not found")
        return User.from_row(row)

    async def authenticate(self, token: Optional[str]) -> CurrentUser:
        """Resolve an access token to the acting user. Raises AuthError."""
        if not token:
            raise AuthError("Unauthorized request")
        payload = decode_access_token(token, self.settings)
        try:
            user_id = uuid.UUID(payload["sub"])
        except ValueError:
            raise AuthError("Invalid access token")
        row = await self.store.get_by_id(user_id)
        if not row:
            raise AuthError("Invalid access token")
        return CurrentUser(id=row["id"], email=row["email"], role=row["role"])

    async def _issue_tokens(self, user: dict) -> AuthResult:
        access_token = create_access_token(
            str(user["id"]), user["email"], user["role"], self.settings
        )
        refresh_token = create_refresh_token_value()
        await self.store.set_refresh_token(user["id"], hash_token(refresh_token))
        return AuthResult(
            user=User.from_row(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )
