"""User account models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from .base import CamelModel


class Role(str, Enum):
    """Account role."""

    BUYER = "buyer"
    SELLER = "seller"


def _digits_as_text(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class UserCreate(CamelModel):
    """Registration payload."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., pattern=r"^\d{10}$", description="10-digit phone number")
    password: str = Field(..., min_length=8, max_length=72)
    role: Role

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="after")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone", mode="before")
    @classmethod
    def _phone_text(cls, value: Any) -> Any:
        return _digits_as_text(value)


class UserLogin(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="after")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class User(CamelModel):
    """Public view of an account; never carries the password or tokens."""

    id: UUID
    name: str
    email: str
    phone: str
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "User":
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            role=Role(row["role"]),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class AuthResult(CamelModel):
    """Login/refresh response body."""

    user: User
    access_token: str
    refresh_token: str
