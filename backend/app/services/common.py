"""Helpers shared by the domain services."""

import uuid
from typing import Any

from propertyhub.models import Role

from ..auth import CurrentUser
from ..errors import ForbiddenError, NotFoundError


def parse_id(value: Any, label: str) -> uuid.UUID:
    """Parse a path id. Malformed ids are reported as not found."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError(f"Invalid {label} id")


def require_seller(actor: CurrentUser) -> None:
    if actor.role != Role.SELLER:
        raise ForbiddenError("Only sellers can do this")


def require_owner(actor: CurrentUser, owner_id: Any, label: str) -> None:
    if str(owner_id) != str(actor.id):
        raise ForbiddenError(f"You do not own this {label}")
