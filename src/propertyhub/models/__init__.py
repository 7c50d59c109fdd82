"""Data models for PropertyHub."""

from propertyhub.models.listing import Availability, Listing, ListingCreate, ListingUpdate
from propertyhub.models.property import (
    ListingType,
    NearbyProperty,
    NearbyResult,
    Property,
    PropertyCreate,
    PropertyUpdate,
)
from propertyhub.models.user import AuthResult, Role, User, UserCreate, UserLogin

__all__ = [
    "Availability",
    "Listing",
    "ListingCreate",
    "ListingUpdate",
    "ListingType",
    "NearbyProperty",
    "NearbyResult",
    "Property",
    "PropertyCreate",
    "PropertyUpdate",
    "AuthResult",
    "Role",
    "User",
    "UserCreate",
    "UserLogin",
]
