"""Listing data models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import Field

from .base import CamelModel
from .property import Property


class Availability(str, Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    SOLD = "sold"


class ListingCreate(CamelModel):
    """Payload for a new listing.

    ``seller_id`` defaults to the authenticated seller when omitted.
    """

    property_id: UUID
    seller_id: Optional[UUID] = None
    price: float = Field(..., gt=0, strict=True, description="Listing asking price")
    availability: Availability = Availability.AVAILABLE


class ListingUpdate(CamelModel):
    """Partial update; omitted fields are left unchanged."""

    price: Optional[float] = Field(default=None, gt=0, strict=True)
    availability: Optional[Availability] = None


class Listing(CamelModel):
    """Stored listing, optionally with its property embedded."""

    id: UUID
    property_id: UUID
    seller_id: UUID
    price: float
    availability: Availability
    created_at: Optional[datetime] = None
    property: Optional[Property] = None

    @classmethod
    def from_row(cls, row: dict) -> "Listing":
        prop = row.get("property")
        return cls(
            id=row["id"],
            property_id=row["property_id"],
            seller_id=row["seller_id"],
            price=row["price"],
            availability=Availability(row["availability"]),
            created_at=row.get("created_at"),
            property=Property.from_row(prop) if prop else None,
        )
