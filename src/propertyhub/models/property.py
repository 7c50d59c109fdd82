"""Property data models."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import BeforeValidator, Field, StringConstraints

from ..geo import GeoPoint, LatLng
from .base import CamelModel

PINCODE_PATTERN = r"^\d{6}$"


class ListingType(str, Enum):
    """Whether a property is offered for rent or for sale."""

    RENT = "rent"
    SALE = "sale"


def _pincode_text(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Pincode = Annotated[
    str,
    BeforeValidator(_pincode_text),
    StringConstraints(pattern=PINCODE_PATTERN),
]


class PropertyCreate(CamelModel):
    """Payload for a new property. ``location`` is given as ``{lat, lng}``."""

    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    pincode: Pincode = Field(..., description="6-digit postal code")
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    location: LatLng
    listing_type: ListingType
    price: float = Field(..., gt=0, strict=True, description="Asking price")


class PropertyUpdate(CamelModel):
    """Partial update; omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[str] = Field(default=None, min_length=1)
    pincode: Optional[Pincode] = None
    city: Optional[str] = Field(default=None, min_length=1)
    state: Optional[str] = Field(default=None, min_length=1)
    location: Optional[LatLng] = None
    listing_type: Optional[ListingType] = None
    price: Optional[float] = Field(default=None, gt=0, strict=True)


class Property(CamelModel):
    """Stored property as returned by the API."""

    id: UUID
    name: str
    address: str
    pincode: str
    city: str
    state: str
    location: GeoPoint
    listing_type: ListingType
    price: float
    seller_id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "Property":
        return cls(
            id=row["id"],
            name=row["name"],
            address=row["address"],
            pincode=row["pincode"],
            city=row["city"],
            state=row["state"],
            location=GeoPoint.model_validate(row["location"]),
            listing_type=ListingType(row["listing_type"]),
            price=row["price"],
            seller_id=row["seller_id"],
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class NearbyProperty(Property):
    distance: float = Field(..., ge=0, description="Meters from the search origin")

    @classmethod
    def from_row(cls, row: dict) -> "NearbyProperty":
        base = Property.from_row(row)
        return cls(**base.model_dump(), distance=row["distance"])


class NearbyResult(CamelModel):
    """Nearest-first search page."""

    results: list[NearbyProperty]
    total_count: int = Field(..., ge=0, description="Matches before the page cap")
