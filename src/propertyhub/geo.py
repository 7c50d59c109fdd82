"""Geospatial helpers: point conversion, coordinate checks, nearby SQL.

Coordinate order convention
---------------------------
User input arrives as ``{lat, lng}``. Everything stored or sent to PostGIS
uses the GeoJSON order ``[longitude, latitude]``. ``GeoPoint.from_lat_lng``
is the only place that conversion happens; the create, update and search
paths all go through it.
"""

import math
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field, model_validator

# Geography point in WGS 84 built from two positional parameters.
POINT_SQL = "ST_SetSRID(ST_MakePoint({lng}, {lat}), 4326)::geography"

DEFAULT_RADIUS_METERS = 5000.0
DEFAULT_PAGE_SIZE = 50


class InvalidCoordinatesError(ValueError):
    """Raised for missing, non-numeric or out-of-range coordinates."""


def check_latitude(value: float) -> float:
    if not math.isfinite(value) or not -90 <= value <= 90:
        raise InvalidCoordinatesError(f"Latitude must be between -90 and 90, got {value}")
    return value


def check_longitude(value: float) -> float:
    if not math.isfinite(value) or not -180 <= value <= 180:
        raise InvalidCoordinatesError(f"Longitude must be between -180 and 180, got {value}")
    return value


class LatLng(BaseModel):
    """Location as submitted by clients."""

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class GeoPoint(BaseModel):
    """GeoJSON point. ``coordinates`` is ``[longitude, latitude]``."""

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]

    @model_validator(mode="after")
    def _check_range(self) -> "GeoPoint":
        lng, lat = self.coordinates
        check_longitude(lng)
        check_latitude(lat)
        return self

    @classmethod
    def from_lat_lng(cls, lat: float, lng: float) -> "GeoPoint":
        return cls(coordinates=(lng, lat))

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


def to_point(location: LatLng) -> GeoPoint:
    return GeoPoint.from_lat_lng(location.lat, location.lng)


@dataclass(frozen=True)
class NearbyQuery:
    """A validated radius search around a point."""

    lat: float
    lon: float
    radius: float = DEFAULT_RADIUS_METERS
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def parse(
        cls,
        lat: float | None,
        lon: float | None,
        radius: float | None = None,
        default_radius: float = DEFAULT_RADIUS_METERS,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> "NearbyQuery":
        """Validate raw request values.

        Raises:
            InvalidCoordinatesError: if a coordinate is missing or out of
                range, or the radius is negative.
        """
        if lat is None or lon is None:
            raise InvalidCoordinatesError("Latitude & Longitude are required.")
        lat = check_latitude(float(lat))
        lon = check_longitude(float(lon))
        radius = default_radius if radius is None else float(radius)
        if not math.isfinite(radius) or radius < 0:
            raise InvalidCoordinatesError(f"Radius must be a non-negative number of meters, got {radius}")
        return cls(lat=lat, lon=lon, radius=radius, limit=limit)

    @property
    def origin(self) -> GeoPoint:
        return GeoPoint.from_lat_lng(self.lat, self.lon)


def build_nearby_query(
    query: NearbyQuery,
    columns: str,
    table: str = "properties",
) -> tuple[str, list]:
    """Build the radius search SQL and its positional arguments.

    Rows come back nearest first with ``distance`` in meters and
    ``total_count`` holding the number of matches before LIMIT.
    Arguments are ``[longitude, latitude, radius, limit]``.
    """
    origin = query.origin
    sql = f"""
        SELECT {columns},
               ST_Distance(location, origin.geog) AS distance,
               COUNT(*) OVER () AS total_count
        FROM {table},
             (SELECT {POINT_SQL.format(lng="$1", lat="$2")} AS geog) AS origin
        WHERE ST_DWithin(location, origin.geog, $3)
        ORDER BY distance ASC, id
        LIMIT $4
    """
    return sql, [origin.longitude, origin.latitude, query.radius, query.limit]
