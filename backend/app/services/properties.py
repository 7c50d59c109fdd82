"""Property CRUD, nearby search and the matching cache policy."""

import logging
from typing import Any, Optional

from propertyhub.cache import (
    CacheClient,
    invalidate_property_write,
    nearby_key,
    property_key,
    read_through,
)
from propertyhub.config import Settings
from propertyhub.geo import InvalidCoordinatesError, NearbyQuery, to_point
from propertyhub.models import NearbyProperty, NearbyResult, Property, PropertyCreate, PropertyUpdate

from ..auth import CurrentUser
from ..errors import NotFoundError, ValidationError
from .common import parse_id, require_owner, require_seller

logger = logging.getLogger(__name__)


class PropertyService:
    """Properties backed by a property store and the response cache.

    Reads go through the cache (``property:<id>``, ``nearby:...``); every
    write drops ``property:<id>`` and flushes the cache namespace.
    """

    def __init__(self, store, cache: CacheClient, settings: Settings):
        self.store = store
        self.cache = cache
        self.settings = settings

    async def create(self, payloads: list[PropertyCreate], actor: CurrentUser) -> list[Property]:
        """Insert one or more properties owned by the acting seller."""
        require_seller(actor)
        if not payloads:
            raise ValidationError("At least one property is required.")

        records = []
        for payload in payloads:
            record = payload.model_dump(exclude={"location"})
            record["listing_type"] = payload.listing_type.value
            record["location"] = to_point(payload.location)
            records.append(record)

        rows = await self.store.create_many(actor.id, records)
        created = [Property.from_row(row) for row in rows]
        await invalidate_property_write(self.cache, [p.id for p in created])
        logger.info(f"Seller {actor.id} created {len(created)} properties")
        return created

    async def get(self, property_id: Any) -> dict:
        pid = parse_id(property_id, "property")

        async def compute() -> Property:
            row = await self.store.get(pid)
            if not row:
                raise NotFoundError("Property not found.")
            return Property.from_row(row)

        return await read_through(
            self.cache, property_key(pid), self.settings.property_cache_ttl, compute
        )

    async def nearby(
        self,
        lat: Optional[float],
        lon: Optional[float],
        radius: Optional[float] = None,
    ) -> dict:
        """Properties within ``radius`` meters of (lat, lon), nearest first."""
        try:
            query = NearbyQuery.parse(
                lat, lon, radius,
                default_radius=self.settings.nearby_default_radius,
                limit=self.settings.nearby_page_size,
            )
        except InvalidCoordinatesError as e:
            raise ValidationError(str(e))

        async def compute() -> NearbyResult:
            rows, total = await self.store.nearby(query)
            return NearbyResult(
                results=[NearbyProperty.from_row(row) for row in rows],
                total_count=total,
            )

        key = nearby_key(query.lat, query.lon, query.radius)
        return await read_through(self.cache, key, self.settings.nearby_cache_ttl, compute)

    async def update(self, property_id: Any, changes: PropertyUpdate, actor: CurrentUser) -> Property:
        pid = parse_id(property_id, "property")
        existing = await self.store.get(pid)
        if not existing:
            raise NotFoundError("Property not found.")
        require_owner(actor, existing["seller_id"], "property")

        fields = changes.model_dump(exclude_unset=True, exclude_none=True)
        if "listing_type" in fields:
            fields["listing_type"] = changes.listing_type.value
        if changes.location is not None:
            fields["location"] = to_point(changes.location)

        row = await self.store.update(pid, fields)
        if not row:
            raise NotFoundError("Property not found.")
        await invalidate_property_write(self.cache, [pid])
        return Property.from_row(row)

    async def delete(self, property_id: Any, actor: CurrentUser) -> None:
        pid = parse_id(property_id, "property")
        existing = await self.store.get(pid)
        if not existing:
            raise NotFoundError("Property not found.")
        require_owner(actor, existing["seller_id"], "property")

        if not await self.store.delete(pid):
            raise NotFoundError("Property not found.")
        await invalidate_property_write(self.cache, [pid])
        logger.info(f"Property {pid} deleted by {actor.id}")
