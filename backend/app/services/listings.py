"""Listing CRUD with look-aside caching of the read paths."""

import logging
from typing import Any

from propertyhub.cache import (
    ALL_LISTINGS,
    CacheClient,
    invalidate_listing_write,
    listing_key,
    read_through,
    seller_listings_key,
)
from propertyhub.config import Settings
from propertyhub.models import Listing, ListingCreate, ListingUpdate

from ..auth import CurrentUser
from ..errors import ForbiddenError, NotFoundError
from .common import parse_id, require_owner, require_seller

logger = logging.getLogger(__name__)


class ListingService:
    """Listings backed by listing and property stores and the response cache.

    Cached reads: ``allListings``, ``sellerListings:<sellerId>`` and
    ``listing:<id>``. Writes drop the first two, and the listing's own key
    on update/delete.
    """

    def __init__(self, store, property_store, cache: CacheClient, settings: Settings):
        self.store = store
        self.property_store = property_store
        self.cache = cache
        self.settings = settings

    @property
    def ttl(self) -> int:
        return self.settings.listing_cache_ttl

    async def create(self, payload: ListingCreate, actor: CurrentUser) -> Listing:
        """List a property owned by the acting seller."""
        require_seller(actor)
        seller_id = payload.seller_id or actor.id
        if seller_id != actor.id:
            raise ForbiddenError("Listings can only be created for your own account")

        prop = await self.property_store.get(payload.property_id)
        if not prop:
            raise NotFoundError("Property not found.")
        require_owner(actor, prop["seller_id"], "property")

        row = await self.store.create(
            property_id=payload.property_id,
            seller_id=seller_id,
            price=payload.price,
            availability=payload.availability.value,
        )
        await invalidate_listing_write(self.cache, seller_id)
        return Listing.from_row(row)

    async def list_all(self) -> list:
        async def compute() -> list[Listing]:
            return [Listing.from_row(row) for row in await self.store.list_all()]

        return await read_through(self.cache, ALL_LISTINGS, self.ttl, compute)

    async def list_by_seller(self, seller_id: Any) -> list:
        sid = parse_id(seller_id, "seller")

        async def compute() -> list[Listing]:
            return [Listing.from_row(row) for row in await self.store.list_by_seller(sid)]

        return await read_through(self.cache, seller_listings_key(sid), self.ttl, compute)

    async def get(self, listing_id: Any) -> dict:
        lid = parse_id(listing_id, "listing")

        async def compute() -> Listing:
            row = await self.store.get(lid)
            if not row:
                raise NotFoundError("Listing not found.")
            return Listing.from_row(row)

        return await read_through(self.cache, listing_key(lid), self.ttl, compute)

    async def update(self, listing_id: Any, changes: ListingUpdate, actor: CurrentUser) -> Listing:
        lid = parse_id(listing_id, "listing")
        existing = await self.store.get(lid)
        if not existing:
            raise NotFoundError("Listing not found.")
        require_owner(actor, existing["seller_id"], "listing")

        fields = changes.model_dump(exclude_unset=True, exclude_none=True)
        if "availability" in fields:
            fields["availability"] = changes.availability.value

        row = await self.store.update(lid, fields)
        if not row:
            raise NotFoundError("Listing not found.")
        await invalidate_listing_write(self.cache, row["seller_id"], lid)
        return Listing.from_row(row)

    async def delete(self, listing_id: Any, actor: CurrentUser) -> None:
        lid = parse_id(listing_id, "listing")
        existing = await self.store.get(lid)
        if not existing:
            raise NotFoundError("Listing not found.")
        require_owner(actor, existing["seller_id"], "listing")

        row = await self.store.delete(lid)
        if not row:
            raise NotFoundError("Listing not found.")
        await invalidate_listing_write(self.cache, row["seller_id"], lid)
        logger.info(f"Listing {lid} deleted by {actor.id}")
