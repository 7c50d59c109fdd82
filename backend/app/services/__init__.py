"""Domain services and their wiring."""

from dataclasses import dataclass

from propertyhub.cache import CacheClient
from propertyhub.config import Settings

from .listings import ListingService
from .properties import PropertyService
from .users import UserService


@dataclass
class Services:
    """Services shared by every request of one app instance."""

    users: UserService
    properties: PropertyService
    listings: ListingService


def build_services(users, properties, listings, cache: CacheClient, settings: Settings) -> Services:
    """Wire services around the given user, property and listing stores."""
    return Services(
        users=UserService(users, settings),
        properties=PropertyService(properties, cache, settings),
        listings=ListingService(listings, properties, cache, settings),
    )


__all__ = ["ListingService", "PropertyService", "Services", "UserService", "build_services"]
