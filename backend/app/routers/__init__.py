"""API routers."""

from . import listings, properties, users

__all__ = ["users", "properties", "listings"]
