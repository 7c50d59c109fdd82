"""Cache key derivation.

A key is ``kind`` followed by its qualifiers, joined with ``:``, e.g.
``listing:<id>``, ``sellerListings:<sellerId>``,
``nearby:<lat>:<lon>:<radius>`` or the bare ``allListings``.

Numeric qualifiers are rounded to ``NUMBER_PRECISION`` decimal places and
written without trailing zeros, so ``5000``, ``5000.0`` and ``"5000.0"``
parsed upstream all produce the same key. Negative zero renders as ``0``.

Six decimal places of a degree is about 0.1 m. Nearby searches whose
origins differ by less than that share one entry, and the later one is
served the results computed for the first origin. Radii are rounded the
same way, to a micrometer.
"""

from decimal import Decimal
from typing import Any

NUMBER_PRECISION = 6
SEPARATOR = ":"

ALL_LISTINGS = "allListings"
LISTING = "listing"
SELLER_LISTINGS = "sellerListings"
PROPERTY = "property"
NEARBY = "nearby"


def format_number(value: float | int | Decimal, precision: int = NUMBER_PRECISION) -> str:
    """Render a number in its canonical key form."""
    rounded = round(float(value), precision) + 0.0  # folds -0.0 into 0.0
    text = f"{rounded:.{precision}f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_qualifier(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return format_number(value)
    return str(value)


def cache_key(kind: str, *qualifiers: Any) -> str:
    """Build the key for a cacheable query shape."""
    return SEPARATOR.join([kind, *(format_qualifier(q) for q in qualifiers)])


def listing_key(listing_id: Any) -> str:
    return cache_key(LISTING, listing_id)


def seller_listings_key(seller_id: Any) -> str:
    return cache_key(SELLER_LISTINGS, seller_id)


def property_key(property_id: Any) -> str:
    return cache_key(PROPERTY, property_id)


def nearby_key(lat: float, lon: float, radius: float) -> str:
    return cache_key(NEARBY, lat, lon, radius)
