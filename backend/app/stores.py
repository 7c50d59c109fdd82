"""Postgres-backed stores for users, properties and listings.

Each store wraps the asyncpg pool and returns plain dicts keyed by column
name. Property locations come back as GeoJSON dicts
(``{"type": "Point", "coordinates": [lng, lat]}``).
"""

import json
import logging
import uuid
from typing import Any, Optional

import asyncpg

from propertyhub.geo import POINT_SQL, GeoPoint, NearbyQuery, build_nearby_query

from .errors import ConflictError

logger = logging.getLogger(__name__)

PROPERTY_FIELDS = (
    "id", "name", "address", "pincode", "city", "state",
    "location", "listing_type", "price", "seller_id",
    "created_at", "updated_at",
)
LISTING_FIELDS = ("id", "property_id", "seller_id", "price", "availability", "created_at")

# Columns a property update may touch (location handled separately)
PROPERTY_UPDATABLE = ("name", "address", "pincode", "city", "state", "listing_type", "price")
LISTING_UPDATABLE = ("price", "availability")


def _property_columns(alias: str = "", prefix: str = "") -> str:
    table = f"{alias}." if alias else ""
    cols = []
    for field in PROPERTY_FIELDS:
        if field == "location":
            cols.append(f"ST_AsGeoJSON({table}location) AS {prefix}location")
        elif prefix:
            cols.append(f"{table}{field} AS {prefix}{field}")
        else:
            cols.append(f"{table}{field}")
    return ", ".join(cols)


PROPERTY_COLUMNS = _property_columns()

LISTING_SELECT = f"""
    SELECT l.id, l.property_id, l.seller_id, l.price, l.availability, l.created_at,
           {_property_columns(alias="p", prefix="p_")}
    FROM listings l
    LEFT JOIN properties p ON p.id = l.property_id
"""


def _property_row(record: Any, prefix: str = "") -> Optional[dict]:
    if record[f"{prefix}id"] is None:
        return None
    row = {field: record[f"{prefix}{field}"] for field in PROPERTY_FIELDS}
    row["location"] = json.loads(row["location"])
    return row


def _listing_row(record: Any, with_property: bool = True) -> dict:
    row = {field: record[field] for field in LISTING_FIELDS}
    if with_property:
        row["property"] = _property_row(record, prefix="p_")
    return row


class UserStore:
    """Account rows."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def get_by_email(self, email: str) -> Optional[dict]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE email = $1", email)
        return dict(row) if row else None

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[dict]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
        return dict(row) if row else None

    async def get_by_refresh_token(self, token_hash: str) -> Optional[dict]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users WHERE refresh_token_hash = $1", token_hash
            )
        return dict(row) if row else None

    async def create(
        self,
        name: str,
        email: str,
        phone: str,
        password_hash: str,
        role: str,
    ) -> dict:
        """Insert a user.

        Raises:
            ConflictError: if the email is already registered.
        """
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO users (id, name, email, phone, password_hash, role)
                    VALUES ($1, $2, $3, $4, $5, $6)
                    RETURNING *
                    """,
                    uuid.uuid4(), name, email, phone, password_hash, role,
                )
        except asyncpg.UniqueViolationError:
            raise ConflictError("User with this email already exists")
        return dict(row)

    async def set_refresh_token(self, user_id: uuid.UUID, token_hash: Optional[str]) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE users SET refresh_token_hash = $1, updated_at = NOW()
                WHERE id = $2
                """,
                token_hash, user_id,
            )


class PropertyStore:
    """Property rows with a geography location column."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def create_many(self, seller_id: uuid.UUID, properties: list[dict]) -> list[dict]:
        """Insert properties in one transaction.

        Each dict carries the PropertyCreate fields with ``location`` as a
        GeoPoint.
        """
        point = POINT_SQL.format(lng="$7", lat="$8")
        query = f"""
            INSERT INTO properties
                (id, name, address, pincode, city, state, location, listing_type, price, seller_id)
            VALUES ($1, $2, $3, $4, $5, $6, {point}, $9, $10, $11)
            RETURNING {PROPERTY_COLUMNS}
        """
        created = []
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                for prop in properties:
                    location: GeoPoint = prop["location"]
                    row = await conn.fetchrow(
                        query,
                        uuid.uuid4(), prop["name"], prop["address"], prop["pincode"],
                        prop["city"], prop["state"],
                        location.longitude, location.latitude,
                        prop["listing_type"], prop["price"], seller_id,
                    )
                    created.append(_property_row(row))
        return created

    async def get(self, property_id: uuid.UUID) -> Optional[dict]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {PROPERTY_COLUMNS} FROM properties WHERE id = $1", property_id
            )
        return _property_row(row) if row else None

    async def update(self, property_id: uuid.UUID, changes: dict) -> Optional[dict]:
        """Apply a partial update. Returns None if the property is gone."""
        assignments = []
        params: list = []
        idx = 1

        for column in PROPERTY_UPDATABLE:
            if column in changes:
                assignments.append(f"{column} = ${idx}")
                params.append(changes[column])
                idx += 1

        location: Optional[GeoPoint] = changes.get("location")
        if location is not None:
            point = POINT_SQL.format(lng=f"${idx}", lat=f"${idx + 1}")
            assignments.append(f"location = {point}")
            params.extend([location.longitude, location.latitude])
            idx += 2

        assignments.append("updated_at = NOW()")
        params.append(property_id)
        query = f"""
            UPDATE properties SET {", ".join(assignments)}
            WHERE id = ${idx}
            RETURNING {PROPERTY_COLUMNS}
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, *params)
        return _property_row(row) if row else None

    async def delete(self, property_id: uuid.UUID) -> bool:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                "DELETE FROM properties WHERE id = $1 RETURNING id", property_id
            )
        return row is not None

    async def nearby(self, query: NearbyQuery) -> tuple[list[dict], int]:
        """Properties within the query radius, nearest first, and the total match count."""
        sql, args = build_nearby_query(query, PROPERTY_COLUMNS)
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(sql, *args)

        results = []
        for record in rows:
            row = _property_row(record)
            row["distance"] = record["distance"]
            results.append(row)
        total = rows[0]["total_count"] if rows else 0
        return results, total


class ListingStore:
    """Listing rows; reads embed the referenced property."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def create(
        self,
        property_id: uuid.UUID,
        seller_id: uuid.UUID,
        price: float,
        availability: str,
    ) -> dict:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO listings (id, property_id, seller_id, price, availability)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id, property_id, seller_id, price, availability, created_at
                """,
                uuid.uuid4(), property_id, seller_id, price, availability,
            )
        return _listing_row(row, with_property=False)

    async def get(self, listing_id: uuid.UUID) -> Optional[dict]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(f"{LISTING_SELECT} WHERE l.id = $1", listing_id)
        return _listing_row(row) if row else None

    async def list_all(self) -> list[dict]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(f"{LISTING_SELECT} ORDER BY l.created_at DESC")
        return [_listing_row(r) for r in rows]

    async def list_by_seller(self, seller_id: uuid.UUID) -> list[dict]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                f"{LISTING_SELECT} WHERE l.seller_id = $1 ORDER BY l.created_at DESC",
                seller_id,
            )
        return [_listing_row(r) for r in rows]

    async def update(self, listing_id: uuid.UUID, changes: dict) -> Optional[dict]:
        assignments = []
        params: list = []
        idx = 1
        for column in LISTING_UPDATABLE:
            if column in changes:
                assignments.append(f"{column} = ${idx}")
                params.append(changes[column])
                idx += 1
        if not assignments:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {', '.join(LISTING_FIELDS)} FROM listings WHERE id = $1",
                    listing_id,
                )
            return _listing_row(row, with_property=False) if row else None

        params.append(listing_id)
        query = f"""
            UPDATE listings SET {", ".join(assignments)}
            WHERE id = ${idx}
            RETURNING {", ".join(LISTING_FIELDS)}
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, *params)
        return _listing_row(row, with_property=False) if row else None

    async def delete(self, listing_id: uuid.UUID) -> Optional[dict]:
        """Delete a listing and return the removed row, or None if absent."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"DELETE FROM listings WHERE id = $1 RETURNING {', '.join(LISTING_FIELDS)}",
                listing_id,
            )
        return _listing_row(row, with_property=False) if row else None
