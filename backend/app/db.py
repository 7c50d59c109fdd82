"""Database connection pool and table management for Postgres + PostGIS."""

import logging
from typing import Optional

import asyncpg

from propertyhub.config import Settings

logger = logging.getLogger(__name__)

# Global connection pool
_pool: Optional[asyncpg.Pool] = None


async def init_pool(settings: Settings) -> asyncpg.Pool:
    """Create the connection pool and initialize tables."""
    global _pool
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL environment variable is not set")

    _pool = await asyncpg.create_pool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    await _create_tables()
    logger.info("Database pool created and tables initialized")
    return _pool


async def close_pool():
    """Close the connection pool."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    """Get the current connection pool."""
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    return _pool


async def _create_tables():
    """Create the extension, tables and indexes if they don't exist."""
    async with _pool.acquire() as conn:
        await conn.execute("CREATE EXTENSION IF NOT EXISTS postgis")

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id UUID PRIMARY KEY,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                phone TEXT NOT NULL,
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL CHECK (role IN ('buyer', 'seller')),
                refresh_token_hash TEXT,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            )
        """)
        await conn.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email
            ON users(email)
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_users_refresh_token
            ON users(refresh_token_hash)
        """)

        # location holds [lng, lat] as geography so distances are in meters
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS properties (
                id UUID PRIMARY KEY,
                name TEXT NOT NULL,
                address TEXT NOT NULL,
                pincode TEXT NOT NULL CHECK (pincode ~ '^[0-9]{6}$'),
                city TEXT NOT NULL,
                state TEXT NOT NULL,
                location GEOGRAPHY(Point, 4326) NOT NULL,
                listing_type TEXT NOT NULL CHECK (listing_type IN ('rent', 'sale')),
                price DOUBLE PRECISION NOT NULL CHECK (price > 0),
                seller_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                updated_at TIMESTAMPTZ DEFAULT NOW()
            )
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_properties_location
            ON properties USING GIST (location)
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_properties_listing_type
            ON properties(listing_type)
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_properties_seller
            ON properties(seller_id)
        """)

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS listings (
                id UUID PRIMARY KEY,
                property_id UUID NOT NULL REFERENCES properties(id) ON DELETE CASCADE,
                seller_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                price DOUBLE PRECISION NOT NULL CHECK (price > 0),
                availability TEXT NOT NULL DEFAULT 'available'
                    CHECK (availability IN ('available', 'pending', 'sold')),
                created_at TIMESTAMPTZ DEFAULT NOW()
            )
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_listings_seller
            ON listings(seller_id)
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_listings_property
            ON listings(property_id)
        """)
