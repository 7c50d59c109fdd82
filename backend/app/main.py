"""FastAPI application for the PropertyHub API."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from propertyhub import __version__
from propertyhub.cache import create_cache
from propertyhub.config import Settings, get_settings

from .db import close_pool, get_pool, init_pool
from .errors import PayloadTooLargeError, error_response, register_error_handlers
from .routers import listings, properties, users
from .services import build_services
from .stores import ListingStore, PropertyStore, UserStore

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware:
    """Reject request bodies larger than the configured limit.

    Uses ``Content-Length`` when present. Otherwise the streamed body is
    read up to the limit and replayed to the app.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None:
            try:
                too_large = int(length) > self.max_bytes
            except ValueError:
                too_large = False
            if too_large:
                await self._reject(scope, receive, send)
            else:
                await self.app(scope, receive, send)
            return

        chunks = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] != "http.request":
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_bytes:
                await self._reject(scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        err = PayloadTooLargeError(f"Request body exceeds {self.max_bytes} bytes")
        response = error_response(err.status_code, err.message)
        await response(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup/shutdown: cache client + DB pool."""
    settings: Settings = app.state.settings
    cache = create_cache(settings)
    app.state.cache = cache

    if settings.database_url:
        pool = await init_pool(settings)
        logger.info("Database connected")
        app.state.services = build_services(
            UserStore(pool), PropertyStore(pool), ListingStore(pool), cache, settings
        )
    else:
        logger.warning("DATABASE_URL not set, running without database")

    yield

    await cache.close()
    await close_pool()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    app = FastAPI(
        title="PropertyHub API",
        description="Real estate listings with geo search",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Inside CORS, so 413 responses carry CORS headers
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

    register_error_handlers(app)

    app.include_router(users.router, prefix="/api/v1/user", tags=["User"])
    app.include_router(properties.router, prefix="/api/v1/property", tags=["Property"])
    app.include_router(listings.router, prefix="/api/v1/listing", tags=["Listing"])

    @app.get("/")
    async def root():
        """API root endpoint."""
        return {
            "name": "PropertyHub API",
            "version": __version__,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        result = {"status": "healthy"}
        if settings.database_url:
            try:
                pool = get_pool()
                async with pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                result["database"] = "connected"
            except Exception:
                result["database"] = "disconnected"
        cache = getattr(request.app.state, "cache", None)
        if cache is not None:
            try:
                result["cache"] = cache.name if await cache.ping() else "unreachable"
            except Exception:
                result["cache"] = "unreachable"
        return result

    return app


app = create_app()
