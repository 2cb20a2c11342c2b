"""Shared HTTP client management for connection pooling.

The client is created in the application lifespan and handed to the
advice provider, so every Gemini call reuses the same connection pool.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from ewaste.app.core.config import Settings, settings


def build_timeout(config: Settings = settings) -> httpx.Timeout:
    """Build granular httpx timeouts from settings."""
    return httpx.Timeout(
        connect=config.httpx_connect_timeout,
        read=config.httpx_read_timeout,
        write=config.httpx_write_timeout,
        pool=config.httpx_pool_timeout,
    )


def build_limits(config: Settings = settings) -> httpx.Limits:
    """Build connection pool limits from settings."""
    return httpx.Limits(
        max_connections=config.httpx_max_connections,
        max_keepalive_connections=config.httpx_max_keepalive_connections,
        keepalive_expiry=config.httpx_keepalive_expiry,
    )


def create_http_client(config: Settings = settings) -> httpx.AsyncClient:
    """Create a new HTTP client with pool and timeout settings.

    The returned client should be closed when done:

        async with create_http_client() as client:
            ...
    """
    return httpx.AsyncClient(timeout=build_timeout(config), limits=build_limits(config))


@asynccontextmanager
async def init_http_client(
    config: Settings = settings,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Initialize and yield the shared HTTP client for the lifespan.

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with init_http_client() as client:
                yield
    """
    client = create_http_client(config)
    try:
        yield client
    finally:
        await client.aclose()
