"""Redis connection pool for the server-side correlation store."""

import logging
from typing import Optional

import redis.asyncio as redis

from line_login.core.config import settings

logger = logging.getLogger(__name__)


class RedisConnection:
    """
    Lazily created Redis connection pool.

    Only instantiated when CORRELATION_STORE=redis; the app lifespan opens and
    closes it.
    """

    def __init__(self, url: Optional[str] = None, max_connections: Optional[int] = None):
        self.url = url or settings.REDIS_URL
        self.max_connections = max_connections or settings.REDIS_MAX_CONNECTIONS
        self.pool: Optional[redis.ConnectionPool] = None
        self.client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Create the pool and client if not already done."""
        if self.pool is not None:
            return
        self.pool = redis.ConnectionPool.from_url(
            self.url,
            max_connections=self.max_connections,
            decode_responses=True,
        )
        self.client = redis.Redis(connection_pool=self.pool)

    async def get_client(self) -> redis.Redis:
        if self.client is None:
            await self.connect()
        return self.client

    async def ping(self) -> bool:
        """Return True if Redis answers."""
        try:
            client = await self.get_client()
            return await client.ping()
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None
        if self.pool:
            await self.pool.disconnect()
            self.pool = None
