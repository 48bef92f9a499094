"""
Redis client manager for GEO Analyzer
Handles connection pooling and health checks on top of redis.asyncio
"""

import logging
from typing import Optional

import redis.asyncio as redis

from config import get_redis_url

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Async Redis connection manager with a connection pool.

    The underlying redis.asyncio client is exposed as `.client`; callers that
    need failures to propagate (the job store) use it directly.
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url or get_redis_url()

        # Create connection pool for efficiency
        self.pool = redis.ConnectionPool.from_url(
            self.redis_url,
            max_connections=20,
            decode_responses=True,  # Auto-decode bytes to strings
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
        )
        self.client = redis.Redis(connection_pool=self.pool)

    async def ping(self) -> bool:
        """Check if Redis is available"""
        try:
            return bool(await self.client.ping())
        except redis.RedisError:
            return False

    async def get_stats(self) -> dict:
        """
        Get Redis connection and memory stats.

        Returns:
            Dictionary with Redis statistics
        """
        try:
            info = await self.client.info()
            return {
                "connected_clients": info.get("connected_clients", 0),
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "total_commands_processed": info.get("total_commands_processed", 0),
            }
        except redis.RedisError as e:
            logger.error(f"Failed to get Redis stats: {str(e)}")
            return {"error": str(e)}

    async def close(self):
        """Close Redis connection pool"""
        try:
            await self.client.aclose()
            await self.pool.disconnect()
            logger.info("Redis connection closed")
        except redis.RedisError as e:
            logger.error(f"Error closing Redis connection: {str(e)}")


# Global Redis client instance (API process)
redis_client: Optional[RedisClient] = None


def get_redis_client() -> RedisClient:
    """
    Get or create the global Redis client instance.

    Returns:
        RedisClient instance
    """
    global redis_client

    if redis_client is None:
        redis_client = RedisClient()
        logger.info(f"✅ Redis client created for {redis_client.redis_url}")

    return redis_client


async def close_redis_client():
    """Close the global Redis client"""
    global redis_client

    if redis_client is not None:
        await redis_client.close()
        redis_client = None
