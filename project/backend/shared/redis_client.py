"""
Redis client.

Async Redis wrapper with a key prefix and JSON helpers.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from shared.errors import ConfigError, RetryableError
from shared.logging import get_logger

logger = get_logger("redis")

KEY_PREFIX = "veosync:"


class RedisClient:
    """Async Redis client with prefixed keys."""

    def __init__(self, redis_url: str, prefix: str = KEY_PREFIX):
        """
        Initialize Redis client.

        Args:
            redis_url: redis:// or rediss:// URL
            prefix: Prefix added to every key

        Raises:
            ConfigError: If the client cannot be created
        """
        if not redis_url:
            raise ConfigError("REDIS_URL is required for the Redis client")
        try:
            self.client = redis.from_url(redis_url, decode_responses=False)
        except Exception as e:
            raise ConfigError(f"Failed to initialize Redis client: {str(e)}") from e
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        """
        Set a string value.

        Raises:
            RetryableError: If the command fails
        """
        try:
            return bool(await self.client.set(self._key(key), value.encode("utf-8"), ex=ex))
        except Exception as e:
            raise RetryableError(f"Failed to set Redis key {key}: {str(e)}") from e

    async def get(self, key: str) -> Optional[str]:
        """
        Get a string value, or None if the key does not exist.

        Raises:
            RetryableError: If the command fails
        """
        try:
            value = await self.client.get(self._key(key))
        except Exception as e:
            raise RetryableError(f"Failed to get Redis key {key}: {str(e)}") from e
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        try:
            return (await self.client.delete(self._key(key))) > 0
        except Exception as e:
            raise RetryableError(f"Failed to delete Redis key {key}: {str(e)}") from e

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set a JSON-encoded value."""
        return await self.set(key, json.dumps(value), ex=ttl)

    async def get_json(self, key: str) -> Optional[Any]:
        """
        Get a JSON-decoded value.

        Raises:
            RetryableError: If the stored value is not valid JSON
        """
        value = await self.get(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise RetryableError(f"Failed to decode JSON for Redis key {key}: {str(e)}") from e

    async def health_check(self) -> bool:
        """Check Redis connection health."""
        try:
            await self.client.ping()
            return True
        except Exception as e:
            logger.warning("Redis health check failed", extra={"error": str(e)})
            return False

    async def close(self) -> None:
        await self.client.aclose()
