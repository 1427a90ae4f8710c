"""Redis-backed KeyValueStore using redis.asyncio."""

import functools
import logging

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

logger = logging.getLogger(__name__)


def _connection_errors(method):
    """Re-raise redis connection failures as the builtin ConnectionError."""

    @functools.wraps(method)
    async def wrapper(*args, **kwargs):
        try:
            return await method(*args, **kwargs)
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise ConnectionError(f"Redis unavailable: {e}") from e

    return wrapper


class RedisKeyValueStore:
    """KeyValueStore over a Redis server.

    Responses are decoded to str. Commands that Redis rejects with no
    arguments (RPUSH, SADD, SREM, DEL) short-circuit on empty input.
    """

    def __init__(self, client: aioredis.Redis) -> None:
        """Initialize with a client created with ``decode_responses=True``."""
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        return cls(aioredis.from_url(url, decode_responses=True))

    # Lists

    @_connection_errors
    async def rpush(self, key: str, *values: str) -> int:
        if not values:
            return await self.client.llen(key)
        return await self.client.rpush(key, *values)

    @_connection_errors
    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        return await self.client.lrange(key, start, stop)

    @_connection_errors
    async def llen(self, key: str) -> int:
        return await self.client.llen(key)

    @_connection_errors
    async def ltrim(self, key: str, start: int, stop: int) -> None:
        await self.client.ltrim(key, start, stop)

    # Sets

    @_connection_errors
    async def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return await self.client.sadd(key, *members)

    @_connection_errors
    async def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return await self.client.srem(key, *members)

    @_connection_errors
    async def smembers(self, key: str) -> set[str]:
        return set(await self.client.smembers(key))

    @_connection_errors
    async def sismember(self, key: str, member: str) -> bool:
        return bool(await self.client.sismember(key, member))

    @_connection_errors
    async def scard(self, key: str) -> int:
        return await self.client.scard(key)

    # Strings

    @_connection_errors
    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    @_connection_errors
    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        await self.client.set(key, value, ex=ex)

    # Keys

    @_connection_errors
    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self.client.expire(key, seconds))

    @_connection_errors
    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.client.delete(*keys)

    @_connection_errors
    async def scan_keys(self, pattern: str) -> list[str]:
        keys = [key async for key in self.client.scan_iter(match=pattern, count=500)]
        logger.debug(f"SCAN {pattern} matched {len(keys)} keys")
        return keys

    async def aclose(self) -> None:
        await self.client.aclose()
