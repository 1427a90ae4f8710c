"""Key-value store port.

Redis-like primitives over string keys: ordered lists, sets and plain string
values with optional expiry. Values are strings.
"""

from typing import Protocol


class KeyValueStore(Protocol):
    """Async key-value store with list, set and string operations."""

    # Lists

    async def rpush(self, key: str, *values: str) -> int:
        """Append values to the list at key; return the new length."""
        ...

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        """Return list elements from start to stop inclusive.

        Negative indices count from the end, as in Redis (-1 is the last element).
        """
        ...

    async def llen(self, key: str) -> int:
        """Return the list length (0 if missing)."""
        ...

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        """Keep only elements from start to stop inclusive."""
        ...

    # Sets

    async def sadd(self, key: str, *members: str) -> int:
        """Add members; return how many were new."""
        ...

    async def srem(self, key: str, *members: str) -> int:
        """Remove members; return how many were present."""
        ...

    async def smembers(self, key: str) -> set[str]:
        ...

    async def sismember(self, key: str, member: str) -> bool:
        ...

    async def scard(self, key: str) -> int:
        ...

    # Strings

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        """Store a string value, expiring after ``ex`` seconds if given."""
        ...

    # Keys

    async def expire(self, key: str, seconds: int) -> bool:
        """Set a key's expiry; return False if the key does not exist."""
        ...

    async def delete(self, *keys: str) -> int:
        """Delete keys of any type; return how many existed."""
        ...

    async def scan_keys(self, pattern: str) -> list[str]:
        """Return keys matching a glob-style pattern (``*`` wildcard)."""
        ...

    async def aclose(self) -> None:
        """Release connections."""
        ...
