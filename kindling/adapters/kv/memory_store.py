"""In-process KeyValueStore for tests and one-shot runs."""

import fnmatch
import time
from collections.abc import Callable


def redis_range(length: int, start: int, stop: int) -> tuple[int, int]:
    """Convert Redis inclusive list bounds to a half-open Python range.

    Negative indices count from the end and out-of-range bounds are clamped,
    so the result is always a valid (possibly empty) slice.
    """
    if start < 0:
        start = max(length + start, 0)
    if stop < 0:
        stop = length + stop
    stop = min(stop, length - 1)
    if start > stop:
        return 0, 0
    return start, stop + 1


class MemoryKeyValueStore:
    """Dict-backed KeyValueStore with lazy expiry.

    Expired keys are dropped when next touched or scanned.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, list[str] | set[str] | str] = {}
        self._expires: dict[str, float] = {}

    def _alive(self, key: str) -> bool:
        deadline = self._expires.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._data.pop(key, None)
            del self._expires[key]
        return key in self._data

    def _list(self, key: str) -> list[str]:
        if not self._alive(key):
            return []
        value = self._data[key]
        if not isinstance(value, list):
            raise TypeError(f"Key {key!r} does not hold a list")
        return value

    def _set(self, key: str) -> set[str]:
        if not self._alive(key):
            return set()
        value = self._data[key]
        if not isinstance(value, set):
            raise TypeError(f"Key {key!r} does not hold a set")
        return value

    # Lists

    async def rpush(self, key: str, *values: str) -> int:
        items = self._list(key)
        items.extend(values)
        if items:
            self._data[key] = items
        return len(items)

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        items = self._list(key)
        lo, hi = redis_range(len(items), start, stop)
        return items[lo:hi]

    async def llen(self, key: str) -> int:
        return len(self._list(key))

    async def ltrim(self, key: str, start: int, stop: int) -> None:
        items = self._list(key)
        lo, hi = redis_range(len(items), start, stop)
        if hi > lo:
            self._data[key] = items[lo:hi]
        else:
            await self.delete(key)

    # Sets

    async def sadd(self, key: str, *members: str) -> int:
        current = self._set(key)
        added = len(set(members) - current)
        current.update(members)
        if current:
            self._data[key] = current
        return added

    async def srem(self, key: str, *members: str) -> int:
        current = self._set(key)
        removed = len(current & set(members))
        current.difference_update(members)
        if not current:
            await self.delete(key)
        return removed

    async def smembers(self, key: str) -> set[str]:
        return set(self._set(key))

    async def sismember(self, key: str, member: str) -> bool:
        return member in self._set(key)

    async def scard(self, key: str) -> int:
        return len(self._set(key))

    # Strings

    async def get(self, key: str) -> str | None:
        if not self._alive(key):
            return None
        value = self._data[key]
        if not isinstance(value, str):
            raise TypeError(f"Key {key!r} does not hold a string")
        return value

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._data[key] = value
        if ex is None:
            self._expires.pop(key, None)
        else:
            self._expires[key] = self._clock() + ex

    # Keys

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self._expires[key] = self._clock() + seconds
        return True

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._alive(key):
                del self._data[key]
                deleted += 1
            self._expires.pop(key, None)
        return deleted

    async def scan_keys(self, pattern: str) -> list[str]:
        return [
            key
            for key in list(self._data)
            if self._alive(key) and fnmatch.fnmatchcase(key, pattern)
        ]

    async def aclose(self) -> None:
        return None
