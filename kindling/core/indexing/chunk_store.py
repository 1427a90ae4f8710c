"""Chunk store for a repository's chunks, processed-file ledger and checkpoint.

Everything lives in a KeyValueStore under per-repository keys:

- ``embedding:repo:{repo}:chunks`` - list of serialized chunks
- ``embedding:repo:{repo}:processed_files`` - set of processed paths
- ``embedding:repo:{repo}:status`` - serialized RepositoryIndexState

Readers never raise on corrupt entries. They decode through the validating
deserializers, skip InvalidRecord results and log them.
"""

import logging
from dataclasses import dataclass, field

from kindling.core.use_case_errors import CorruptStateError
from kindling.domain.entities import Chunk, RepositoryIndexState
from kindling.domain.records import (
    LEGACY_CORRUPT_MARKER,
    InvalidRecord,
    decode_chunk,
    decode_index_state,
    encode_chunk,
    encode_index_state,
)
from kindling.ports.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "embedding:repo:"
REWRITE_BATCH_SIZE = 100


def chunks_key(repository: str) -> str:
    return f"{KEY_PREFIX}{repository}:chunks"


def processed_key(repository: str) -> str:
    return f"{KEY_PREFIX}{repository}:processed_files"


def status_key(repository: str) -> str:
    return f"{KEY_PREFIX}{repository}:status"


def _preview(raw: str, limit: int = 80) -> str:
    return raw if len(raw) <= limit else raw[:limit] + "..."


@dataclass
class ChunkPage:
    """One page of decoded chunks.

    Attributes:
        chunks: Valid chunks in stored order.
        invalid: Entries that failed to decode.
        raw_count: Entries read from the store, valid or not.
    """

    chunks: list[Chunk] = field(default_factory=list)
    invalid: list[InvalidRecord] = field(default_factory=list)
    raw_count: int = 0


class ChunkStore:
    """Repository-scoped chunk, ledger and checkpoint persistence."""

    def __init__(self, kv: KeyValueStore) -> None:
        """Initialize chunk store.

        Args:
            kv: Backing key-value store.
        """
        self.kv = kv

    # Chunks

    async def append_chunks(self, repository: str, chunks: list[Chunk]) -> int:
        """Push serialized chunks onto the repository's chunk list.

        Returns:
            Number of chunks appended.
        """
        if not chunks:
            return 0
        await self.kv.rpush(chunks_key(repository), *(encode_chunk(c) for c in chunks))
        return len(chunks)

    async def count_chunks(self, repository: str) -> int:
        return await self.kv.llen(chunks_key(repository))

    async def list_chunks_page(self, repository: str, offset: int, limit: int) -> ChunkPage:
        """Read ``limit`` entries starting at ``offset``, skipping corrupt ones."""
        if limit <= 0:
            return ChunkPage()
        raw_entries = await self.kv.lrange(chunks_key(repository), offset, offset + limit - 1)
        page = ChunkPage(raw_count=len(raw_entries))
        for position, raw in enumerate(raw_entries, offset):
            decoded = decode_chunk(raw)
            if isinstance(decoded, InvalidRecord):
                logger.warning(
                    f"Skipping corrupt chunk #{position} in {repository}: "
                    f"{decoded.reason} ({_preview(decoded.raw)!r})"
                )
                page.invalid.append(decoded)
            else:
                page.chunks.append(decoded)
        return page

    async def remove_chunks_for_paths(self, repository: str, paths: set[str] | list[str]) -> int:
        """Rewrite the chunk list without chunks belonging to ``paths``.

        The store has no delete-by-predicate primitive, so this reads the whole
        list, filters it, deletes the key and re-pushes survivors in batches.
        Corrupt entries are dropped during the rewrite.

        Returns:
            Number of entries removed, corrupt entries included.
        """
        targets = set(paths)
        if not targets:
            return 0

        key = chunks_key(repository)
        raw_entries = await self.kv.lrange(key, 0, -1)
        kept: list[str] = []
        for raw in raw_entries:
            decoded = decode_chunk(raw)
            if isinstance(decoded, InvalidRecord):
                logger.warning(f"Dropping corrupt chunk in {repository}: {decoded.reason}")
                continue
            if decoded.path not in targets:
                kept.append(raw)

        removed = len(raw_entries) - len(kept)
        if removed == 0:
            return 0

        await self.kv.delete(key)
        for i in range(0, len(kept), REWRITE_BATCH_SIZE):
            await self.kv.rpush(key, *kept[i : i + REWRITE_BATCH_SIZE])

        logger.info(f"Removed {removed} chunks for {len(targets)} paths in {repository}")
        return removed

    async def clear_chunks(self, repository: str) -> None:
        await self.kv.delete(chunks_key(repository))

    # Processed-file ledger

    async def mark_processed(self, repository: str, path: str) -> None:
        await self.kv.sadd(processed_key(repository), path)

    async def is_processed(self, repository: str, path: str) -> bool:
        return await self.kv.sismember(processed_key(repository), path)

    async def processed_paths(self, repository: str) -> set[str]:
        return await self.kv.smembers(processed_key(repository))

    async def processed_count(self, repository: str) -> int:
        return await self.kv.scard(processed_key(repository))

    async def clear_processed(self, repository: str) -> None:
        await self.kv.delete(processed_key(repository))

    # Checkpoint

    async def get_status(self, repository: str) -> RepositoryIndexState | None:
        """Load the checkpoint, or None if it is missing or corrupt."""
        raw = await self.kv.get(status_key(repository))
        if raw is None:
            return None
        decoded = decode_index_state(raw)
        if isinstance(decoded, InvalidRecord):
            logger.warning(
                f"Ignoring corrupt status for {repository}: {decoded.reason} "
                f"({_preview(decoded.raw)!r})"
            )
            return None
        return decoded

    async def set_status(self, state: RepositoryIndexState, ttl_seconds: int | None = None) -> None:
        """Persist the checkpoint, expiring after ``ttl_seconds`` if given.

        Raises:
            CorruptStateError: If the record would serialize to the legacy
                corrupt marker instead of a JSON object.
        """
        serialized = encode_index_state(state)
        if serialized == LEGACY_CORRUPT_MARKER or not serialized.startswith("{"):
            raise CorruptStateError(
                f"Refusing to write corrupt status for {state.repository}: {serialized!r}"
            )
        await self.kv.set(status_key(state.repository), serialized, ex=ttl_seconds)

    async def list_statuses(self) -> list[RepositoryIndexState]:
        """All decodable checkpoints, in no particular order."""
        states = []
        for key in await self.kv.scan_keys(f"{KEY_PREFIX}*:status"):
            raw = await self.kv.get(key)
            if raw is None:
                continue
            decoded = decode_index_state(raw)
            if isinstance(decoded, InvalidRecord):
                logger.warning(f"Skipping corrupt status at {key}: {decoded.reason}")
                continue
            states.append(decoded)
        return states

    async def list_repositories(self) -> list[str]:
        """Repositories that have at least one stored chunk."""
        repositories = []
        suffix = ":chunks"
        for key in await self.kv.scan_keys(f"{KEY_PREFIX}*{suffix}"):
            repository = key[len(KEY_PREFIX) : -len(suffix)]
            if repository and await self.kv.llen(key) > 0:
                repositories.append(repository)
        return sorted(repositories)

    async def delete_repository(self, repository: str) -> bool:
        """Delete chunks, ledger and checkpoint with sequential deletes.

        Returns:
            True if anything existed.
        """
        deleted = 0
        for key in (chunks_key(repository), processed_key(repository), status_key(repository)):
            deleted += await self.kv.delete(key)
        logger.info(f"Deleted {deleted} keys for {repository}")
        return deleted > 0
