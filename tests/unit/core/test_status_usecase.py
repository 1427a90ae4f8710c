"""Tests for StatusUseCase."""

from collections.abc import Callable
from unittest.mock import AsyncMock

from kindling.adapters.kv.memory_store import MemoryKeyValueStore
from kindling.core.indexing.chunk_store import ChunkStore, status_key
from kindling.core.status.status_usecase import StatusUseCase
from kindling.domain.entities import Chunk, IndexStatus, RepositoryIndexState


async def test_list_statuses_most_recent_first(
    store: ChunkStore, chunk_factory: Callable[..., Chunk]
) -> None:
    await store.append_chunks("a/old", [chunk_factory(repository="a/old")])
    await store.set_status(
        RepositoryIndexState(
            repository="a/old", status=IndexStatus.COMPLETED, last_processed_at=1_000
        )
    )
    await store.set_status(
        RepositoryIndexState(
            repository="b/new", status=IndexStatus.IN_PROGRESS, last_processed_at=2_000
        )
    )

    response = await StatusUseCase(store).list_statuses()

    assert response.success
    assert [s.repository for s in response.statuses] == ["b/new", "a/old"]
    assert response.statuses[1].total_chunks == 1


async def test_corrupt_status_does_not_fail_listing(
    kv: MemoryKeyValueStore, store: ChunkStore
) -> None:
    await kv.set(status_key("x/broken"), "[object Object]")
    await store.set_status(RepositoryIndexState(repository="y/fine", status=IndexStatus.FAILED))

    response = await StatusUseCase(store).list_statuses()

    assert response.success
    assert [s.repository for s in response.statuses] == ["y/fine"]


async def test_get_status_reports_counts(
    store: ChunkStore, chunk_factory: Callable[..., Chunk]
) -> None:
    await store.append_chunks("o/r", [chunk_factory(repository="o/r")])
    await store.mark_processed("o/r", "src/example.ts")
    await store.set_status(
        RepositoryIndexState(repository="o/r", status=IndexStatus.COMPLETED, total_files=1)
    )

    response = await StatusUseCase(store).get_status("o/r")

    [status] = response.statuses
    data = status.to_dict()
    assert data["repository"] == "o/r"
    assert data["status"]["status"] == "completed"
    assert data["totalChunks"] == 1
    assert data["processedFileCount"] == 1


async def test_get_status_with_chunks_but_no_checkpoint(
    store: ChunkStore, chunk_factory: Callable[..., Chunk]
) -> None:
    await store.append_chunks("o/r", [chunk_factory(repository="o/r")])

    response = await StatusUseCase(store).get_status("o/r")

    assert response.statuses[0].state is None
    assert response.statuses[0].to_dict()["status"] is None


async def test_get_status_of_unknown_repository_is_empty(store: ChunkStore) -> None:
    response = await StatusUseCase(store).get_status("nobody/here")
    assert response.success
    assert response.statuses == []


async def test_delete_repository(store: ChunkStore, chunk_factory: Callable[..., Chunk]) -> None:
    await store.append_chunks("o/r", [chunk_factory(repository="o/r")])
    usecase = StatusUseCase(store)

    first = await usecase.delete_repository("o/r")
    second = await usecase.delete_repository("o/r")

    assert first.success and first.deleted
    assert second.success and not second.deleted


async def test_store_errors_become_error_responses() -> None:
    store = AsyncMock(spec=ChunkStore)
    store.list_statuses.side_effect = ConnectionError("store unreachable")
    store.delete_repository.side_effect = RuntimeError("boom")
    usecase = StatusUseCase(store)

    listing = await usecase.list_statuses()
    deletion = await usecase.delete_repository("o/r")

    assert not listing.success
    assert "I/O error" in (listing.error or "")
    assert not deletion.success
    assert deletion.error == "Delete error: boom"
