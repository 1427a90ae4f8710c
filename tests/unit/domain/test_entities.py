"""Tests for domain entities."""

import pytest

from kindling.domain.entities import (
    Chunk,
    ChunkMetadata,
    ChunkType,
    IndexStatus,
    Query,
    RepositoryIndexState,
    SearchResult,
    SearchResultSet,
)
from kindling.domain.value_objects import PathFilter


def _meta(start: int = 1, end: int = 5, name: str | None = "foo") -> ChunkMetadata:
    return ChunkMetadata(
        language="typescript", type=ChunkType.FUNCTION, start_line=start, end_line=end, name=name
    )


class TestChunkMetadata:
    def test_line_count_is_inclusive(self) -> None:
        assert _meta(3, 7).line_count == 5
        assert _meta(4, 4).line_count == 1

    def test_rejects_zero_start_line(self) -> None:
        with pytest.raises(ValueError, match="start_line"):
            _meta(0, 3)

    def test_rejects_end_before_start(self) -> None:
        with pytest.raises(ValueError, match="end_line"):
            _meta(5, 4)

    def test_to_dict_uses_camel_case_and_omits_missing_name(self) -> None:
        data = _meta(2, 4, name=None).to_dict()
        assert data == {
            "language": "typescript",
            "type": "function",
            "startLine": 2,
            "endLine": 4,
            "lineCount": 3,
        }

    def test_from_dict_round_trips_name(self) -> None:
        meta = _meta(2, 9, name="bar")
        assert ChunkMetadata.from_dict(meta.to_dict()) == meta


class TestChunk:
    def test_compute_id_is_deterministic_and_location_sensitive(self) -> None:
        a = Chunk.compute_id("o/r", "a.ts", 1, 10)
        assert a == Chunk.compute_id("o/r", "a.ts", 1, 10)
        assert a != Chunk.compute_id("o/r", "a.ts", 2, 10)
        assert a != Chunk.compute_id("o/other", "a.ts", 1, 10)
        assert len(a) == 64

    def test_empty_repository_or_path_rejected(self) -> None:
        with pytest.raises(ValueError):
            Chunk(repository="", path="a.ts", content="x", metadata=_meta())
        with pytest.raises(ValueError):
            Chunk(repository="o/r", path="", content="x", metadata=_meta())

    def test_with_embedding_returns_copy_with_tuple(self) -> None:
        chunk = Chunk(repository="o/r", path="a.ts", content="x", metadata=_meta())
        embedded = chunk.with_embedding([1, 2.5])
        assert chunk.embedding is None
        assert embedded.embedding == (1.0, 2.5)
        assert embedded.id == chunk.id

    def test_id_ignores_content(self) -> None:
        chunk = Chunk(repository="o/r", path="a.ts", content="x", metadata=_meta(3, 8))
        other = Chunk(repository="o/r", path="a.ts", content="y", metadata=_meta(3, 8))
        assert chunk.id == other.id == Chunk.compute_id("o/r", "a.ts", 3, 8)

    def test_dict_round_trip_with_embedding(self) -> None:
        chunk = Chunk(
            repository="o/r",
            path="src/a.ts",
            content="function foo() {}",
            metadata=_meta(),
            embedding=(0.5, -0.25),
        )
        data = chunk.to_dict()
        assert data["embedding"] == [0.5, -0.25]
        assert data["metadata"]["startLine"] == 1
        assert Chunk.from_dict(data) == chunk

    def test_to_dict_omits_missing_embedding(self) -> None:
        chunk = Chunk(repository="o/r", path="a.ts", content="x", metadata=_meta())
        assert "embedding" not in chunk.to_dict()

    def test_from_dict_rejects_non_list_embedding(self) -> None:
        data = Chunk(repository="o/r", path="a.ts", content="x", metadata=_meta()).to_dict()
        data["embedding"] = "nope"
        with pytest.raises(TypeError):
            Chunk.from_dict(data)


class TestRepositoryIndexState:
    def test_progress_is_floor_percentage(self) -> None:
        state = RepositoryIndexState("o/r", IndexStatus.IN_PROGRESS, total_files=3)
        state.update_progress(1)
        assert state.progress == 33
        state.update_progress(2)
        assert state.progress == 66
        state.update_progress(3)
        assert state.progress == 100

    def test_progress_with_zero_total_is_complete(self) -> None:
        state = RepositoryIndexState("o/r", IndexStatus.IN_PROGRESS, total_files=0)
        state.update_progress(0)
        assert state.progress == 100

    def test_mark_completed_records_commit(self) -> None:
        state = RepositoryIndexState("o/r", IndexStatus.IN_PROGRESS, current_path="a.ts")
        state.mark_completed("abc")
        assert state.status is IndexStatus.COMPLETED
        assert state.last_commit_sha == "abc"
        assert state.progress == 100
        assert state.current_path is None

    def test_mark_failed_appends_error(self) -> None:
        state = RepositoryIndexState("o/r", IndexStatus.IN_PROGRESS, errors=["first"])
        state.mark_failed("boom")
        assert state.status is IndexStatus.FAILED
        assert state.errors == ["first", "boom"]

    def test_to_dict_omits_unset_optionals(self) -> None:
        data = RepositoryIndexState("o/r", IndexStatus.IN_PROGRESS).to_dict()
        assert data["status"] == "in_progress"
        assert "lastCommitSha" not in data
        assert "totalFiles" not in data

    def test_from_dict_requires_only_repository_and_status(self) -> None:
        state = RepositoryIndexState.from_dict({"repository": "o/r", "status": "completed"})
        assert state.status is IndexStatus.COMPLETED
        assert state.errors == []
        assert state.total_files is None

    def test_from_dict_rejects_unknown_status(self) -> None:
        with pytest.raises(ValueError):
            RepositoryIndexState.from_dict({"repository": "o/r", "status": "paused"})

    def test_dict_round_trip(self) -> None:
        state = RepositoryIndexState(
            "o/r",
            IndexStatus.IN_PROGRESS,
            total_files=4,
            errors=["Error processing a.ts: nope"],
            job_id="job",
            mode="diff",
            target_commit_sha="t",
            base_commit_sha="b",
            last_commit_sha="b",
        )
        assert RepositoryIndexState.from_dict(state.to_dict()) == state


class TestQuery:
    def test_blank_text_rejected(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            Query(repository="o/r", text="   ")

    def test_non_positive_limit_rejected(self) -> None:
        with pytest.raises(ValueError, match="limit"):
            Query(repository="o/r", text="auth", limit=0)

    def test_path_filter_is_optional(self) -> None:
        query = Query(repository="o/r", text="auth", path_filter=PathFilter("src/*.ts"))
        assert query.path_filter is not None
        assert query.limit is None


def test_search_result_set_to_dict() -> None:
    chunk = Chunk(repository="o/r", path="a.ts", content="x", metadata=_meta(2, 3))
    result_set = SearchResultSet(results=[SearchResult(chunk=chunk, score=0.75)])
    data = result_set.to_dict()
    assert data["totalResults"] == 1
    assert data["results"][0] == {
        "repository": "o/r",
        "path": "a.ts",
        "content": "x",
        "score": 0.75,
        "language": "typescript",
        "type": "function",
        "name": "foo",
        "startLine": 2,
        "endLine": 3,
        "lineCount": 2,
    }
