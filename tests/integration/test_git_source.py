"""Integration tests for GitSourceProvider against real git repositories."""

from pathlib import Path

import pytest

from kindling.adapters.kv.memory_store import MemoryKeyValueStore
from kindling.adapters.parsers.regex_boundary_detector import select_detector
from kindling.adapters.source.git_source import GitSourceProvider
from kindling.core.chunking.semantic_chunker import SemanticChunker
from kindling.core.embedding.embedding_client import EmbeddingClient
from kindling.core.indexing.chunk_store import ChunkStore
from kindling.core.indexing.index_job import IndexingJob
from kindling.core.indexing.types import IndexRequest
from kindling.domain.config import EmbeddingConfig
from kindling.domain.entities import IndexMode
from kindling.ports.source import FileChange, SourceProviderError
from tests.conftest import SAMPLE_GO, SAMPLE_TS, create_git_repo, git_add_and_commit
from tests.helpers.fakes import FakeEmbeddingProvider

pytestmark = pytest.mark.slow

REPO = "local/sample"


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    return create_git_repo(
        tmp_path / "sample",
        {"src/user.ts": SAMPLE_TS, "cmd/server.go": SAMPLE_GO, "docs/notes.md": "# Notes\n"},
    )


async def test_latest_commit_and_listing(repo: Path) -> None:
    source = GitSourceProvider(repo)

    head = await source.get_latest_commit(REPO)

    assert len(head) == 40
    assert sorted(await source.list_files(REPO, head)) == [
        "cmd/server.go",
        "docs/notes.md",
        "src/user.ts",
    ]
    assert await source.get_file_content(REPO, "src/user.ts", head) == SAMPLE_TS.encode()


async def test_diff_reports_changes(repo: Path) -> None:
    source = GitSourceProvider(repo)
    base = await source.get_latest_commit(REPO)

    (repo / "src" / "user.ts").write_text(SAMPLE_TS + "\nexport const added = 1;\n")
    (repo / "docs" / "notes.md").unlink()
    (repo / "cmd" / "server.go").rename(repo / "cmd" / "main.go")
    head = git_add_and_commit(repo, "Change things")

    changes = await source.diff_commits(REPO, base, head)

    assert sorted(changes, key=lambda c: c.path) == [
        FileChange("renamed", "cmd/main.go", "cmd/server.go"),
        FileChange("deleted", "docs/notes.md"),
        FileChange("modified", "src/user.ts"),
    ]


async def test_reading_old_revision(repo: Path) -> None:
    source = GitSourceProvider(repo)
    base = await source.get_latest_commit(REPO)
    (repo / "src" / "user.ts").write_text("export const replaced = true;\n")
    git_add_and_commit(repo, "Replace")

    assert await source.get_file_content(REPO, "src/user.ts", base) == SAMPLE_TS.encode()


async def test_errors(tmp_path: Path, repo: Path) -> None:
    with pytest.raises(SourceProviderError, match="Not a git repository"):
        GitSourceProvider(tmp_path / "nowhere")

    source = GitSourceProvider(repo)
    with pytest.raises(SourceProviderError, match="Failed to read 'missing.ts'"):
        await source.get_file_content(REPO, "missing.ts")
    with pytest.raises(SourceProviderError, match="Failed to resolve 'no-such-branch'"):
        await source.get_latest_commit(REPO, "no-such-branch")


async def test_repository_without_commits(tmp_path: Path) -> None:
    source = GitSourceProvider(create_git_repo(tmp_path / "empty"))
    with pytest.raises(SourceProviderError, match="no commits yet"):
        await source.get_latest_commit(REPO)


async def test_full_then_diff_index(repo: Path) -> None:
    source = GitSourceProvider(repo)
    store = ChunkStore(MemoryKeyValueStore())
    provider = FakeEmbeddingProvider(dimensions=8)
    job = IndexingJob(
        source,
        SemanticChunker(select_detector),
        EmbeddingClient(provider, EmbeddingConfig(dimensions=8)),
        store,
    )

    full = await job.execute(IndexRequest(REPO))
    assert full.outcome == "completed"
    assert full.total_chunks == 7

    (repo / "src" / "user.ts").write_text("export const only = 1;\n")
    head = git_add_and_commit(repo, "Shrink user.ts")
    diff = await job.execute(IndexRequest(REPO, mode=IndexMode.DIFF))

    assert diff.outcome == "completed"
    assert diff.commit_sha == head
    assert diff.total_files == 1
    assert diff.total_chunks == 5


async def test_diff_with_non_ascii_path(tmp_path: Path) -> None:
    repo = create_git_repo(
        tmp_path / "accented",
        {"src/café.ts": "export function a() {\n  return 1;\n}\n"},
    )
    source = GitSourceProvider(repo)
    store = ChunkStore(MemoryKeyValueStore())
    job = IndexingJob(
        source,
        SemanticChunker(select_detector),
        EmbeddingClient(FakeEmbeddingProvider(dimensions=8), EmbeddingConfig(dimensions=8)),
        store,
    )
    await job.execute(IndexRequest(REPO))
    base = await source.get_latest_commit(REPO)

    (repo / "src" / "café.ts").write_text("export function a() {\n  return 2;\n}\n")
    head = git_add_and_commit(repo, "Change café")

    assert await source.diff_commits(REPO, base, head) == [
        FileChange("modified", "src/café.ts")
    ]

    diff = await job.execute(IndexRequest(REPO, mode=IndexMode.DIFF))

    assert diff.outcome == "completed"
    assert diff.commit_sha == head
    page = await store.list_chunks_page(REPO, 0, 10)
    assert [c.path for c in page.chunks] == ["src/café.ts"]
    assert [c.content for c in page.chunks] == ["export function a() {\n  return 2;\n}"]
