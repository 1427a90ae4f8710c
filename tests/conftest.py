"""Pytest configuration and shared fixtures."""

import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from kindling.adapters.kv.memory_store import MemoryKeyValueStore
from kindling.adapters.parsers.regex_boundary_detector import select_detector
from kindling.core.chunking.semantic_chunker import SemanticChunker
from kindling.core.embedding.embedding_client import EmbeddingClient
from kindling.core.indexing.chunk_store import ChunkStore
from kindling.core.indexing.index_job import IndexingJob
from kindling.domain.config import EmbeddingConfig, IndexConfig
from kindling.domain.entities import Chunk, ChunkMetadata, ChunkType
from tests.helpers.fakes import FakeEmbeddingProvider, FakeSourceProvider

# ============================================================================
# Git Repository Helpers
# ============================================================================
# These helpers consolidate git setup code to avoid duplication across tests.


def init_git_repo(
    path: Path,
    user_name: str = "Test User",
    user_email: str = "test@example.com",
) -> None:
    """Initialize a git repository with user configuration.

    Args:
        path: Directory to initialize as a git repository.
        user_name: Git user.name configuration value.
        user_email: Git user.email configuration value.

    Raises:
        subprocess.CalledProcessError: If git commands fail.
    """
    for args in (
        ["git", "init"],
        ["git", "config", "user.name", user_name],
        ["git", "config", "user.email", user_email],
    ):
        subprocess.run(args, cwd=path, check=True, capture_output=True, timeout=5)


def git_add_and_commit(path: Path, message: str = "Initial commit") -> str:
    """Stage everything, commit, and return the new commit SHA."""
    subprocess.run(["git", "add", "-A"], cwd=path, check=True, capture_output=True, timeout=5)
    subprocess.run(
        ["git", "commit", "-m", message],
        cwd=path,
        check=True,
        capture_output=True,
        timeout=5,
    )
    result = subprocess.run(
        ["git", "rev-parse", "HEAD"],
        cwd=path,
        check=True,
        capture_output=True,
        timeout=5,
    )
    return result.stdout.decode().strip()


def create_test_files(path: Path, files: dict[str, str]) -> None:
    """Create multiple files in a directory.

    Args:
        path: Base directory for file creation.
        files: Mapping of relative file paths to file contents.
               Parent directories are created automatically.
    """
    for file_path, content in files.items():
        full_path = path / file_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content)


def create_git_repo(path: Path, files: dict[str, str] | None = None) -> Path:
    """Create a git repository, committing ``files`` if given."""
    path.mkdir(parents=True, exist_ok=True)
    init_git_repo(path)
    if files:
        create_test_files(path, files)
        git_add_and_commit(path)
    return path


# ============================================================================
# Sample Sources
# ============================================================================

SAMPLE_TS = """\
import { db } from "./db";

export class UserService {
  constructor(private readonly repo: Repo) {}

  async findUser(id: string) {
    return this.repo.get(id);
  }
}

export function formatName(first: string, last: string): string {
  return `${first} ${last}`;
}
"""

SAMPLE_GO = """\
package main

type Server struct {
\taddr string
}

func (s *Server) Start() error {
\treturn nil
}

func main() {
\ts := &Server{addr: ":8080"}
\ts.Start()
}
"""


@pytest.fixture
def sample_files() -> dict[str, str]:
    """A small multi-language repository snapshot."""
    return {
        "src/user.ts": SAMPLE_TS,
        "cmd/server.go": SAMPLE_GO,
        "scripts/build.py": "def build():\n    return 'ok'\n",
        "README.md": "# Readme\n",
        "node_modules/lib/index.js": "function ignored() {}\n",
    }


# ============================================================================
# Pipeline Fixtures
# ============================================================================


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv: MemoryKeyValueStore) -> ChunkStore:
    return ChunkStore(kv)


@pytest.fixture
def embedding_config() -> EmbeddingConfig:
    return EmbeddingConfig(dimensions=8, batch_size=4)


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider(dimensions=8)


@pytest.fixture
def embedding_client(
    fake_provider: FakeEmbeddingProvider, embedding_config: EmbeddingConfig
) -> EmbeddingClient:
    return EmbeddingClient(fake_provider, embedding_config)


@pytest.fixture
def index_config() -> IndexConfig:
    return IndexConfig(max_lines_per_chunk=50, large_file_threshold=500, checkpoint_interval=2)


@pytest.fixture
def chunker(index_config: IndexConfig) -> SemanticChunker:
    return SemanticChunker(select_detector, index_config)


@pytest.fixture
def source(sample_files: dict[str, str]) -> FakeSourceProvider:
    fake = FakeSourceProvider()
    fake.commit("owner/repo", sample_files)
    return fake


@pytest.fixture
def job(
    source: FakeSourceProvider,
    chunker: SemanticChunker,
    embedding_client: EmbeddingClient,
    store: ChunkStore,
    index_config: IndexConfig,
) -> IndexingJob:
    return IndexingJob(source, chunker, embedding_client, store, index_config)


# ============================================================================
# Chunk Factory Fixture
# ============================================================================


@pytest.fixture
def chunk_factory() -> Callable[..., Chunk]:
    """Factory fixture for creating test chunks with customizable values.

    Example:
        chunk = chunk_factory(path="src/a.ts", start_line=10, embedding=[1.0, 0.0])
    """

    def _create_chunk(
        repository: str = "owner/repo",
        path: str = "src/example.ts",
        content: str = "function example() {}",
        language: str = "typescript",
        chunk_type: ChunkType = ChunkType.FUNCTION,
        start_line: int = 1,
        end_line: int | None = None,
        name: str | None = "example",
        embedding: list[float] | None = None,
    ) -> Chunk:
        return Chunk(
            repository=repository,
            path=path,
            content=content,
            metadata=ChunkMetadata(
                language=language,
                type=chunk_type,
                start_line=start_line,
                end_line=end_line if end_line is not None else start_line,
                name=name,
            ),
            embedding=tuple(embedding) if embedding is not None else None,
        )

    return _create_chunk
