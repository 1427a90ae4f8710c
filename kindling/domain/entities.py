"""Domain entities and value objects.

Core domain models representing the business concepts of Kindling.
These are pure Python dataclasses with no dependencies on infrastructure.

Stored records use the camelCase JSON layout shared with other readers of the
same key-value store, so ``to_dict``/``from_dict`` translate between that wire
shape and the snake_case attributes used in Python.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import blake3

from kindling.domain.value_objects import PathFilter


class ChunkType(str, Enum):
    """Kind of code unit a chunk represents."""

    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    BLOCK = "block"
    FILE = "file"


class IndexStatus(str, Enum):
    """Lifecycle state of a repository's indexing checkpoint."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class IndexMode(str, Enum):
    """How an indexing run selects the files it processes.

    - FULL: clear the repository's chunks and index every indexable file
    - RESUME: continue an interrupted run, skipping already-processed files
    - DIFF: re-index only files changed since the last completed commit
    """

    FULL = "full"
    RESUME = "resume"
    DIFF = "diff"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ChunkMetadata:
    """Location and classification of a chunk inside its file.

    Attributes:
        language: Language name (e.g. "typescript", "python", "plaintext").
        type: Kind of code unit.
        start_line: Starting line number (1-indexed).
        end_line: Ending line number (inclusive).
        name: Declaration name, "Part N" for windows, or None.

    Raises:
        ValueError: If line numbers are not positive or are out of order.
    """

    language: str
    type: ChunkType
    start_line: int
    end_line: int
    name: str | None = None

    def __post_init__(self) -> None:
        """Validate line range after initialization."""
        if self.start_line < 1:
            raise ValueError(f"start_line must be >= 1, got {self.start_line}")
        if self.end_line < self.start_line:
            raise ValueError(
                f"end_line ({self.end_line}) must be >= start_line ({self.start_line})"
            )

    @property
    def line_count(self) -> int:
        """Number of lines covered, always end_line - start_line + 1."""
        return self.end_line - self.start_line + 1

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "language": self.language,
            "type": self.type.value,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "lineCount": self.line_count,
        }
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChunkMetadata:
        """Build metadata from its wire dict.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field has an invalid value.
        """
        return cls(
            language=str(data["language"]),
            type=ChunkType(data["type"]),
            start_line=int(data["startLine"]),
            end_line=int(data["endLine"]),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class Chunk:
    """A chunk of code with metadata and an optional embedding.

    Identity is (repository, path, start_line, end_line); ``id`` is a blake3
    digest over those fields, so re-chunking unchanged content yields the same id.

    Attributes:
        repository: Repository identifier, e.g. "owner/name".
        path: File path relative to the repository root.
        content: The chunk text.
        metadata: Language, type, name and line range.
        embedding: Embedding vector, or None before embedding.
    """

    repository: str
    path: str
    content: str
    metadata: ChunkMetadata
    embedding: tuple[float, ...] | None = None

    def __post_init__(self) -> None:
        if not self.repository:
            raise ValueError("Chunk repository cannot be empty")
        if not self.path:
            raise ValueError("Chunk path cannot be empty")

    @property
    def id(self) -> str:
        return self.compute_id(
            self.repository, self.path, self.metadata.start_line, self.metadata.end_line
        )

    @staticmethod
    def compute_id(repository: str, path: str, start_line: int, end_line: int) -> str:
        """Compute deterministic chunk ID.

        Args:
            repository: Repository identifier.
            path: File path relative to the repository root.
            start_line: Starting line number.
            end_line: Ending line number.

        Returns:
            blake3 hash (hex string) of the identity fields.
        """
        key = f"{repository}:{path}:{start_line}:{end_line}"
        return blake3.blake3(key.encode("utf-8")).hexdigest()

    def with_embedding(self, embedding: list[float]) -> Chunk:
        """Return a copy of this chunk carrying the given embedding."""
        return replace(self, embedding=tuple(float(v) for v in embedding))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "repository": self.repository,
            "path": self.path,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
        }
        if self.embedding is not None:
            data["embedding"] = list(self.embedding)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chunk:
        """Build a chunk from its wire dict.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field has an invalid value.
            TypeError: If a field has the wrong shape.
        """
        raw_embedding = data.get("embedding")
        embedding = None
        if raw_embedding is not None:
            if not isinstance(raw_embedding, list):
                raise TypeError("embedding must be a list of numbers")
            embedding = tuple(float(v) for v in raw_embedding)
        content = data["content"]
        if not isinstance(content, str):
            raise TypeError("content must be a string")
        return cls(
            repository=str(data["repository"]),
            path=str(data["path"]),
            content=content,
            metadata=ChunkMetadata.from_dict(data["metadata"]),
            embedding=embedding,
        )


@dataclass
class RepositoryIndexState:
    """Durable, resumable progress record for one repository.

    Overwritten in place as a job runs. Timestamps are epoch milliseconds.

    Attributes:
        repository: Repository identifier.
        status: Lifecycle state.
        started_at: When the owning job started.
        last_processed_at: Last time the record was written.
        processed_files: Advisory counter of processed files.
        total_files: Number of files the job will process, once known.
        current_path: File being processed at the last write.
        errors: Per-file and setup error messages, in order.
        progress: Percentage 0-100.
        last_commit_sha: Commit the completed index reflects.
        job_id: Resume token of the owning job.
        mode: Kind of run that owns the checkpoint ("full" or "diff").
        target_commit_sha: Head commit observed when the job started.
        base_commit_sha: Diff base commit, for diff runs.
    """

    repository: str
    status: IndexStatus
    started_at: int = field(default_factory=now_ms)
    last_processed_at: int = field(default_factory=now_ms)
    processed_files: int = 0
    total_files: int | None = None
    current_path: str | None = None
    errors: list[str] = field(default_factory=list)
    progress: int = 0
    last_commit_sha: str | None = None
    job_id: str | None = None
    mode: str | None = None
    target_commit_sha: str | None = None
    base_commit_sha: str | None = None

    def update_progress(self, processed_files: int) -> None:
        """Set the processed counter and derive the percentage from it."""
        self.processed_files = processed_files
        self.last_processed_at = now_ms()
        if self.total_files:
            self.progress = min(100, processed_files * 100 // self.total_files)
        elif self.total_files == 0:
            self.progress = 100

    def mark_completed(self, commit_sha: str) -> None:
        self.status = IndexStatus.COMPLETED
        self.progress = 100
        self.last_commit_sha = commit_sha
        self.current_path = None
        self.last_processed_at = now_ms()

    def mark_failed(self, message: str) -> None:
        self.status = IndexStatus.FAILED
        self.errors.append(message)
        self.last_processed_at = now_ms()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "repository": self.repository,
            "status": self.status.value,
            "startedAt": self.started_at,
            "lastProcessedAt": self.last_processed_at,
            "processedFiles": self.processed_files,
            "errors": list(self.errors),
            "progress": self.progress,
        }
        optional = {
            "totalFiles": self.total_files,
            "currentPath": self.current_path,
            "lastCommitSha": self.last_commit_sha,
            "jobId": self.job_id,
            "mode": self.mode,
            "targetCommitSha": self.target_commit_sha,
            "baseCommitSha": self.base_commit_sha,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepositoryIndexState:
        """Build a checkpoint from its wire dict.

        Only ``repository`` and ``status`` are required; other fields default.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If status is not a known value.
        """
        total = data.get("totalFiles")
        errors = data.get("errors") or []
        return cls(
            repository=str(data["repository"]),
            status=IndexStatus(data["status"]),
            started_at=int(data.get("startedAt") or 0),
            last_processed_at=int(data.get("lastProcessedAt") or 0),
            processed_files=int(data.get("processedFiles") or 0),
            total_files=int(total) if total is not None else None,
            current_path=data.get("currentPath"),
            errors=[str(e) for e in errors],
            progress=int(data.get("progress") or 0),
            last_commit_sha=data.get("lastCommitSha"),
            job_id=data.get("jobId"),
            mode=data.get("mode"),
            target_commit_sha=data.get("targetCommitSha"),
            base_commit_sha=data.get("baseCommitSha"),
        )


@dataclass(frozen=True)
class Query:
    """Search query with optional filters.

    Attributes:
        repository: Repository to search.
        text: Natural language or code query text.
        limit: Maximum number of results; None selects the configured default.
        path_filter: Optional glob restricting which file paths are scored.
    """

    repository: str
    text: str
    limit: int | None = None
    path_filter: PathFilter | None = None

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Query text cannot be empty")
        if self.limit is not None and self.limit <= 0:
            raise ValueError(f"limit must be positive, got {self.limit}")


@dataclass(frozen=True)
class SearchResult:
    """A scored chunk returned from search.

    Attributes:
        chunk: The matched chunk.
        score: Cosine similarity against the query, in [-1, 1].
    """

    chunk: Chunk
    score: float

    def to_dict(self) -> dict[str, Any]:
        meta = self.chunk.metadata
        return {
            "repository": self.chunk.repository,
            "path": self.chunk.path,
            "content": self.chunk.content,
            "score": self.score,
            "language": meta.language,
            "type": meta.type.value,
            "name": meta.name,
            "startLine": meta.start_line,
            "endLine": meta.end_line,
            "lineCount": meta.line_count,
        }


@dataclass
class SearchResultSet:
    """Ordered results of one search plus scan statistics.

    Attributes:
        results: Results ordered by descending score.
        total_results: Number of results returned.
        scanned_chunks: Stored entries examined.
        skipped_chunks: Entries skipped as corrupt, unembedded or mismatched.
    """

    results: list[SearchResult] = field(default_factory=list)
    scanned_chunks: int = 0
    skipped_chunks: int = 0

    @property
    def total_results(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "totalResults": self.total_results,
        }
