"""Data types for the indexing module.

Contains the request/response dataclasses and the events an indexing job
streams to its caller. Events serialize to tagged dicts (``{"type": ...}``)
so they can be written as JSON lines.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from kindling.domain.entities import IndexMode

LogLevel = Literal["info", "warning", "success", "error"]
IndexOutcome = Literal["completed", "paused", "failed", "up_to_date"]


@dataclass
class IndexRequest:
    """Request to index (or re-index) a repository.

    Attributes:
        repository: Repository identifier, e.g. "owner/name".
        mode: Full re-index, resume an interrupted run, or commit diff.
        branch: Branch to index; None uses the provider default.
    """

    repository: str
    mode: IndexMode = IndexMode.FULL
    branch: str | None = None

    def __post_init__(self) -> None:
        if not self.repository or not self.repository.strip():
            raise ValueError("repository cannot be empty")
        self.mode = IndexMode(self.mode)


@dataclass(frozen=True)
class LogEvent:
    """Human-readable status message."""

    message: str
    level: LogLevel = "info"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "log", "level": self.level, "message": self.message}


@dataclass(frozen=True)
class ProgressEvent:
    """Numeric progress after a file was handled.

    Attributes:
        processed_files: Files processed so far in this job.
        total_files: Files the job will process.
        progress: Percentage 0-100.
        current_path: The file just handled.
    """

    processed_files: int
    total_files: int
    progress: int
    current_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "progress",
            "processedFiles": self.processed_files,
            "totalFiles": self.total_files,
            "progress": self.progress,
            "currentPath": self.current_path,
        }


@dataclass(frozen=True)
class PausedEvent:
    """The time budget ran out; the checkpoint is saved and resumable.

    Attributes:
        resume_token: Job id to quote when resuming.
        processed_files: Files processed so far.
        total_files: Files the job will process.
    """

    resume_token: str
    processed_files: int
    total_files: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "paused",
            "resumeToken": self.resume_token,
            "processedFiles": self.processed_files,
            "totalFiles": self.total_files,
        }


@dataclass(frozen=True)
class CompletedEvent:
    """Summary of a finished job.

    Attributes:
        total_chunks: Chunks stored for the repository after the job.
        total_files: Files the job processed.
        duration_seconds: Wall-clock duration of this run.
        commit_sha: Commit the index now reflects.
        chunks_indexed: Chunks written by this run.
        files_failed: Files that failed. They are not marked processed.
        up_to_date: True when nothing needed indexing.
    """

    total_chunks: int
    total_files: int
    duration_seconds: float
    commit_sha: str | None
    chunks_indexed: int = 0
    files_failed: int = 0
    up_to_date: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "completed",
            "totalChunks": self.total_chunks,
            "totalFiles": self.total_files,
            "durationSeconds": round(self.duration_seconds, 3),
            "commitSha": self.commit_sha,
            "chunksIndexed": self.chunks_indexed,
            "filesFailed": self.files_failed,
            "upToDate": self.up_to_date,
        }


@dataclass(frozen=True)
class ErrorEvent:
    """The job failed during setup or on a fatal error."""

    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "error", "message": self.message}


IndexEvent = LogEvent | ProgressEvent | PausedEvent | CompletedEvent | ErrorEvent


@dataclass
class IndexResponse:
    """Response from an indexing run.

    Attributes:
        repository: Repository that was indexed.
        outcome: completed, paused (resumable), failed, or up_to_date.
        files_processed: Files processed by this run.
        total_files: Files in the job's work list.
        chunks_indexed: Chunks written by this run.
        total_chunks: Chunks stored after the run.
        commit_sha: Commit the index reflects (completed runs).
        resume_token: Job id when paused.
        errors: Error messages recorded during the run.
        success: Whether the run ended without failing.
        error: Error message if the run failed.
    """

    repository: str
    outcome: IndexOutcome
    files_processed: int = 0
    total_files: int = 0
    chunks_indexed: int = 0
    total_chunks: int = 0
    commit_sha: str | None = None
    resume_token: str | None = None
    errors: list[str] = field(default_factory=list)
    success: bool = True
    error: str | None = None

    @classmethod
    def create_error(cls, repository: str, message: str) -> "IndexResponse":
        """Create an error response with zero counts."""
        return cls(repository=repository, outcome="failed", success=False, error=message)
