"""Source provider port for reading repository contents and history."""

from dataclasses import dataclass
from typing import Literal, Protocol

FileChangeStatus = Literal["added", "modified", "renamed", "deleted"]


class SourceProviderError(RuntimeError):
    """Raised when the source provider cannot satisfy a request."""


class DiffUnavailableError(SourceProviderError):
    """Raised when the provider cannot list every change between two commits."""


@dataclass(frozen=True)
class FileChange:
    """A file changed between two commits.

    Attributes:
        status: How the file changed.
        path: Repository-relative path (the new path for renames).
        previous_path: Old path for renames, None otherwise.
    """

    status: FileChangeStatus
    path: str
    previous_path: str | None = None


class SourceProvider(Protocol):
    """Port for repository access (GitHub API, local git, ...).

    Repositories are identified by "owner/name" strings. Paths are
    repository-relative and use forward slashes.
    """

    async def get_latest_commit(self, repository: str, branch: str | None = None) -> str:
        """Return the head commit SHA of a branch (default branch if None).

        Raises:
            SourceProviderError: If the repository or branch cannot be read.
        """
        ...

    async def list_files(self, repository: str, ref: str | None = None) -> list[str]:
        """List every file path in the tree at ``ref`` (head if None).

        Raises:
            SourceProviderError: If the tree cannot be listed.
        """
        ...

    async def get_file_content(
        self, repository: str, path: str, ref: str | None = None
    ) -> bytes:
        """Read one file's raw bytes at ``ref``.

        Raises:
            SourceProviderError: If the file cannot be read.
        """
        ...

    async def diff_commits(self, repository: str, base: str, head: str) -> list[FileChange]:
        """List files changed between two commits, deletions included.

        Raises:
            SourceProviderError: If either commit is unknown.
            DiffUnavailableError: If the change list would be incomplete.
        """
        ...

    async def aclose(self) -> None:
        """Release network or process resources."""
        ...
