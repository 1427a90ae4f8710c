"""Local git source provider using subprocess git commands.

Serves one working copy. The repository identifier passed to each call only
labels log messages and checkpoints; every command runs against ``repo_root``.
"""

import asyncio
import logging
import subprocess
from pathlib import Path

from kindling.ports.source import FileChange, FileChangeStatus, SourceProviderError

logger = logging.getLogger(__name__)

# Maps exact diff-tree status codes to (status, path_index)
_EXACT_STATUS_MAP: dict[str, tuple[FileChangeStatus, int]] = {
    "A": ("added", 1),
    "D": ("deleted", 1),
    "M": ("modified", 1),
    "T": ("modified", 1),  # Type change (e.g., file -> symlink)
}

# Codes with a similarity score appended (R100, C050): (status, new path index)
_PREFIX_STATUS_MAP: dict[str, tuple[FileChangeStatus, int]] = {
    "R": ("renamed", 2),
    "C": ("added", 2),
}


def _split_status_records(output: bytes) -> list[list[str]]:
    """Group ``git diff-tree -z --name-status`` output into per-change records.

    Each record is a status code followed by one path, or by the old and new
    paths for renames and copies. Paths are raw, never C-quoted.
    """
    fields = [f for f in output.decode("utf-8", errors="replace").split("\0") if f]
    records = []
    i = 0
    while i < len(fields):
        path_count = 2 if fields[i][:1] in _PREFIX_STATUS_MAP else 1
        records.append(fields[i : i + 1 + path_count])
        i += 1 + path_count
    return records


def _parse_status_line(parts: list[str]) -> FileChange | None:
    """Parse one name-status record: a status code followed by its paths.

    Returns:
        FileChange, or None for unknown status codes.
    """
    status_code = parts[0]

    if status_code in _EXACT_STATUS_MAP:
        status, idx = _EXACT_STATUS_MAP[status_code]
        return FileChange(status, parts[idx])

    for prefix, (status, preferred_idx) in _PREFIX_STATUS_MAP.items():
        if status_code.startswith(prefix):
            if len(parts) <= preferred_idx:
                return FileChange(status, parts[1])
            previous = parts[1] if status == "renamed" else None
            return FileChange(status, parts[preferred_idx], previous)

    return None


class GitSourceProvider:
    """SourceProvider reading a local clone with the git CLI."""

    def __init__(self, repo_root: Path) -> None:
        """Initialize git source.

        Args:
            repo_root: Path inside a git working copy.

        Raises:
            SourceProviderError: If repo_root is not inside a git repository.
        """
        self.repo_root = repo_root.resolve()
        try:
            self._run_git(["rev-parse", "--git-dir"])
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise SourceProviderError(f"Not a git repository: {self.repo_root}") from e

    def _run_git(self, args: list[str]) -> subprocess.CompletedProcess[bytes]:
        """Run a git command in the repository, raising on non-zero exit."""
        cmd = ["git", "-C", str(self.repo_root)] + args
        return subprocess.run(cmd, capture_output=True, check=True)

    async def _git(self, args: list[str], context: str) -> bytes:
        try:
            result = await asyncio.to_thread(self._run_git, args)
        except subprocess.CalledProcessError as e:
            raise SourceProviderError(self._format_git_error(e, context)) from e
        return result.stdout

    @staticmethod
    def _format_git_error(error: subprocess.CalledProcessError, context: str) -> str:
        """Format a git failure with exit code and stderr."""
        stderr = error.stderr.decode("utf-8", errors="replace").strip() if error.stderr else ""
        msg = f"{context} (git exit code {error.returncode})"
        if stderr:
            msg += f": {stderr}"
        else:
            msg += " (no error output from git)"
        return msg

    async def get_latest_commit(self, repository: str, branch: str | None = None) -> str:
        ref = branch or "HEAD"
        try:
            result = await asyncio.to_thread(
                self._run_git, ["rev-parse", "--verify", f"{ref}^{{commit}}"]
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
            if ref == "HEAD" and ("unknown revision" in stderr or "Needed a single" in stderr):
                raise SourceProviderError(
                    f"Repository at {self.repo_root} has no commits yet. "
                    f"Make an initial commit before indexing."
                ) from e
            raise SourceProviderError(
                self._format_git_error(e, f"Failed to resolve '{ref}' in {repository}")
            ) from e
        return result.stdout.decode("utf-8").strip()

    async def list_files(self, repository: str, ref: str | None = None) -> list[str]:
        ref = ref or "HEAD"
        output = await self._git(
            ["ls-tree", "-r", "--name-only", "-z", ref],
            f"Failed to list files at '{ref}' in {repository}",
        )
        return [p for p in output.decode("utf-8", errors="replace").split("\0") if p]

    async def get_file_content(
        self, repository: str, path: str, ref: str | None = None
    ) -> bytes:
        ref = ref or "HEAD"
        return await self._git(
            ["show", f"{ref}:{path}"], f"Failed to read '{path}' at '{ref}' in {repository}"
        )

    async def diff_commits(self, repository: str, base: str, head: str) -> list[FileChange]:
        output = await self._git(
            ["diff-tree", "-r", "-z", "--name-status", "-M", base, head],
            f"Failed to diff {base[:12]}..{head[:12]} in {repository}",
        )
        changes = []
        for record in _split_status_records(output):
            change = _parse_status_line(record)
            if change is None:
                logger.warning(f"Unknown git status record: {record!r}")
                continue
            changes.append(change)
        return changes

    async def aclose(self) -> None:
        return None
