"""GitHub REST API source provider.

Reads trees, blobs and commit comparisons with httpx. A token is optional for
public repositories; private repositories need one in the configured
environment variable.
"""

import logging
import os
from typing import Any
from urllib.parse import quote

import httpx

from kindling.core.use_case_errors import ConfigurationError
from kindling.domain.config import SourceConfig
from kindling.ports.source import (
    DiffUnavailableError,
    FileChange,
    FileChangeStatus,
    SourceProviderError,
)

logger = logging.getLogger(__name__)

# The compare endpoint lists at most this many files, all on the first page
COMPARE_FILE_LIMIT = 300

# GitHub compare statuses; "unchanged" entries are dropped
_STATUS_MAP: dict[str, FileChangeStatus] = {
    "added": "added",
    "copied": "added",
    "modified": "modified",
    "changed": "modified",
    "removed": "deleted",
    "renamed": "renamed",
}


class GitHubSourceProvider:
    """SourceProvider backed by api.github.com (or a GitHub Enterprise URL)."""

    def __init__(
        self,
        token: str | None = None,
        config: SourceConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            token: Personal access token, or None for anonymous access.
            config: API URL and token environment variable name.
            client: HTTP client to use; one is created if omitted.
        """
        self.config = config or SourceConfig()
        self._client = client or httpx.AsyncClient(timeout=30.0)
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_env(
        cls, config: SourceConfig | None = None, client: httpx.AsyncClient | None = None
    ) -> "GitHubSourceProvider":
        config = config or SourceConfig()
        token = os.environ.get(config.token_env) or None
        if token is None:
            logger.info(f"{config.token_env} not set, using anonymous GitHub access")
        return cls(token, config, client)

    async def _request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        accept: str | None = None,
    ) -> httpx.Response:
        url = f"{self.config.api_url.rstrip('/')}/{path}"
        headers = dict(self._headers)
        if accept:
            headers["Accept"] = accept
        try:
            response = await self._client.get(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            raise SourceProviderError(f"GitHub request failed: {e}") from e

        if response.status_code == 401:
            raise ConfigurationError(
                f"GitHub rejected the token (401). Check {self.config.token_env}."
            )
        if response.status_code == 404:
            raise SourceProviderError(f"GitHub resource not found: {path}")
        if response.status_code >= 400:
            raise SourceProviderError(
                f"GitHub returned {response.status_code} for {path}: {response.text[:200]}"
            )
        return response

    async def _json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request(path, params)
        try:
            return response.json()
        except ValueError as e:
            raise SourceProviderError(f"Invalid JSON from GitHub for {path}") from e

    async def get_latest_commit(self, repository: str, branch: str | None = None) -> str:
        branch = branch or self.config.branch
        if branch is None:
            repo = await self._json(f"repos/{repository}")
            branch = repo["default_branch"]
        commit = await self._json(f"repos/{repository}/commits/{quote(branch, safe='')}")
        return commit["sha"]

    async def list_files(self, repository: str, ref: str | None = None) -> list[str]:
        ref = ref or await self.get_latest_commit(repository)
        tree = await self._json(
            f"repos/{repository}/git/trees/{quote(ref, safe='')}", {"recursive": "1"}
        )
        if tree.get("truncated"):
            logger.warning(f"GitHub truncated the tree listing for {repository} at {ref[:12]}")
        return [entry["path"] for entry in tree.get("tree", []) if entry.get("type") == "blob"]

    async def get_file_content(
        self, repository: str, path: str, ref: str | None = None
    ) -> bytes:
        params = {"ref": ref} if ref else None
        response = await self._request(
            f"repos/{repository}/contents/{quote(path)}",
            params,
            accept="application/vnd.github.raw+json",
        )
        return response.content

    async def diff_commits(self, repository: str, base: str, head: str) -> list[FileChange]:
        # Only commits are paged, so one commit per page keeps the reply small
        comparison = await self._json(
            f"repos/{repository}/compare/{base}...{head}", {"per_page": 1, "page": 1}
        )
        files = comparison.get("files", [])
        if len(files) >= COMPARE_FILE_LIMIT:
            raise DiffUnavailableError(
                f"Comparison {base[:12]}...{head[:12]} in {repository} lists "
                f"{len(files)} files, GitHub's limit, so some changes may be missing"
            )
        changes: list[FileChange] = []
        for entry in files:
            status = _STATUS_MAP.get(entry.get("status", ""))
            if status is None:
                continue
            previous = entry.get("previous_filename") if status == "renamed" else None
            changes.append(FileChange(status, entry["filename"], previous))
        return changes

    async def aclose(self) -> None:
        await self._client.aclose()
