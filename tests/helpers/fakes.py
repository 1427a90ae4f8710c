"""In-memory fakes for the source and embedding ports."""

import re
import zlib
from dataclasses import dataclass, field

from kindling.ports.embedders import EmbeddingProviderError
from kindling.ports.source import DiffUnavailableError, FileChange, SourceProviderError

_WORD = re.compile(r"\w+")


def bag_of_words(text: str, dimensions: int) -> list[float]:
    """Deterministic embedding: word counts hashed into ``dimensions`` buckets."""
    vector = [0.0] * dimensions
    for word in _WORD.findall(text.lower()):
        vector[zlib.crc32(word.encode()) % dimensions] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


class FakeEmbeddingProvider:
    """EmbeddingProvider returning bag-of-words vectors.

    Attributes:
        calls: Every batch passed to embed, in order.
        overrides: Exact texts mapped to fixed vectors.
        fail_on: Raise EmbeddingProviderError for batches containing this substring.
        wrong_dimensions: If set, every vector has this length instead.
    """

    def __init__(self, dimensions: int = 8, model: str = "fake-embed") -> None:
        self.dimensions = dimensions
        self._model = model
        self.calls: list[list[str]] = []
        self.overrides: dict[str, list[float]] = {}
        self.fail_on: str | None = None
        self.wrong_dimensions: int | None = None
        self.closed = False

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, texts: list[str], dimensions: int) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail_on is not None and any(self.fail_on in t for t in texts):
            raise EmbeddingProviderError(f"provider refused text containing {self.fail_on!r}")
        size = self.wrong_dimensions or dimensions
        return [self.overrides.get(t) or bag_of_words(t, size) for t in texts]

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class _Commit:
    sha: str
    files: dict[str, str]
    renames: dict[str, str] = field(default_factory=dict)


class FakeSourceProvider:
    """SourceProvider over scripted commit snapshots.

    Each ``commit`` call builds a new snapshot from the previous one; a None
    content deletes the file. Renames are recorded so diffs report them.

    Attributes:
        reads: Paths passed to get_file_content, in order.
        fail_paths: Paths whose content reads raise SourceProviderError.
        fail_latest: Raised by get_latest_commit when set.
        diff_unavailable: Make diff_commits raise DiffUnavailableError.
    """

    def __init__(self) -> None:
        self._history: dict[str, list[_Commit]] = {}
        self.reads: list[str] = []
        self.fail_paths: set[str] = set()
        self.fail_latest: Exception | None = None
        self.diff_unavailable = False
        self.closed = False

    def commit(
        self,
        repository: str,
        files: dict[str, str | None],
        renames: dict[str, str] | None = None,
    ) -> str:
        """Record a commit on top of the previous one and return its SHA."""
        history = self._history.setdefault(repository, [])
        snapshot = dict(history[-1].files) if history else {}
        for old, new in (renames or {}).items():
            snapshot[new] = snapshot.pop(old)
        for path, content in files.items():
            if content is None:
                snapshot.pop(path, None)
            else:
                snapshot[path] = content
        sha = f"{len(history) + 1:040x}"
        history.append(_Commit(sha, snapshot, dict(renames or {})))
        return sha

    def _find(self, repository: str, ref: str | None) -> _Commit:
        history = self._history.get(repository)
        if not history:
            raise SourceProviderError(f"Unknown repository {repository}")
        if ref is None:
            return history[-1]
        for commit in history:
            if commit.sha == ref:
                return commit
        raise SourceProviderError(f"Unknown ref {ref}")

    async def get_latest_commit(self, repository: str, branch: str | None = None) -> str:
        if self.fail_latest is not None:
            raise self.fail_latest
        return self._find(repository, None).sha

    async def list_files(self, repository: str, ref: str | None = None) -> list[str]:
        return list(self._find(repository, ref).files)

    async def get_file_content(
        self, repository: str, path: str, ref: str | None = None
    ) -> bytes:
        self.reads.append(path)
        if path in self.fail_paths:
            raise SourceProviderError(f"cannot read {path}")
        files = self._find(repository, ref).files
        if path not in files:
            raise SourceProviderError(f"{path} not found")
        return files[path].encode("utf-8")

    async def diff_commits(self, repository: str, base: str, head: str) -> list[FileChange]:
        if self.diff_unavailable:
            raise DiffUnavailableError(f"too many changes between {base[:12]} and {head[:12]}")
        history = self._history[repository]
        shas = [c.sha for c in history]
        before = self._find(repository, base).files
        after = self._find(repository, head).files

        renames: dict[str, str] = {}
        for commit in history[shas.index(base) + 1 : shas.index(head) + 1]:
            renames.update(commit.renames)
        renamed_to = {
            new: old for old, new in renames.items() if old not in after and new in after
        }

        changes = []
        for path in sorted(set(before) | set(after)):
            if path in renamed_to:
                changes.append(FileChange("renamed", path, renamed_to[path]))
            elif path in renamed_to.values():
                continue
            elif path not in before:
                changes.append(FileChange("added", path))
            elif path not in after:
                changes.append(FileChange("deleted", path))
            elif before[path] != after[path]:
                changes.append(FileChange("modified", path))
        return changes

    async def aclose(self) -> None:
        self.closed = True
