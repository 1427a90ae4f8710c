"""Config domain models for kindling.

Configuration is stored in .kindling/config.toml (with a global fallback) and
represents user preferences for indexing, embedding, search, storage and
source access. This module defines the domain models that represent validated
configuration state. Secrets are never stored here; config only names the
environment variables that hold them.
"""

from dataclasses import dataclass, field
from typing import Literal

DEFAULT_EXTENSIONS = [
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".vue",
    ".py",
    ".rb",
    ".java",
    ".php",
    ".go",
    ".rs",
    ".c",
    ".cpp",
    ".cs",
    ".swift",
    ".kt",
    ".scala",
    ".sh",
    ".pl",
    ".pm",
]

DEFAULT_EXCLUDED_DIRS = [
    "node_modules",
    "dist",
    "build",
    ".git",
    "vendor",
    "__pycache__",
    "coverage",
    "target",
    "bin",
    "obj",
    ".idea",
    ".vscode",
]

DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class IndexConfig:
    """Configuration for chunking and indexing behavior.

    Attributes:
        max_lines_per_chunk: Upper bound on lines in any emitted chunk.
        large_file_threshold: Files with more lines than this skip boundary
            detection and are windowed directly.
        checkpoint_interval: Persist the checkpoint every N processed files.
        time_budget_seconds: Hard wall-clock limit for one indexing run.
        safety_margin_seconds: Stop this long before the hard limit.
        extensions: File extensions eligible for indexing.
        excluded_dirs: Directory names whose contents are never indexed.
        in_progress_ttl_seconds: Expiry of in-progress and failed checkpoints.
        completed_ttl_seconds: Expiry of completed checkpoints.

    Raises:
        ValueError: If any limit is not positive or the margin exceeds the budget.
    """

    max_lines_per_chunk: int = 300
    large_file_threshold: int = 3000
    checkpoint_interval: int = 10
    time_budget_seconds: float = 780
    safety_margin_seconds: float = 90
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    excluded_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    in_progress_ttl_seconds: int = 7 * DAY_SECONDS
    completed_ttl_seconds: int = 30 * DAY_SECONDS

    def __post_init__(self) -> None:
        """Validate index config after initialization."""
        if self.max_lines_per_chunk <= 0:
            raise ValueError(
                f"max_lines_per_chunk must be positive, got {self.max_lines_per_chunk}"
            )
        if self.large_file_threshold < self.max_lines_per_chunk:
            raise ValueError(
                f"large_file_threshold ({self.large_file_threshold}) must be >= "
                f"max_lines_per_chunk ({self.max_lines_per_chunk})"
            )
        if self.checkpoint_interval <= 0:
            raise ValueError(
                f"checkpoint_interval must be positive, got {self.checkpoint_interval}"
            )
        if self.time_budget_seconds <= 0:
            raise ValueError(
                f"time_budget_seconds must be positive, got {self.time_budget_seconds}"
            )
        if not 0 <= self.safety_margin_seconds < self.time_budget_seconds:
            raise ValueError(
                f"safety_margin_seconds ({self.safety_margin_seconds}) must be in "
                f"[0, time_budget_seconds ({self.time_budget_seconds}))"
            )
        if self.in_progress_ttl_seconds <= 0 or self.completed_ttl_seconds <= 0:
            raise ValueError("checkpoint TTLs must be positive")


@dataclass(frozen=True)
class EmbeddingConfig:
    """Configuration for the remote embedding provider.

    Attributes:
        model: Provider model name.
        dimensions: Length of every embedding vector.
        batch_size: Texts per provider request.
        max_tokens_per_chunk: Estimated-token budget per text sent.
        chars_per_token: Characters assumed per token when estimating.
        base_url: OpenAI-compatible API base URL.
        api_key_env: Environment variable holding the API key.
        timeout_seconds: HTTP timeout per request.

    Raises:
        ValueError: If any numeric setting is not positive.
    """

    model: str = "text-embedding-3-small"
    dimensions: int = 256
    batch_size: int = 8
    max_tokens_per_chunk: int = 6000
    chars_per_token: int = 4
    base_url: str = "https://api.openai.com/v1"
    api_key_env: str = "OPENAI_API_KEY"
    timeout_seconds: float = 60.0

    def __post_init__(self) -> None:
        """Validate embedding config after initialization."""
        for name in ("dimensions", "batch_size", "max_tokens_per_chunk", "chars_per_token"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")

    @property
    def max_chars_per_chunk(self) -> int:
        return self.max_tokens_per_chunk * self.chars_per_token


@dataclass(frozen=True)
class SearchConfig:
    """Configuration for search behavior.

    Attributes:
        default_limit: Results returned when no limit is given.
        max_limit: Hard cap on requested limits.
        similarity_threshold: Results must score strictly above this.
        page_size: Stored chunks fetched per page.
        concurrency: Pages fetched and scored at once.
        allowed_repositories: If non-empty, only these repositories are searchable.

    Raises:
        ValueError: If limits are not positive or threshold is outside [-1, 1].
    """

    default_limit: int = 10
    max_limit: int = 50
    similarity_threshold: float = 0.3
    page_size: int = 100
    concurrency: int = 5
    allowed_repositories: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate search config after initialization."""
        if self.default_limit <= 0:
            raise ValueError(f"default_limit must be positive, got {self.default_limit}")
        if self.max_limit < self.default_limit:
            raise ValueError(
                f"max_limit ({self.max_limit}) must be >= default_limit ({self.default_limit})"
            )
        if not -1.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be in [-1, 1], got {self.similarity_threshold}"
            )
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {self.concurrency}")


@dataclass(frozen=True)
class StoreConfig:
    """Configuration for the key-value store backend.

    Attributes:
        backend: "redis", "sqlite" or "memory".
        redis_url_env: Environment variable holding the Redis URL.
        redis_url: Redis URL used when the environment variable is unset.
        sqlite_path: Database file for the sqlite backend. Relative paths are
            resolved against the .kindling directory.
    """

    backend: Literal["redis", "sqlite", "memory"] = "sqlite"
    redis_url_env: str = "REDIS_URL"
    redis_url: str = "redis://localhost:6379/0"
    sqlite_path: str = "store.db"

    def __post_init__(self) -> None:
        if self.backend not in ("redis", "sqlite", "memory"):
            raise ValueError(f"Unknown store backend: {self.backend}")


@dataclass(frozen=True)
class SourceConfig:
    """Configuration for the source provider.

    Attributes:
        provider: "github" for the REST API, "git" for a local clone.
        token_env: Environment variable holding the GitHub token.
        api_url: GitHub REST API base URL.
        branch: Branch to index; None uses the repository default.
        local_path: Working copy for the git provider; defaults to the
            current directory.
    """

    provider: Literal["github", "git"] = "github"
    token_env: str = "GITHUB_TOKEN"
    api_url: str = "https://api.github.com"
    branch: str | None = None
    local_path: str | None = None

    def __post_init__(self) -> None:
        if self.provider not in ("github", "git"):
            raise ValueError(f"Unknown source provider: {self.provider}")


@dataclass(frozen=True)
class KindlingConfig:
    """Complete kindling configuration.

    Attributes:
        index: Chunking and indexing configuration
        embedding: Embedding provider configuration
        search: Search configuration
        store: Key-value store configuration
        source: Source provider configuration
    """

    index: IndexConfig = field(default_factory=IndexConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    @classmethod
    def default(cls) -> "KindlingConfig":
        """Create config with all default values."""
        return cls()
