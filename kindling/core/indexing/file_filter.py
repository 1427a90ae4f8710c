"""File filtering service for selecting indexable code files.

Filters repository paths based on:
- Code file extensions (allow-list from IndexConfig)
- Excluded directory names, matched against any path segment
"""

from kindling.core.languages import get_suffix
from kindling.domain.config import IndexConfig


class FileFilterService:
    """Filters repository paths to identify indexable code files."""

    def __init__(self, config: IndexConfig | None = None) -> None:
        config = config or IndexConfig()
        self.extensions = frozenset(ext.lower() for ext in config.extensions)
        self.excluded_dirs = frozenset(config.excluded_dirs)

    def is_indexable(self, path: str) -> bool:
        """Check if a file should be indexed.

        Args:
            path: Repository-relative path using forward slashes.

        Returns:
            True if the extension is allowed and no parent directory is excluded.
        """
        if get_suffix(path) not in self.extensions:
            return False
        directories = path.split("/")[:-1]
        return not any(part in self.excluded_dirs for part in directories)

    def filter_paths(self, paths: list[str]) -> list[str]:
        """Filter and sort paths to indexable files."""
        return sorted(p for p in paths if self.is_indexable(p))
