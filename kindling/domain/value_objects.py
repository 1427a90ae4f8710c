"""Domain value objects.

Immutable, validated value types used across the domain.
"""

import re
from dataclasses import dataclass, field


def glob_to_regex(pattern: str) -> str:
    """Translate a path glob into an anchored regular expression.

    ``**`` matches across directories, ``*`` matches within a single path
    segment and ``?`` matches one non-separator character. Every other
    character is matched literally.

    Args:
        pattern: Glob pattern such as ``src/*.ts`` or ``**/test_*.py``.

    Returns:
        Regular expression source anchored with ``^`` and ``$``.
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                # "**/" also matches zero directories
                if pattern.startswith("**/", i):
                    parts.append("(?:.*/)?")
                    i += 3
                else:
                    parts.append(".*")
                    i += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1
    return "^" + "".join(parts) + "$"


@dataclass(frozen=True)
class PathFilter:
    """Validated glob pattern for path filtering.

    Attributes:
        pattern: The glob pattern string.

    Raises:
        ValueError: If pattern is empty or contains an empty path segment.
    """

    pattern: str
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate and compile the glob pattern."""
        if not self.pattern:
            raise ValueError("PathFilter pattern cannot be empty")

        if "//" in self.pattern:
            raise ValueError(
                f"Invalid glob pattern '{self.pattern}': "
                "contains empty path segment (//)"
            )

        object.__setattr__(self, "_regex", re.compile(glob_to_regex(self.pattern)))

    def matches(self, path: str) -> bool:
        """Check if a path matches this filter pattern.

        Args:
            path: Repository-relative path using forward slashes.

        Returns:
            True if the whole path matches the pattern.
        """
        return self._regex.match(path) is not None

    def __str__(self) -> str:
        return self.pattern
