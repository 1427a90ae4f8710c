"""Chunker ports for heuristic code segmentation.

A boundary detector recognizes declaration lines and reports where their
blocks end: through brace balance changes, or by a line falling back to the
declaration's indentation. The semantic chunker owns the surrounding control
flow (open-block tracking, splitting, windowing), so a real per-language
parser can replace a detector without touching it.
"""

from dataclasses import dataclass
from typing import Protocol

from kindling.domain.entities import ChunkType


@dataclass(frozen=True)
class Declaration:
    """A declaration recognized on a single line.

    Attributes:
        type: Kind of code unit the declaration opens.
        name: Declared identifier, or None when it cannot be extracted.
        opens_block: False for single-statement declarations (e.g. an abstract
            method signature ending in ``;``) that have no body.
    """

    type: ChunkType
    name: str | None
    opens_block: bool = True


class BoundaryDetector(Protocol):
    """Port for per-language declaration and block boundary detection."""

    def match(self, line: str) -> Declaration | None:
        """Recognize a declaration on one line.

        Args:
            line: A single source line without its trailing newline.

        Returns:
            Declaration if the line starts a function, class or method,
            None otherwise.
        """
        ...

    def count_braces(self, line: str) -> tuple[int, int]:
        """Count block delimiters on one line.

        Args:
            line: A single source line.

        Returns:
            Tuple of (opening, closing) delimiter counts.
        """
        ...

    def closes_before(self, line: str, declaration_indent: int) -> bool:
        """Tell whether ``line`` lies outside a block opened at an indentation.

        Args:
            line: A source line after the declaration line.
            declaration_indent: Leading whitespace width of the declaration.

        Returns:
            True if the open block ends before this line. Detectors that
            close blocks through brace balance always return False.
        """
        ...
