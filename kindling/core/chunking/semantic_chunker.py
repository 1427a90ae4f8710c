"""Semantic chunker splitting one file into logical code units.

Declarations found by a pluggable BoundaryDetector become function, class or
method chunks; code between them becomes block chunks; files with no
declarations become whole-file chunks (windowed when too long). Very large
files skip detection entirely and are windowed.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from kindling.core.chunking.block_splitter import part_name, split_by_lines, window_ranges
from kindling.core.languages import get_language_name
from kindling.domain.config import IndexConfig
from kindling.domain.entities import Chunk, ChunkMetadata, ChunkType
from kindling.ports.chunkers import BoundaryDetector, Declaration

logger = logging.getLogger(__name__)


@dataclass
class _OpenBlock:
    start: int
    declaration: Declaration
    indent: int = 0
    balance: int = 0
    opened: bool = False


def _trim_blank_tail(lines: list[str], start: int, end: int) -> int:
    """Move ``end`` back over blank lines, keeping at least line ``start``."""
    while end > start + 1 and not lines[end - 1].strip():
        end -= 1
    return end


class SemanticChunker:
    """Splits file content into semantic chunks.

    Blocks do not nest: while a declaration's block is open, further
    declarations are part of it. A block closes when its brace balance
    returns to zero or below after having gone positive, or when the detector
    reports a line outside it by indentation. That line is then scanned again
    as a possible declaration.
    """

    def __init__(
        self,
        select_detector: Callable[[str], BoundaryDetector],
        config: IndexConfig | None = None,
    ) -> None:
        """Initialize semantic chunker.

        Args:
            select_detector: Returns the boundary detector for a file path.
            config: Chunk size limits. Defaults to IndexConfig().
        """
        self.select_detector = select_detector
        config = config or IndexConfig()
        self.max_lines = config.max_lines_per_chunk
        self.large_file_threshold = config.large_file_threshold

    def chunk(self, repository: str, path: str, content: str) -> list[Chunk]:
        """Chunk one file.

        Args:
            repository: Repository identifier.
            path: Repository-relative file path.
            content: Full file text.

        Returns:
            Chunks ordered by start line. Empty only for empty content.
        """
        if content == "":
            return []

        lines = content.split("\n")
        # A trailing newline terminates the last line rather than starting a new one
        if len(lines) > 1 and lines[-1] == "":
            lines.pop()

        language = get_language_name(path)

        if len(lines) > self.large_file_threshold:
            logger.debug(f"{path}: {len(lines)} lines, windowing without detection")
            return self._windows(repository, path, language, lines)

        declared = self._scan(repository, path, language, lines)
        if not declared:
            if len(lines) <= self.max_lines:
                whole = self._make(repository, path, language, lines, 0, len(lines), ChunkType.FILE)
                return [whole]
            return self._windows(repository, path, language, lines)

        chunks = declared + self._gap_blocks(repository, path, language, lines, declared)
        chunks.sort(key=lambda c: c.metadata.start_line)
        return chunks

    def _scan(
        self, repository: str, path: str, language: str, lines: list[str]
    ) -> list[Chunk]:
        detector = self.select_detector(path)
        chunks: list[Chunk] = []
        block: _OpenBlock | None = None

        for i, line in enumerate(lines):
            if block is not None and detector.closes_before(line, block.indent):
                end = _trim_blank_tail(lines, block.start, i)
                chunks.append(self._block_chunk(repository, path, language, lines, block, end))
                block = None

            if block is None:
                declaration = detector.match(line)
                if declaration is None or not declaration.opens_block:
                    continue
                indent = len(line) - len(line.lstrip())
                block = _OpenBlock(start=i, declaration=declaration, indent=indent)

            opens, closes = detector.count_braces(line)
            block.balance += opens - closes
            if opens > 0:
                block.opened = True

            if block.opened and block.balance <= 0:
                chunks.append(self._block_chunk(repository, path, language, lines, block, i + 1))
                block = None
            elif i + 1 - block.start > self.max_lines:
                logger.debug(
                    f"{path}: block at line {block.start + 1} exceeds "
                    f"{self.max_lines} lines, splitting"
                )
                chunks.extend(
                    split_by_lines(
                        self._block_chunk(repository, path, language, lines, block, i + 1),
                        self.max_lines,
                    )
                )
                block = None

        if block is not None:
            end = _trim_blank_tail(lines, block.start, len(lines))
            chunks.extend(
                split_by_lines(
                    self._block_chunk(repository, path, language, lines, block, end),
                    self.max_lines,
                )
            )
        return chunks

    def _block_chunk(
        self,
        repository: str,
        path: str,
        language: str,
        lines: list[str],
        block: _OpenBlock,
        end: int,
    ) -> Chunk:
        return self._make(
            repository,
            path,
            language,
            lines,
            block.start,
            end,
            block.declaration.type,
            block.declaration.name,
        )

    def _gap_blocks(
        self,
        repository: str,
        path: str,
        language: str,
        lines: list[str],
        declared: list[Chunk],
    ) -> list[Chunk]:
        """Block chunks for code outside every declaration chunk."""
        covered = [False] * len(lines)
        for chunk in declared:
            for i in range(chunk.metadata.start_line - 1, chunk.metadata.end_line):
                covered[i] = True

        chunks = []
        i = 0
        while i < len(lines):
            if covered[i]:
                i += 1
                continue
            run_start = i
            while i < len(lines) and not covered[i]:
                i += 1
            run_end = i
            # Trim blank edges
            while run_start < run_end and not lines[run_start].strip():
                run_start += 1
            while run_end > run_start and not lines[run_end - 1].strip():
                run_end -= 1
            for start, end in window_ranges(run_end - run_start, self.max_lines):
                start += run_start
                end += run_start
                if any(line.strip() for line in lines[start:end]):
                    chunks.append(
                        self._make(repository, path, language, lines, start, end, ChunkType.BLOCK)
                    )
        return chunks

    def _windows(
        self, repository: str, path: str, language: str, lines: list[str]
    ) -> list[Chunk]:
        return [
            self._make(
                repository, path, language, lines, start, end, ChunkType.FILE, part_name(None, n)
            )
            for n, (start, end) in enumerate(window_ranges(len(lines), self.max_lines), 1)
        ]

    @staticmethod
    def _make(
        repository: str,
        path: str,
        language: str,
        lines: list[str],
        start: int,
        end: int,
        chunk_type: ChunkType,
        name: str | None = None,
    ) -> Chunk:
        """Build a chunk from the half-open line range [start, end)."""
        return Chunk(
            repository=repository,
            path=path,
            content="\n".join(lines[start:end]),
            metadata=ChunkMetadata(
                language=language,
                type=chunk_type,
                start_line=start + 1,
                end_line=end,
                name=name,
            ),
        )
