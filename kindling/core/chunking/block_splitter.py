"""Splitting of oversized chunks.

Two strategies share the same naming and line-offset rules:

- ``split_by_lines`` breaks a block that has too many lines, preferring natural
  boundaries (blank lines and comment starts) and falling back to fixed windows.
- ``split_by_chars`` breaks a chunk whose text is too long for one embedding
  request by accumulating whole lines up to a character budget.

Every piece keeps the original chunk type, gets a "name (part N)" name
("Part N" when the original is unnamed) and line numbers offset from the
original start. Pieces are contiguous and never overlap.
"""

import bisect
from dataclasses import replace

from kindling.domain.entities import Chunk, ChunkMetadata

# Natural boundaries this close to either end of a block are ignored so the
# split never produces a tiny leading or trailing piece.
EDGE_MARGIN = 50

# Blocks longer than this multiple of the limit are windowed without searching
# for natural boundaries.
FALLBACK_FACTOR = 3

COMMENT_PREFIXES = ("//", "/*", "*", "#", "--", "<!--")


def part_name(name: str | None, number: int) -> str:
    """Name of the Nth piece (1-based) of a split chunk."""
    if name:
        return f"{name} (part {number})"
    return f"Part {number}"


def window_ranges(line_count: int, size: int) -> list[tuple[int, int]]:
    """Half-open [start, end) ranges of consecutive fixed-size windows."""
    return [(start, min(start + size, line_count)) for start in range(0, line_count, size)]


def find_natural_boundaries(lines: list[str]) -> list[int]:
    """Indices of lines a new piece may start at.

    Blank lines and comment-start lines qualify, except within EDGE_MARGIN
    lines of either end.
    """
    candidates = []
    for i in range(EDGE_MARGIN, len(lines) - EDGE_MARGIN):
        stripped = lines[i].strip()
        if not stripped or stripped.startswith(COMMENT_PREFIXES):
            candidates.append(i)
    return candidates


def plan_line_split(lines: list[str], max_lines: int) -> list[tuple[int, int]]:
    """Plan how to cut a block into pieces of at most ``max_lines`` lines.

    Args:
        lines: The block's lines.
        max_lines: Upper bound on lines per piece.

    Returns:
        Contiguous half-open [start, end) ranges covering every line.
    """
    total = len(lines)
    if total <= max_lines:
        return [(0, total)]

    candidates = find_natural_boundaries(lines)
    if not candidates or total > FALLBACK_FACTOR * max_lines:
        return window_ranges(total, max_lines)

    ranges: list[tuple[int, int]] = []
    start = 0
    while total - start > max_lines:
        limit = start + max_lines
        # Last natural boundary in (start, limit]
        idx = bisect.bisect_right(candidates, limit) - 1
        cut = candidates[idx] if idx >= 0 and candidates[idx] > start else limit
        ranges.append((start, cut))
        start = cut
    ranges.append((start, total))
    return ranges


def _piece(chunk: Chunk, lines: list[str], start: int, end: int, number: int) -> Chunk:
    base = chunk.metadata.start_line
    metadata = ChunkMetadata(
        language=chunk.metadata.language,
        type=chunk.metadata.type,
        start_line=base + start,
        end_line=base + end - 1,
        name=part_name(chunk.metadata.name, number),
    )
    return replace(chunk, content="\n".join(lines[start:end]), metadata=metadata, embedding=None)


def split_by_lines(chunk: Chunk, max_lines: int) -> list[Chunk]:
    """Split a chunk with more than ``max_lines`` lines.

    Returns:
        The chunk unchanged (as a single-element list) if it fits, otherwise
        its pieces in order.
    """
    lines = chunk.content.split("\n")
    ranges = plan_line_split(lines, max_lines)
    if len(ranges) == 1:
        return [chunk]
    return [_piece(chunk, lines, start, end, n) for n, (start, end) in enumerate(ranges, 1)]


def split_by_chars(chunk: Chunk, max_chars: int) -> list[Chunk]:
    """Split a chunk whose content is longer than ``max_chars`` characters.

    Lines are accumulated until the next one would exceed the budget. A single
    line longer than the budget is cut into character slices that all report
    that line's number.
    """
    if len(chunk.content) <= max_chars:
        return [chunk]

    base = chunk.metadata.start_line
    # (text, first line offset, last line offset)
    pieces: list[tuple[str, int, int]] = []
    buffer: list[str] = []
    buffer_start = 0
    buffer_len = 0

    def flush() -> None:
        nonlocal buffer, buffer_len
        if buffer:
            pieces.append(("\n".join(buffer), buffer_start, buffer_start + len(buffer) - 1))
        buffer = []
        buffer_len = 0

    for offset, line in enumerate(chunk.content.split("\n")):
        if len(line) > max_chars:
            flush()
            for i in range(0, len(line), max_chars):
                pieces.append((line[i : i + max_chars], offset, offset))
            continue
        added = len(line) + (1 if buffer else 0)
        if buffer and buffer_len + added > max_chars:
            flush()
            buffer_start = offset
            added = len(line)
        if not buffer:
            buffer_start = offset
        buffer.append(line)
        buffer_len += added
    flush()

    result = []
    for number, (text, first, last) in enumerate(pieces, 1):
        metadata = ChunkMetadata(
            language=chunk.metadata.language,
            type=chunk.metadata.type,
            start_line=base + first,
            end_line=base + last,
            name=part_name(chunk.metadata.name, number),
        )
        result.append(replace(chunk, content=text, metadata=metadata, embedding=None))
    return result
