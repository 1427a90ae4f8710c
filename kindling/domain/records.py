"""Validating deserializers for stored records.

Stored values come from a shared key-value store and may be malformed: plain
garbage, JSON of the wrong shape, or the literal ``"[object Object]"`` left
behind by an old writer that stringified an object instead of serializing it.
Decoders here never raise for such input. They return an ``InvalidRecord``
describing the problem so callers can skip it uniformly.
"""

import json
from dataclasses import dataclass
from typing import Any

from kindling.domain.entities import Chunk, RepositoryIndexState

LEGACY_CORRUPT_MARKER = "[object Object]"


@dataclass(frozen=True)
class InvalidRecord:
    """A stored value that could not be decoded.

    Attributes:
        raw: The raw stored value (possibly truncated by the caller for logging).
        reason: Why decoding failed.
    """

    raw: str
    reason: str


def _load_object(raw: str | bytes | None) -> dict[str, Any] | InvalidRecord:
    if raw is None:
        return InvalidRecord(raw="", reason="missing value")
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if raw == LEGACY_CORRUPT_MARKER:
        return InvalidRecord(raw=raw, reason="legacy '[object Object]' value")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return InvalidRecord(raw=raw, reason=f"malformed JSON: {e.msg}")
    if not isinstance(data, dict):
        return InvalidRecord(raw=raw, reason=f"expected object, got {type(data).__name__}")
    return data


def decode_chunk(raw: str | bytes | None) -> Chunk | InvalidRecord:
    """Decode one stored chunk entry."""
    data = _load_object(raw)
    if isinstance(data, InvalidRecord):
        return data
    try:
        return Chunk.from_dict(data)
    except KeyError as e:
        return InvalidRecord(raw=str(raw), reason=f"missing field {e}")
    except (TypeError, ValueError) as e:
        return InvalidRecord(raw=str(raw), reason=str(e))


def decode_index_state(raw: str | bytes | None) -> RepositoryIndexState | InvalidRecord:
    """Decode a stored checkpoint record."""
    data = _load_object(raw)
    if isinstance(data, InvalidRecord):
        return data
    try:
        return RepositoryIndexState.from_dict(data)
    except KeyError as e:
        return InvalidRecord(raw=str(raw), reason=f"missing field {e}")
    except (TypeError, ValueError) as e:
        return InvalidRecord(raw=str(raw), reason=str(e))


def encode_chunk(chunk: Chunk) -> str:
    return json.dumps(chunk.to_dict(), separators=(",", ":"))


def encode_index_state(state: RepositoryIndexState) -> str:
    return json.dumps(state.to_dict(), separators=(",", ":"))
