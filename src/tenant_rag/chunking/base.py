"""
Chunking Strategy Base

Strategies only decide *where* a text is cut. They return `Span`s (offsets
into the source plus strategy-specific metadata) and the shared
`ChunkingStrategy.chunk` turns spans into `Chunk`s, so every strategy gets the
same guarantees:

- `chunk.text == source[chunk.start_index:chunk.end_index]`
- no chunk is empty or whitespace-only
- `chunk_index` and `strategy` are always present in the metadata
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from .models import Chunk, ChunkOptions, ChunkStrategy, new_chunk_id

SENTENCE_TERMINATORS = ".!?"

# How far back from a window end a break point is searched for.
SENTENCE_LOOKBACK = 100
WHITESPACE_LOOKBACK = 50


class Span(NamedTuple):
    start: int
    end: int
    metadata: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------
# Span helpers
# ---------------------------------------------------------------------

def trim_span(text: str, start: int, end: int) -> Optional[Tuple[int, int]]:
    """
    Shrink `[start, end)` past leading and trailing whitespace.

    Returns None when nothing but whitespace is left.
    """
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return start, end


def _break_point(text: str, start: int, end: int) -> int:
    floor = max(start + 1, end - SENTENCE_LOOKBACK)
    for i in range(end - 1, floor - 1, -1):
        if text[i] in SENTENCE_TERMINATORS:
            return i + 1

    floor = max(start + 1, end - WHITESPACE_LOOKBACK)
    for i in range(end - 1, floor - 1, -1):
        if text[i].isspace():
            return i + 1

    return end


def window_spans(
    text: str,
    start: int,
    end: int,
    max_size: int,
    overlap: int,
    metadata: Optional[Dict[str, Any]] = None,
) -> List[Span]:
    """
    Cut `text[start:end]` into overlapping windows of at most `max_size`.

    A window that stops short of `end` is pulled back to the last sentence
    terminator within `SENTENCE_LOOKBACK` characters, or failing that to the
    last whitespace within `WHITESPACE_LOOKBACK`. The next window starts
    `overlap` characters before the previous one ended, and always strictly
    after the previous start. The loop stops once a window reaches `end`.
    """
    spans: List[Span] = []
    meta = dict(metadata or {})
    pos = start

    while pos < end:
        window_end = min(pos + max_size, end)
        if window_end < end:
            window_end = _break_point(text, pos, window_end)

        trimmed = trim_span(text, pos, window_end)
        if trimmed is not None:
            spans.append(Span(trimmed[0], trimmed[1], meta))

        if window_end >= end:
            break
        pos = max(pos + 1, window_end - overlap)

    return spans


def pack_spans(
    text: str,
    units: Sequence[Span],
    options: ChunkOptions,
    carry: int = 0,
) -> List[Span]:
    """
    Group consecutive units (sentences, paragraphs) into chunks.

    Units are added to the current chunk while the covered range still fits
    in `max_size`. On overflow the chunk is emitted and, when `overlap > 0`,
    the next chunk is seeded with up to `carry` trailing units of the emitted
    one, dropping from the front until the seed fits with the incoming unit.
    A unit that is longer than `max_size` on its own is window-split.
    """
    spans: List[Span] = []
    current: List[Span] = []

    def emit() -> None:
        if current:
            spans.append(Span(current[0].start, current[-1].end, current[0].metadata))

    for unit in units:
        if unit.end - unit.start > options.max_size:
            emit()
            current = []
            spans.extend(
                window_spans(text, unit.start, unit.end, options.max_size, options.overlap, unit.metadata)
            )
            continue

        if current and unit.end - current[0].start > options.max_size:
            emit()
            seed = current[-carry:] if (carry and options.overlap > 0) else []
            while seed and unit.end - seed[0].start > options.max_size:
                seed = seed[1:]
            current = list(seed)

        current.append(unit)

    emit()
    return spans


# ---------------------------------------------------------------------
# Strategy Base
# ---------------------------------------------------------------------

class ChunkingStrategy(ABC):
    """
    Base class for chunking strategies.

    Subclasses implement `split`; `chunk` is shared.
    """

    strategy: ChunkStrategy

    @abstractmethod
    def split(self, text: str, options: ChunkOptions) -> List[Span]:
        """Return the chunk spans for `text`, in document order."""

    def chunk(self, text: str, options: ChunkOptions) -> List[Chunk]:
        return build_chunks(text, self.split(text, options), self.strategy)


def build_chunks(
    text: str,
    spans: Sequence[Span],
    strategy: ChunkStrategy,
    extra: Optional[Dict[str, Any]] = None,
) -> List[Chunk]:
    chunks: List[Chunk] = []
    for span in spans:
        trimmed = trim_span(text, span.start, span.end)
        if trimmed is None:
            continue
        start, end = trimmed
        ordinal = len(chunks)
        metadata: Dict[str, Any] = dict(span.metadata or {})
        if extra:
            metadata.update(extra)
        metadata["chunk_index"] = ordinal
        metadata["strategy"] = strategy.value
        chunks.append(
            Chunk(
                id=new_chunk_id(ordinal),
                text=text[start:end],
                start_index=start,
                end_index=end,
                metadata=metadata,
            )
        )
    return chunks
