"""
Chunking Strategies

Four ways of cutting a text, plus a composite that falls back to a second
strategy when the first finds nothing to cut on.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .base import ChunkingStrategy, Span, build_chunks, pack_spans, trim_span, window_spans
from .models import Chunk, ChunkOptions, ChunkStrategy

logger = logging.getLogger("rag.chunking")


class FixedSizeChunkingStrategy(ChunkingStrategy):
    """Overlapping windows of `max_size`, preferring sentence boundaries."""

    strategy = ChunkStrategy.FIXED_SIZE

    def split(self, text: str, options: ChunkOptions) -> List[Span]:
        return window_spans(text, 0, len(text), options.max_size, options.overlap)


class SentenceChunkingStrategy(ChunkingStrategy):
    """
    Sentences packed into chunks.

    A sentence ends at a run of terminators followed by whitespace. A text
    without any such boundary yields no chunks; wrap this strategy in a
    `FallbackChunkingStrategy` to handle that case.
    """

    strategy = ChunkStrategy.SENTENCE

    # Trailing sentences carried into the next chunk when overlap is enabled.
    carry = 2

    def __init__(self) -> None:
        self._boundary = re.compile(r"[.!?]+\s+")

    def sentences(self, text: str) -> List[Span]:
        boundaries = list(self._boundary.finditer(text))
        if not boundaries:
            return []

        spans: List[Span] = []
        start = 0
        for match in boundaries:
            trimmed = trim_span(text, start, match.end())
            if trimmed is not None:
                spans.append(Span(*trimmed))
            start = match.end()

        trimmed = trim_span(text, start, len(text))
        if trimmed is not None:
            spans.append(Span(*trimmed))
        return spans

    def split(self, text: str, options: ChunkOptions) -> List[Span]:
        return pack_spans(text, self.sentences(text), options, carry=self.carry)


class ParagraphChunkingStrategy(ChunkingStrategy):
    """Paragraphs (blank-line separated) packed into chunks."""

    strategy = ChunkStrategy.PARAGRAPH

    def __init__(self) -> None:
        self._separator = re.compile(r"\n\s*\n")

    def paragraphs(self, text: str) -> List[Span]:
        spans: List[Span] = []
        start = 0
        for match in self._separator.finditer(text):
            trimmed = trim_span(text, start, match.start())
            if trimmed is not None:
                spans.append(Span(*trimmed))
            start = match.end()

        trimmed = trim_span(text, start, len(text))
        if trimmed is not None:
            spans.append(Span(*trimmed))
        return spans

    def split(self, text: str, options: ChunkOptions) -> List[Span]:
        return pack_spans(text, self.paragraphs(text), options, carry=1)


class MarkdownChunkingStrategy(ChunkingStrategy):
    """
    Heading-delimited sections packed into chunks.

    Each chunk records the heading of its first section (`heading`), the
    ancestor titles of that heading (`heading_path`) and every heading it
    contains (`headings`). Text before the first heading is its own section
    with no heading.
    """

    strategy = ChunkStrategy.MARKDOWN_AWARE

    def __init__(self) -> None:
        self._heading = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*$", re.MULTILINE)

    def sections(self, text: str) -> List[Tuple[int, int, Optional[str], List[str]]]:
        """Return `(start, end, title, heading_path)` for every section."""
        headings = list(self._heading.finditer(text))
        sections: List[Tuple[int, int, Optional[str], List[str]]] = []

        first = headings[0].start() if headings else len(text)
        if text[:first].strip():
            sections.append((0, first, None, []))

        stack: List[Tuple[int, str]] = []
        for i, match in enumerate(headings):
            level = len(match.group(1))
            title = match.group(2)
            while stack and stack[-1][0] >= level:
                stack.pop()
            stack.append((level, title))

            end = headings[i + 1].start() if i + 1 < len(headings) else len(text)
            sections.append((match.start(), end, title, [t for _, t in stack]))

        return sections

    def split(self, text: str, options: ChunkOptions) -> List[Span]:
        spans: List[Span] = []
        group: List[Tuple[int, int, Optional[str], List[str]]] = []

        def emit() -> None:
            if group:
                spans.append(Span(group[0][0], group[-1][1], self._metadata(group)))

        for section in self.sections(text):
            trimmed = trim_span(text, section[0], section[1])
            if trimmed is None:
                continue
            section = (trimmed[0], trimmed[1], section[2], section[3])

            if section[1] - section[0] > options.max_size:
                emit()
                group = []
                spans.extend(
                    window_spans(
                        text,
                        section[0],
                        section[1],
                        options.max_size,
                        options.overlap,
                        self._metadata([section]),
                    )
                )
                continue

            if group and section[1] - group[0][0] > options.max_size:
                emit()
                group = []

            group.append(section)

        emit()
        return spans

    @staticmethod
    def _metadata(group) -> Dict[str, Any]:
        _, _, title, path = group[0]
        metadata: Dict[str, Any] = {
            "headings": [s[2] for s in group if s[2] is not None],
        }
        if title is not None:
            metadata["heading"] = title
            metadata["heading_path"] = list(path)
        return metadata


class FallbackChunkingStrategy(ChunkingStrategy):
    """
    Run `primary`; if it produces nothing for a non-blank text, run `fallback`.

    Chunks produced by the fallback are labelled with the fallback's strategy
    and carry `fallback_from` naming the primary.
    """

    def __init__(self, primary: ChunkingStrategy, fallback: ChunkingStrategy) -> None:
        self.primary = primary
        self.fallback = fallback
        self.strategy = primary.strategy

    def split(self, text: str, options: ChunkOptions) -> List[Span]:
        return self.primary.split(text, options) or self.fallback.split(text, options)

    def chunk(self, text: str, options: ChunkOptions) -> List[Chunk]:
        chunks = self.primary.chunk(text, options)
        if chunks or not text.strip():
            return chunks

        logger.warning(
            "%s strategy produced no chunks for %d chars; falling back to %s",
            self.primary.strategy.value,
            len(text),
            self.fallback.strategy.value,
        )
        return build_chunks(
            text,
            self.fallback.split(text, options),
            self.fallback.strategy,
            extra={"fallback_from": self.primary.strategy.value},
        )
