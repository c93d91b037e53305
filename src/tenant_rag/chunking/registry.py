"""
Chunk Strategy Registry and Chunker facade.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .base import ChunkingStrategy
from .models import Chunk, ChunkOptions, ChunkStrategy
from .strategies import (
    FallbackChunkingStrategy,
    FixedSizeChunkingStrategy,
    MarkdownChunkingStrategy,
    ParagraphChunkingStrategy,
    SentenceChunkingStrategy,
)

logger = logging.getLogger("rag.chunking")


class ChunkingStrategyRegistry:
    """
    Maps a `ChunkStrategy` to the strategy instance that implements it.

    Looking up a strategy that was never registered logs a warning and
    returns the fixed-size strategy.
    """

    def __init__(self) -> None:
        self._strategies: Dict[ChunkStrategy, ChunkingStrategy] = {}
        self._default = FixedSizeChunkingStrategy()

    def register(self, strategy: ChunkStrategy, implementation: ChunkingStrategy) -> None:
        self._strategies[ChunkStrategy(strategy)] = implementation

    def get(self, strategy: ChunkStrategy) -> ChunkingStrategy:
        implementation = self._strategies.get(ChunkStrategy(strategy))
        if implementation is None:
            logger.warning(
                "No chunking strategy registered for %s; using fixed_size",
                ChunkStrategy(strategy).value,
            )
            return self._strategies.get(ChunkStrategy.FIXED_SIZE, self._default)
        return implementation

    def strategies(self) -> List[ChunkStrategy]:
        return list(self._strategies)


def default_registry() -> ChunkingStrategyRegistry:
    registry = ChunkingStrategyRegistry()
    fixed = FixedSizeChunkingStrategy()
    registry.register(ChunkStrategy.FIXED_SIZE, fixed)
    registry.register(
        ChunkStrategy.SENTENCE,
        FallbackChunkingStrategy(SentenceChunkingStrategy(), fixed),
    )
    registry.register(ChunkStrategy.PARAGRAPH, ParagraphChunkingStrategy())
    registry.register(ChunkStrategy.MARKDOWN_AWARE, MarkdownChunkingStrategy())
    return registry


class Chunker:
    """Split text into chunks with the strategy named in the options."""

    def __init__(self, registry: Optional[ChunkingStrategyRegistry] = None) -> None:
        self.registry = registry or default_registry()

    def chunk(self, text: str, options: Optional[ChunkOptions] = None) -> List[Chunk]:
        if not text or not text.strip():
            return []
        options = options or ChunkOptions()
        chunks = self.registry.get(options.strategy).chunk(text, options)
        logger.debug(
            "Chunked %d chars into %d chunks (strategy=%s, max_size=%d, overlap=%d)",
            len(text),
            len(chunks),
            options.strategy.value,
            options.max_size,
            options.overlap,
        )
        return chunks
