"""
Chunking Data Models

A `Chunk` is a contiguous span of a source text. Offsets always point back into
the source: `source[chunk.start_index:chunk.end_index] == chunk.text`.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, JsonValue, model_validator

from ..config import settings

Metadata = Dict[str, JsonValue]


class ChunkStrategy(str, Enum):
    FIXED_SIZE = "fixed_size"
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"
    MARKDOWN_AWARE = "markdown_aware"


def new_chunk_id(ordinal: int) -> str:
    return f"chunk_{ordinal}_{uuid.uuid4().hex}"


class Chunk(BaseModel):
    """
    One retrievable unit of a document.

    `metadata` always carries `chunk_index` (0-based ordinal within the
    document) and `strategy`.
    """

    id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    start_index: int = Field(..., ge=0)
    end_index: int = Field(..., ge=0)
    metadata: Metadata = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_offsets(self) -> "Chunk":
        if self.end_index < self.start_index:
            raise ValueError("end_index must not precede start_index")
        return self


class ChunkOptions(BaseModel):
    """
    Parameters for one chunking run.

    `overlap` must be strictly smaller than `max_size`, otherwise a window
    could never advance.
    """

    max_size: int = Field(default_factory=lambda: settings.chunk_max_size, gt=0)
    overlap: int = Field(default_factory=lambda: settings.chunk_overlap, ge=0)
    strategy: ChunkStrategy = ChunkStrategy.FIXED_SIZE

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_overlap(self) -> "ChunkOptions":
        if self.overlap >= self.max_size:
            raise ValueError(
                f"overlap ({self.overlap}) must be smaller than max_size ({self.max_size})"
            )
        return self
