"""
Retrieval and Chat Models

Request/response models for the retrieval path and the chat conversation the
composer augments.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..chunking.models import Chunk
from ..config import settings
from ..filters.algebra import FilterAnd, FilterNot, FilterOr, FilterPredicate
from ..tenants import validate_collection_name

_FILTER_TYPES = (FilterPredicate, FilterAnd, FilterOr, FilterNot)


# ---------------------------------------------------------------------
# Retrieval Models
# ---------------------------------------------------------------------

class RetrieveRequest(BaseModel):
    """
    A tenant-scoped similarity search.

    `filter` is an optional `VectorFilter`; the retriever always AND-s a
    tenant predicate onto it. `tenant_id` is validated by the retriever so that
    a malformed tenant surfaces as `InvalidTenantError`.
    """
    query: str = Field(..., min_length=1)
    tenant_id: str
    top_k: int = Field(default_factory=lambda: settings.retrieval_top_k, gt=0)
    filter: Optional[Any] = None
    collection_name: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value

    @field_validator("collection_name")
    @classmethod
    def _collection(cls, value: Optional[str]) -> Optional[str]:
        return validate_collection_name(value) if value is not None else None

    @field_validator("filter")
    @classmethod
    def _filter(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, _FILTER_TYPES):
            raise ValueError(f"filter must be a VectorFilter, got {type(value).__name__}")
        return value


class RagChunk(BaseModel):
    """A retrieved chunk with its similarity score."""
    chunk: Chunk
    score: float
    source_uri: Optional[str] = None
    doc_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class RetrieveResult(BaseModel):
    """Retrieved chunks, highest relevance first."""
    chunks: List[RagChunk] = Field(default_factory=list)
    query_vector: List[float] = Field(default_factory=list)
    total_matches: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------
# Chat Models
# ---------------------------------------------------------------------

class ChatMessage(BaseModel):
    """
    Single message in a chat conversation.
    """
    role: Literal["system", "user", "assistant", "tool"]
    content: str

    model_config = ConfigDict(extra="forbid", frozen=True)


class ChatRequest(BaseModel):
    """
    Chat completion request payload.
    """
    messages: List[ChatMessage] = Field(..., min_length=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    model: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)
