"""
Ingestion Data Models
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..chunking.models import Metadata
from ..tenants import validate_collection_name


class Document(BaseModel):
    """A loaded source document, before text extraction."""
    source_uri: str = Field(..., min_length=1)
    content: bytes
    content_type: str = "application/octet-stream"
    metadata: Metadata = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", frozen=True)


class IndexOptions(BaseModel):
    """
    Where and under which identifiers chunks are indexed.

    `tenant_id` is validated by the indexer before any I/O.
    """
    tenant_id: str
    doc_id: Optional[str] = None
    version_id: Optional[str] = None
    collection_name: Optional[str] = None
    source_uri: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("collection_name")
    @classmethod
    def _collection(cls, value: Optional[str]) -> Optional[str]:
        return validate_collection_name(value) if value is not None else None


class IndexFailure(BaseModel):
    """One chunk that could not be indexed, and at which stage."""
    chunk_id: str
    stage: Literal["embed", "upsert", "cancelled"]
    message: str

    model_config = ConfigDict(extra="forbid", frozen=True)


class IndexResult(BaseModel):
    chunks_indexed: int = Field(default=0, ge=0)
    vectors_created: int = Field(default=0, ge=0)
    errors: List[IndexFailure] = Field(default_factory=list)
    cancelled: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def succeeded(self) -> bool:
        return not self.errors


class BatchIngestionError(BaseModel):
    """A document that failed before indexing (load, extract, chunk)."""
    source_uri: str
    message: str

    model_config = ConfigDict(extra="forbid", frozen=True)


class BatchIndexResult(BaseModel):
    results: List[IndexResult] = Field(default_factory=list)
    errors: List[BatchIngestionError] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def total_chunks_indexed(self) -> int:
        return sum(r.chunks_indexed for r in self.results)

    @property
    def total_vectors_created(self) -> int:
        return sum(r.vectors_created for r in self.results)
