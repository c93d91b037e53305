"""
Vector Store Data Models

A `VectorRecord` is one embedded chunk as handed to a store; a `VectorMatch`
is one record returned by a similarity search.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..chunking.models import Metadata

IDENTIFIER_FIELDS = ("tenant_id", "doc_id", "version_id", "chunk_id", "source_uri")


class VectorRecord(BaseModel):
    """
    One vector with its text and attributes.

    Identifier fields are also copied into `metadata` by the indexer, but
    stores must not rely on that: `filterable_attributes()` is the map
    filters are evaluated against.
    """

    id: str = Field(..., min_length=1)
    vector: List[float] = Field(..., min_length=1)
    text: str = ""
    metadata: Metadata = Field(default_factory=dict)

    source_uri: Optional[str] = None
    doc_id: Optional[str] = None
    chunk_id: Optional[str] = None
    tenant_id: Optional[str] = None
    version_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def filterable_attributes(self) -> Dict[str, Any]:
        attributes: Dict[str, Any] = dict(self.metadata)
        for name in IDENTIFIER_FIELDS:
            value = getattr(self, name)
            if value is not None:
                attributes[name] = value
        return attributes


class VectorMatch(BaseModel):
    """A record returned by a search. Higher `score` is more similar."""

    record: VectorRecord
    score: float

    model_config = ConfigDict(extra="forbid", frozen=True)
