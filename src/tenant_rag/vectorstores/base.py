"""
Vector store interface consumed by the indexer and the retriever.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from .models import VectorMatch, VectorRecord
from ..filters.algebra import VectorFilter


@runtime_checkable
class VectorStore(Protocol):
    async def upsert(
        self,
        records: Sequence[VectorRecord],
        collection: Optional[str] = None,
    ) -> None:
        """Insert records, replacing any existing record with the same id."""
        ...

    async def query(
        self,
        vector: Sequence[float],
        top_k: int,
        filter: Optional[VectorFilter] = None,
        collection: Optional[str] = None,
    ) -> List[VectorMatch]:
        """Return up to `top_k` matches, most similar first."""
        ...

    async def delete(
        self,
        ids: Sequence[str],
        collection: Optional[str] = None,
    ) -> int:
        """Delete records by id and return how many were removed."""
        ...
