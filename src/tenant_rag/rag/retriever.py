"""
Tenant-isolated Retriever

Turns a natural-language query into a filtered vector search. Every search is
constrained to exactly one tenant: the tenant predicate is AND-ed onto the
caller's filter unconditionally, even when that filter already names a
tenant. A caller filter can therefore narrow the results but never widen them
past the request's tenant.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .models import RagChunk, RetrieveRequest, RetrieveResult
from ..chunking.models import Chunk
from ..core.errors import FilterTranslationError, RetrievalError
from ..embeddings.embedder import Embedder, EmbeddingError
from ..filters.algebra import FilterAnd, VectorFilter, eq
from ..tenants import validate_tenant_id
from ..vectorstores.base import VectorStore
from ..vectorstores.models import VectorMatch

logger = logging.getLogger("rag.retriever")


class VectorRetriever:
    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        tenant_field: str = "tenant_id",
    ) -> None:
        self._embedder = embedder
        self._store = vector_store
        self._tenant_field = tenant_field

    def effective_filter(self, tenant_id: str, filter: Optional[VectorFilter]) -> VectorFilter:
        tenant = eq(self._tenant_field, tenant_id)
        if filter is None:
            return tenant
        return FilterAnd((tenant, filter))

    async def retrieve(self, request: RetrieveRequest) -> RetrieveResult:
        """
        Retrieve the `top_k` chunks most similar to `request.query`.

        Raises
        ------
        InvalidTenantError
            If the request's tenant is missing or malformed.
        EmbeddingError
            If the query cannot be embedded.
        FilterTranslationError
            If the store cannot express `request.filter`.
        RetrievalError
            If the vector store query fails.
        """
        tenant_id = validate_tenant_id(request.tenant_id)

        vectors = await self._embedder.embed([request.query])
        if not vectors or not vectors[0]:
            raise EmbeddingError("Embedding service returned no vector for the query.")
        query_vector = vectors[0]

        filter = self.effective_filter(tenant_id, request.filter)

        try:
            matches = await self._store.query(
                query_vector,
                request.top_k,
                filter,
                request.collection_name,
            )
        except FilterTranslationError:
            raise
        except Exception as exc:
            logger.error(
                "Vector search failed (tenant=%s, collection=%s): %s",
                tenant_id, request.collection_name, exc,
            )
            raise RetrievalError(
                f"Vector search failed: {exc}",
                operation="query",
                collection=request.collection_name,
                tenant_id=tenant_id,
            ) from exc

        chunks = []
        for match in matches:
            if not (match.record.text or match.record.metadata.get("text")):
                logger.warning("Skipping record %s with no text (tenant=%s)", match.record.id, tenant_id)
                continue
            chunks.append(self._to_rag_chunk(match))

        logger.info(
            "Retrieved %d chunks (tenant=%s, top_k=%d)", len(chunks), tenant_id, request.top_k
        )
        return RetrieveResult(
            chunks=chunks,
            query_vector=query_vector,
            total_matches=len(chunks),
        )

    @staticmethod
    def _to_rag_chunk(match: VectorMatch) -> RagChunk:
        record = match.record
        metadata = dict(record.metadata)

        start = _as_offset(metadata.get("start_index"), 0)
        end = _as_offset(metadata.get("end_index"), start + len(record.text))
        if end < start:
            end = start + len(record.text)

        chunk = Chunk(
            id=record.chunk_id or record.id,
            text=record.text or str(metadata.get("text") or ""),
            start_index=start,
            end_index=end,
            metadata=metadata,
        )
        return RagChunk(
            chunk=chunk,
            score=match.score,
            source_uri=record.source_uri,
            doc_id=record.doc_id,
        )


def _as_offset(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return default
