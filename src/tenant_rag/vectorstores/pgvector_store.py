"""
PgVector Store

PostgreSQL + pgvector implementation of `VectorStore`. Records of every
collection share the `vector_record` table; similarity is cosine
(`score = 1 - cosine_distance`) and metadata filters compile to JSONB
expressions through the `pgvector` filter translator.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import VectorMatch, VectorRecord
from .pg_models import VectorRow
from ..config import settings
from ..core.errors import VectorStoreError
from ..filters.algebra import VectorFilter
from ..filters.translators import pgvector

logger = logging.getLogger("rag.pgvector")


class PgVectorStore:
    """
    PostgreSQL-backed vector store using pgvector for similarity search.

    The store never commits; the session owner decides the transaction
    boundary (see `session_scope`), or calls `commit()`.
    """

    def __init__(
        self,
        session: AsyncSession,
        default_collection: Optional[str] = None,
    ) -> None:
        """
        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        default_collection : Optional[str]
            Collection used when a call passes none. Defaults to
            settings.default_collection.
        """
        self._session = session
        self._default_collection = default_collection or settings.default_collection

    async def commit(self) -> None:
        await self._session.commit()

    def _name(self, collection: Optional[str]) -> str:
        return collection or self._default_collection

    def build_query(
        self,
        vector: Sequence[float],
        top_k: int,
        filter: Optional[VectorFilter] = None,
        collection: Optional[str] = None,
    ):
        """Build the similarity SELECT without executing it."""
        cosine_distance = VectorRow.embedding.cosine_distance(list(vector))

        stmt = (
            select(VectorRow, (1 - cosine_distance).label("score"))
            .where(VectorRow.collection == self._name(collection))
            .order_by(cosine_distance)
            .limit(top_k)
        )

        if filter is not None:
            stmt = stmt.where(pgvector.translate(filter, VectorRow.attributes))

        return stmt

    # ------------------------------------------------------------------
    # VectorStore API
    # ------------------------------------------------------------------

    async def upsert(
        self,
        records: Sequence[VectorRecord],
        collection: Optional[str] = None,
    ) -> None:
        if not records:
            return

        name = self._name(collection)
        # Last write wins for duplicate ids within one batch.
        batch = {r.id: r for r in records}
        rows = [
            {
                "id": r.id,
                "collection": name,
                "tenant_id": r.tenant_id,
                "doc_id": r.doc_id,
                "version_id": r.version_id,
                "chunk_id": r.chunk_id,
                "source_uri": r.source_uri,
                "text": r.text,
                "record_metadata": dict(r.metadata),
                "attributes": r.filterable_attributes(),
                "embedding": list(r.vector),
            }
            for r in batch.values()
        ]

        stmt = pg_insert(VectorRow).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[VectorRow.id, VectorRow.collection],
            set_={
                "tenant_id": stmt.excluded["tenant_id"],
                "doc_id": stmt.excluded["doc_id"],
                "version_id": stmt.excluded["version_id"],
                "chunk_id": stmt.excluded["chunk_id"],
                "source_uri": stmt.excluded["source_uri"],
                "text": stmt.excluded["text"],
                "record_metadata": stmt.excluded["record_metadata"],
                "attributes": stmt.excluded["attributes"],
                "embedding": stmt.excluded["embedding"],
                "updated_at": func.now(),
            },
        )

        try:
            await self._session.execute(stmt)
            await self._session.flush()
        except SQLAlchemyError as exc:
            logger.error("Upsert of %d records into %s failed: %s", len(rows), name, exc)
            raise VectorStoreError(
                f"Upsert failed: {type(exc).__name__}",
                operation="upsert",
                collection=name,
                tenant_id=rows[0]["tenant_id"],
            ) from exc

    async def query(
        self,
        vector: Sequence[float],
        top_k: int,
        filter: Optional[VectorFilter] = None,
        collection: Optional[str] = None,
    ) -> List[VectorMatch]:
        name = self._name(collection)
        stmt = self.build_query(vector, top_k, filter, name)

        try:
            result = await self._session.execute(stmt)
            rows = result.all()
        except SQLAlchemyError as exc:
            logger.error("Similarity query on %s failed: %s", name, exc)
            raise VectorStoreError(
                f"Query failed: {type(exc).__name__}",
                operation="query",
                collection=name,
            ) from exc

        return [VectorMatch(record=self._to_record(row[0]), score=float(row.score)) for row in rows]

    async def delete(
        self,
        ids: Sequence[str],
        collection: Optional[str] = None,
    ) -> int:
        if not ids:
            return 0

        name = self._name(collection)
        stmt = delete(VectorRow).where(
            VectorRow.collection == name,
            VectorRow.id.in_(list(ids)),
        )

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error("Delete from %s failed: %s", name, exc)
            raise VectorStoreError(
                f"Delete failed: {type(exc).__name__}",
                operation="delete",
                collection=name,
            ) from exc

        return result.rowcount

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_record(row: VectorRow) -> VectorRecord:
        return VectorRecord(
            id=row.id,
            vector=[float(x) for x in row.embedding],
            text=row.text,
            metadata=dict(row.record_metadata or {}),
            source_uri=row.source_uri,
            doc_id=row.doc_id,
            chunk_id=row.chunk_id,
            tenant_id=row.tenant_id,
            version_id=row.version_id,
        )
