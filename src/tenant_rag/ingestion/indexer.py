"""
Indexer

Embeds chunks and upserts them into a vector store, tagging every record with
the tenant and document identifiers retrieval filters on.

Failure model
-------------
- An invalid tenant aborts before any I/O (`InvalidTenantError`).
- A failing embed or upsert batch is recorded per chunk in
  `IndexResult.errors`; the remaining batches still run.
- A `timeout` budget or a set `cancel_event` stops the run between (or
  during) batches. Unprocessed chunks are reported as `cancelled` failures.
- Cancellation of the calling task is not caught: `asyncio.CancelledError`
  propagates unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from .models import IndexFailure, IndexOptions, IndexResult
from ..chunking.models import Chunk
from ..config import settings
from ..embeddings.embedder import Embedder
from ..tenants import validate_tenant_id
from ..vectorstores.base import VectorStore
from ..vectorstores.models import VectorRecord

logger = logging.getLogger("rag.indexer")


class _Cancelled(Exception):
    pass


class Indexer:
    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        batch_size: Optional[int] = None,
    ) -> None:
        self._embedder = embedder
        self._store = vector_store
        self._batch_size = batch_size or settings.index_batch_size
        if self._batch_size <= 0:
            raise ValueError("batch_size must be positive")

    @staticmethod
    def build_record(chunk: Chunk, vector: List[float], options: IndexOptions, tenant_id: str) -> VectorRecord:
        """
        Build the stored record for one chunk.

        Identifier keys are written last so chunk metadata cannot shadow them.
        """
        metadata: Dict[str, Any] = dict(chunk.metadata)
        metadata["text"] = chunk.text
        metadata["tenant_id"] = tenant_id
        metadata["chunk_id"] = chunk.id
        metadata["start_index"] = chunk.start_index
        metadata["end_index"] = chunk.end_index
        source_uri = options.source_uri or chunk.metadata.get("source_uri")
        for key, value in (
            ("doc_id", options.doc_id),
            ("version_id", options.version_id),
            ("source_uri", source_uri),
        ):
            if value is not None:
                metadata[key] = value

        return VectorRecord(
            id=chunk.id,
            vector=vector,
            text=chunk.text,
            metadata=metadata,
            source_uri=source_uri if isinstance(source_uri, str) else None,
            doc_id=options.doc_id,
            chunk_id=chunk.id,
            tenant_id=tenant_id,
            version_id=options.version_id,
        )

    async def index(
        self,
        chunks: Sequence[Chunk],
        options: IndexOptions,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> IndexResult:
        """
        Embed and upsert `chunks` in batches.

        Parameters
        ----------
        chunks : Sequence[Chunk]
            Chunks to index, typically one document's worth.
        options : IndexOptions
            Tenant, document identifiers and target collection.
        timeout : Optional[float]
            Overall budget in seconds for the whole run.
        cancel_event : Optional[asyncio.Event]
            When set, the run stops and the rest is reported as cancelled.

        Returns
        -------
        IndexResult

        Raises
        ------
        InvalidTenantError
            If `options.tenant_id` is missing or malformed.
        """
        tenant_id = validate_tenant_id(options.tenant_id)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        errors: List[IndexFailure] = []
        chunks_indexed = 0
        vectors_created = 0
        cancelled = False

        for start in range(0, len(chunks), self._batch_size):
            batch = list(chunks[start : start + self._batch_size])

            try:
                vectors = await self._run(
                    lambda: self._embedder.embed([c.text for c in batch]), deadline, cancel_event
                )
                if len(vectors) != len(batch):
                    raise ValueError(
                        f"embedding count mismatch: expected {len(batch)}, got {len(vectors)}"
                    )
            except _Cancelled:
                cancelled = True
            except Exception as exc:
                logger.error(
                    "Embedding failed for batch of %d chunks (tenant=%s): %s",
                    len(batch), tenant_id, exc,
                )
                errors.extend(IndexFailure(chunk_id=c.id, stage="embed", message=str(exc)) for c in batch)
                chunks_indexed += len(batch)
                continue

            if not cancelled:
                records = [self.build_record(c, v, options, tenant_id) for c, v in zip(batch, vectors)]
                try:
                    await self._run(
                        lambda: self._store.upsert(records, options.collection_name), deadline, cancel_event
                    )
                except _Cancelled:
                    cancelled = True
                except Exception as exc:
                    logger.error(
                        "Upsert failed for batch of %d records (tenant=%s, collection=%s): %s",
                        len(records), tenant_id, options.collection_name, exc,
                    )
                    errors.extend(IndexFailure(chunk_id=c.id, stage="upsert", message=str(exc)) for c in batch)
                    chunks_indexed += len(batch)
                    continue
                else:
                    chunks_indexed += len(batch)
                    vectors_created += len(records)

            if cancelled:
                remaining = chunks[start:]
                errors.extend(
                    IndexFailure(chunk_id=c.id, stage="cancelled", message="indexing cancelled")
                    for c in remaining
                )
                logger.warning(
                    "Indexing cancelled after %d of %d chunks (tenant=%s)",
                    chunks_indexed, len(chunks), tenant_id,
                )
                break

        logger.info(
            "Indexed %d chunks, %d vectors, %d errors (tenant=%s, doc=%s)",
            chunks_indexed, vectors_created, len(errors), tenant_id, options.doc_id,
        )
        return IndexResult(
            chunks_indexed=chunks_indexed,
            vectors_created=vectors_created,
            errors=errors,
            cancelled=cancelled,
        )

    @staticmethod
    async def _run(start_call, deadline: Optional[float], cancel_event: Optional[asyncio.Event]):
        """
        Start and await `start_call()` unless the run is already cancelled
        or out of time.

        Raises `_Cancelled` when the budget runs out or `cancel_event` is set
        before the call completes.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise _Cancelled()

        remaining = None
        if deadline is not None:
            remaining = deadline - asyncio.get_running_loop().time()
            if remaining <= 0:
                raise _Cancelled()

        task = asyncio.ensure_future(start_call())
        waiters = {task}
        if cancel_event is not None:
            waiters.add(asyncio.ensure_future(cancel_event.wait()))

        try:
            done, _ = await asyncio.wait(waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            for waiter in waiters - {task}:
                waiter.cancel()

        # A TimeoutError raised by the call itself is a batch failure, not cancellation.
        if task in done:
            return task.result()

        task.cancel()
        raise _Cancelled()
