"""
Ingestion Pipeline

load -> extract -> chunk -> enrich -> index, for one document or a batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from .documents import (
    DefaultMetadataEnricher,
    DocumentLoader,
    MetadataEnricher,
    PlainTextExtractor,
    TextDocumentLoader,
    TextExtractor,
)
from .indexer import Indexer
from .models import BatchIndexResult, BatchIngestionError, Document, IndexOptions, IndexResult
from ..chunking.models import ChunkOptions
from ..chunking.registry import Chunker
from ..config import settings
from ..tenants import validate_tenant_id

logger = logging.getLogger("rag.pipeline")


class IngestionPipeline:
    def __init__(
        self,
        indexer: Indexer,
        loader: Optional[DocumentLoader] = None,
        extractor: Optional[TextExtractor] = None,
        chunker: Optional[Chunker] = None,
        enricher: Optional[MetadataEnricher] = None,
    ) -> None:
        self.indexer = indexer
        self.loader = loader or TextDocumentLoader()
        self.extractor = extractor or PlainTextExtractor()
        self.chunker = chunker or Chunker()
        self.enricher = enricher or DefaultMetadataEnricher()

    async def ingest(
        self,
        source_uri: str,
        options: IndexOptions,
        chunk_options: Optional[ChunkOptions] = None,
    ) -> IndexResult:
        """
        Load, chunk and index one document.

        `options.source_uri` is filled in from `source_uri` when unset.
        """
        validate_tenant_id(options.tenant_id)
        document = await self.loader.load(source_uri)
        text = await self.extractor.extract(document)
        return await self._index_document(document, text, options, chunk_options)

    async def ingest_text(
        self,
        text: str,
        options: IndexOptions,
        chunk_options: Optional[ChunkOptions] = None,
        source_uri: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> IndexResult:
        """Chunk and index text that is already in memory."""
        validate_tenant_id(options.tenant_id)
        uri = source_uri or options.source_uri or f"text://{options.doc_id or 'inline'}"
        document = Document(
            source_uri=uri,
            content=text.encode("utf-8"),
            content_type="text/plain",
            metadata=metadata or {},
        )
        return await self._index_document(document, text, options, chunk_options)

    async def ingest_batch(
        self,
        source_uris: Sequence[str],
        options: IndexOptions,
        chunk_options: Optional[ChunkOptions] = None,
        max_concurrency: Optional[int] = None,
    ) -> BatchIndexResult:
        """
        Ingest several documents concurrently.

        A document that fails is logged and reported in `errors`; the others
        still run. `options.source_uri` is replaced per document.
        """
        validate_tenant_id(options.tenant_id)
        semaphore = asyncio.Semaphore(max_concurrency or settings.ingest_max_concurrency)

        async def run(uri: str):
            async with semaphore:
                try:
                    per_doc = options.model_copy(update={"source_uri": uri})
                    return await self.ingest(uri, per_doc, chunk_options)
                except Exception as exc:
                    logger.exception("Ingestion failed for %s", uri)
                    return BatchIngestionError(source_uri=uri, message=f"{type(exc).__name__}: {exc}")

        outcomes = await asyncio.gather(*(run(uri) for uri in source_uris))

        results: List[IndexResult] = [o for o in outcomes if isinstance(o, IndexResult)]
        errors: List[BatchIngestionError] = [o for o in outcomes if isinstance(o, BatchIngestionError)]

        logger.info(
            "Batch ingestion finished: %d documents, %d failed (tenant=%s)",
            len(source_uris), len(errors), options.tenant_id,
        )
        return BatchIndexResult(results=results, errors=errors)

    async def _index_document(
        self,
        document: Document,
        text: str,
        options: IndexOptions,
        chunk_options: Optional[ChunkOptions],
    ) -> IndexResult:
        if options.source_uri is None:
            options = options.model_copy(update={"source_uri": document.source_uri})

        chunks = self.chunker.chunk(text, chunk_options)
        if not chunks:
            logger.warning("No content chunks for %s, skipped.", document.source_uri)
            return IndexResult()

        enriched = [await self.enricher.enrich(c, document) for c in chunks]
        return await self.indexer.index(enriched, options)
