"""
Document loading, text extraction and metadata enrichment.

Each stage is a small class with one async method, so pipelines can swap any
of them (e.g. a loader that fetches from object storage) without touching the
others. The `DocumentLoader`, `TextExtractor` and `MetadataEnricher`
protocols describe what the pipeline expects.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Protocol
from urllib.parse import unquote, urlparse

from .models import Document
from ..chunking.models import Chunk

logger = logging.getLogger("rag.pipeline")

CONTENT_TYPES = {
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".html": "text/html",
    ".json": "application/json",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

TEXT_CONTENT_TYPES = {"text/plain", "text/markdown"}


class DocumentLoader(Protocol):
    async def load(self, source_uri: str) -> Document: ...


class TextExtractor(Protocol):
    async def extract(self, document: Document) -> str: ...


class MetadataEnricher(Protocol):
    async def enrich(self, chunk: Chunk, document: Document) -> Chunk: ...


# ---------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------

def content_type_for(path: str) -> str:
    return CONTENT_TYPES.get(Path(path).suffix.lower(), DEFAULT_CONTENT_TYPE)


def _local_path(source_uri: str) -> Path:
    parsed = urlparse(source_uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(source_uri)


class TextDocumentLoader:
    """
    Load documents from the local filesystem.

    Accepts plain paths and `file://` URIs. The content type is derived from
    the file extension.
    """

    async def load(self, source_uri: str) -> Document:
        path = _local_path(source_uri)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {source_uri}")

        content = await asyncio.to_thread(path.read_bytes)
        logger.info("Loaded document from %s (%d bytes)", source_uri, len(content))

        return Document(
            source_uri=source_uri,
            content=content,
            content_type=content_type_for(path.name),
            metadata={"file_name": path.name},
        )


# ---------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------

class PlainTextExtractor:
    """
    Decode document bytes as UTF-8.

    Plain text and markdown are decoded as-is; any other content type is
    decoded the same way after a warning.
    """

    async def extract(self, document: Document) -> str:
        text = document.content.decode("utf-8", errors="replace")
        if document.content_type in TEXT_CONTENT_TYPES:
            logger.debug("Extracted %s text (%d chars)", document.content_type, len(text))
        else:
            logger.warning(
                "Unknown content type %s for %s, attempting UTF-8 decode",
                document.content_type,
                document.source_uri,
            )
        return text


# ---------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------

class DefaultMetadataEnricher:
    """
    Merge document-level attributes into each chunk's metadata.

    Document metadata never overrides chunk metadata; `source_uri`,
    `content_type` and `created_at` are always set.
    """

    def __init__(self, clock: Optional[Any] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def enrich(self, chunk: Chunk, document: Document) -> Chunk:
        metadata: Dict[str, Any] = dict(document.metadata)
        metadata.update(chunk.metadata)
        metadata["source_uri"] = document.source_uri
        metadata["content_type"] = document.content_type
        metadata["created_at"] = self._clock().isoformat()
        return chunk.model_copy(update={"metadata": metadata})
