"""
Embedding Client

Async client for an OpenAI-compatible `/embeddings` endpoint. It is
responsible for:

- Batching inputs to stay under provider request limits
- Isolating transport errors behind `EmbeddingError`
- Strict response validation (one vector per input, in input order)

The client performs no caching and no retries, and is safe to reuse across
requests.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import httpx

from ..config import settings

logger = logging.getLogger("rag.embedder")


class EmbeddingError(RuntimeError):
    """Raised when embedding generation fails."""


class Embedder:
    """
    Asynchronous embedding generator for batches of text.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        batch_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        api_key : Optional[str]
            Override for the API key. Defaults to settings.openai_api_key.
        model : Optional[str]
            Override for the embedding model. Defaults to settings.embedding_model.
        base_url : Optional[str]
            API base URL (without `/embeddings`). Defaults to settings.openai_base_url.
        timeout : Optional[float]
            HTTP timeout for each request.
        batch_size : Optional[int]
            Default number of texts per request.
        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport, e.g. `httpx.MockTransport` in tests.
        """
        self.api_key = api_key or settings.openai_api_key.get_secret_value()
        self.model = model or settings.embedding_model
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.timeout = timeout or settings.embedding_timeout
        self.batch_size = batch_size or settings.embedding_batch_size
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(
        self,
        texts: Sequence[str],
        batch_size: Optional[int] = None,
    ) -> List[List[float]]:
        """
        Generate embeddings for a sequence of input texts.

        Parameters
        ----------
        texts : Sequence[str]
            Input texts.
        batch_size : Optional[int]
            Maximum texts per request. Defaults to the instance batch size.

        Returns
        -------
        List[List[float]]
            One vector per input text, in input order.

        Raises
        ------
        EmbeddingError
            If any batch fails or a response is malformed.
        """
        if not texts:
            return []

        size = batch_size or self.batch_size
        if size <= 0:
            raise ValueError("batch_size must be positive")

        vectors: List[List[float]] = []
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for start in range(0, len(texts), size):
                vectors.extend(await self._embed_batch(client, list(texts[start : start + size])))

        logger.debug("Embedded %d texts with %s", len(vectors), self.model)
        return vectors

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _embed_batch(self, client: httpx.AsyncClient, batch: List[str]) -> List[List[float]]:
        try:
            response = await client.post(
                f"{self.base_url}/embeddings",
                json={"model": self.model, "input": batch},
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            logger.error(
                "Embedding request for %d texts failed (%s): %s",
                len(batch), type(exc).__name__, exc,
            )
            raise EmbeddingError(f"Embedding generation failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON.") from exc

        vectors = self._extract_embeddings(data)
        if len(vectors) != len(batch):
            raise EmbeddingError(
                f"Embedding count mismatch: sent {len(batch)} texts, got {len(vectors)} vectors."
            )
        return vectors

    @staticmethod
    def _extract_embeddings(data: dict) -> List[List[float]]:
        """
        Parse and validate the embeddings payload.

        Expected shape:
            { "data": [ {"index": 0, "embedding": [...]}, ... ] }

        Records are returned in `index` order when every record has one.

        Raises
        ------
        EmbeddingError
            If the payload has an unexpected structure.
        """
        if not isinstance(data, dict) or "data" not in data:
            raise EmbeddingError("Embedding response missing 'data' field.")

        records = data["data"]
        if not isinstance(records, list):
            raise EmbeddingError("'data' field must be a list.")

        for position, record in enumerate(records):
            if not isinstance(record, dict) or "embedding" not in record:
                raise EmbeddingError(
                    f"Malformed embedding record at index {position}: {record!r}"
                )

        if all(isinstance(r.get("index"), int) for r in records):
            records = sorted(records, key=lambda r: r["index"])

        embeddings: List[List[float]] = []
        for position, record in enumerate(records):
            emb = record["embedding"]
            if not isinstance(emb, list) or not emb or not all(
                isinstance(x, (float, int)) and not isinstance(x, bool) for x in emb
            ):
                raise EmbeddingError(
                    f"Invalid embedding vector at index {position}: must be a non-empty float list."
                )
            embeddings.append([float(x) for x in emb])

        return embeddings
