"""
RAG Service

retrieve -> compose -> (optionally) call the chat model.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from .composer import RagComposer
from .models import ChatRequest, RetrieveRequest, RetrieveResult
from .retriever import VectorRetriever
from ..llm.client import ChatClient

logger = logging.getLogger("rag.service")


class RagService:
    def __init__(
        self,
        retriever: VectorRetriever,
        composer: Optional[RagComposer] = None,
        chat_client: Optional[ChatClient] = None,
    ) -> None:
        self.retriever = retriever
        self.composer = composer or RagComposer()
        self.chat_client = chat_client

    async def augment(
        self,
        chat_request: ChatRequest,
        retrieve_request: RetrieveRequest,
    ) -> Tuple[ChatRequest, RetrieveResult]:
        retrieved = await self.retriever.retrieve(retrieve_request)
        return self.composer.compose(chat_request, retrieved), retrieved

    async def answer(
        self,
        chat_request: ChatRequest,
        retrieve_request: RetrieveRequest,
    ) -> Tuple[Dict[str, Any], RetrieveResult]:
        """
        Augment the request and send it to the chat model.

        Returns the assistant message and the retrieval it was grounded on.
        """
        if self.chat_client is None:
            raise RuntimeError("RagService.answer requires a chat client")

        augmented, retrieved = await self.augment(chat_request, retrieve_request)
        message = await self.chat_client.chat(augmented)
        logger.info(
            "Answered with %d sources (tenant=%s)",
            len(retrieved.chunks), retrieve_request.tenant_id,
        )
        return message, retrieved
