"""
RAG Composer

Merges retrieved chunks into a chat request as a system-message context
block. The request is never mutated; a new one is returned.

Context layout
--------------
    Use the following context to answer the question. Cite sources when possible.

    [Source 1]
    Source: <source_uri>
    Document: <doc_id>
    Content: <chunk text>

    [Source 2]
    ...
"""

from __future__ import annotations

import logging
from typing import List

from .models import ChatMessage, ChatRequest, RetrieveResult

logger = logging.getLogger("rag.composer")

CONTEXT_INSTRUCTION = (
    "Use the following context to answer the question. Cite sources when possible."
)


class RagComposer:
    def render_context(self, retrieved: RetrieveResult) -> str:
        blocks: List[str] = [CONTEXT_INSTRUCTION]
        for number, rag_chunk in enumerate(retrieved.chunks, start=1):
            lines = [f"[Source {number}]"]
            if rag_chunk.source_uri:
                lines.append(f"Source: {rag_chunk.source_uri}")
            if rag_chunk.doc_id:
                lines.append(f"Document: {rag_chunk.doc_id}")
            lines.append(f"Content: {rag_chunk.chunk.text}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def compose(self, request: ChatRequest, retrieved: RetrieveResult) -> ChatRequest:
        """
        Return `request` with the retrieved context as its system message.

        With no retrieved chunks the original request object is returned.
        Existing system messages are folded into the single leading system
        message after the context, in their original order.
        """
        if not retrieved.chunks:
            logger.warning("No chunks retrieved; chat request left unaugmented")
            return request

        context = self.render_context(retrieved)

        system_contents = [m.content for m in request.messages if m.role == "system"]
        others = [m for m in request.messages if m.role != "system"]

        if system_contents:
            content = "\n\n".join([context, *system_contents])
        else:
            content = context

        messages = [ChatMessage(role="system", content=content), *others]
        logger.debug(
            "Composed %d sources into %d messages (%d system merged)",
            len(retrieved.chunks), len(messages), len(system_contents),
        )
        return request.model_copy(update={"messages": messages})
