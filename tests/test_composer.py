"""
Composer and RAG Service Tests
"""

from unittest.mock import AsyncMock

import pytest

from tenant_rag.chunking.models import Chunk
from tenant_rag.rag.composer import CONTEXT_INSTRUCTION, RagComposer
from tenant_rag.rag.models import ChatMessage, ChatRequest, RagChunk, RetrieveRequest, RetrieveResult
from tenant_rag.rag.service import RagService


def rag_chunk(text, source_uri=None, doc_id=None, score=0.5):
    return RagChunk(
        chunk=Chunk(id=f"id-{text}", text=text, start_index=0, end_index=len(text)),
        score=score,
        source_uri=source_uri,
        doc_id=doc_id,
    )


def chat(*messages, **kwargs):
    return ChatRequest(messages=[ChatMessage(role=r, content=c) for r, c in messages], **kwargs)


class TestRagComposer:
    def test_no_chunks_returns_same_request(self, caplog):
        request = chat(("user", "hi"))

        with caplog.at_level("WARNING", logger="rag.composer"):
            composed = RagComposer().compose(request, RetrieveResult())

        assert composed is request
        assert "unaugmented" in caplog.text

    def test_adds_system_message_first(self):
        request = chat(("user", "What is RAG?"), temperature=0.3)
        retrieved = RetrieveResult(chunks=[rag_chunk("RAG retrieves context.")])

        composed = RagComposer().compose(request, retrieved)

        assert [m.role for m in composed.messages] == ["system", "user"]
        assert composed.messages[0].content.startswith(CONTEXT_INSTRUCTION)
        assert "[Source 1]\nContent: RAG retrieves context." in composed.messages[0].content
        assert composed.messages[1].content == "What is RAG?"
        assert composed.temperature == 0.3
        assert [m.role for m in request.messages] == ["user"]

    def test_existing_system_messages_are_merged(self):
        request = chat(
            ("system", "Be brief."),
            ("user", "q1"),
            ("assistant", "a1"),
            ("system", "Answer in English."),
            ("user", "q2"),
        )
        retrieved = RetrieveResult(chunks=[rag_chunk("ctx")])

        composed = RagComposer().compose(request, retrieved)

        assert [m.role for m in composed.messages] == ["system", "user", "assistant", "user"]
        system = composed.messages[0].content
        assert system.endswith("Be brief.\n\nAnswer in English.")
        assert system.index("Content: ctx") < system.index("Be brief.")

    def test_source_and_document_lines(self):
        retrieved = RetrieveResult(chunks=[
            rag_chunk("first", source_uri="docs/a.md", doc_id="a"),
            rag_chunk("second"),
        ])

        context = RagComposer().render_context(retrieved)

        assert context == (
            f"{CONTEXT_INSTRUCTION}\n\n"
            "[Source 1]\nSource: docs/a.md\nDocument: a\nContent: first\n\n"
            "[Source 2]\nContent: second"
        )


class TestRagService:
    @pytest.fixture
    def retriever(self):
        mock = AsyncMock()
        mock.retrieve.return_value = RetrieveResult(chunks=[rag_chunk("ctx", doc_id="d")])
        return mock

    @pytest.mark.asyncio
    async def test_augment(self, retriever):
        service = RagService(retriever)
        retrieve_request = RetrieveRequest(query="q", tenant_id="t1")

        augmented, retrieved = await service.augment(chat(("user", "q")), retrieve_request)

        retriever.retrieve.assert_awaited_once_with(retrieve_request)
        assert augmented.messages[0].role == "system"
        assert retrieved.chunks[0].doc_id == "d"

    @pytest.mark.asyncio
    async def test_answer_requires_chat_client(self, retriever):
        with pytest.raises(RuntimeError, match="chat client"):
            await RagService(retriever).answer(chat(("user", "q")), RetrieveRequest(query="q", tenant_id="t1"))

        retriever.retrieve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_answer_sends_augmented_request(self, retriever):
        client = AsyncMock()
        client.chat.return_value = {"role": "assistant", "content": "42"}
        service = RagService(retriever, chat_client=client)

        message, retrieved = await service.answer(
            chat(("user", "q")), RetrieveRequest(query="q", tenant_id="t1")
        )

        assert message == {"role": "assistant", "content": "42"}
        assert len(retrieved.chunks) == 1
        sent = client.chat.await_args.args[0]
        assert sent.messages[0].role == "system"
        assert "Content: ctx" in sent.messages[0].content
