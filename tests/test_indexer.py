"""
Indexer Tests

The embedder and vector store are replaced by AsyncMocks or small fakes so
batching, failure accounting and cancellation can be checked in isolation.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from tenant_rag.chunking.models import Chunk
from tenant_rag.core.errors import VectorStoreError
from tenant_rag.embeddings.embedder import EmbeddingError
from tenant_rag.ingestion.indexer import Indexer
from tenant_rag.ingestion.models import IndexOptions
from tenant_rag.tenants import InvalidTenantError


def make_chunks(n, metadata=None):
    return [
        Chunk(
            id=f"c{i}",
            text=f"chunk text {i}",
            start_index=i * 20,
            end_index=i * 20 + 12,
            metadata={"chunk_index": i, "strategy": "fixed_size", **(metadata or {})},
        )
        for i in range(n)
    ]


@pytest.fixture
def embedder():
    mock = AsyncMock()
    mock.embed.side_effect = lambda texts: [[1.0, 0.0] for _ in texts]
    return mock


@pytest.fixture
def store():
    mock = AsyncMock()
    mock.upsert.return_value = None
    return mock


@pytest.fixture
def options():
    return IndexOptions(tenant_id="t1", doc_id="doc-1", version_id="v1", collection_name="docs")


class SlowEmbedder:
    def __init__(self, delay):
        self.delay = delay
        self.calls = 0

    async def embed(self, texts):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return [[1.0, 0.0] for _ in texts]


@pytest.mark.asyncio
async def test_indexes_in_batches(embedder, store, options):
    indexer = Indexer(embedder, store, batch_size=2)

    result = await indexer.index(make_chunks(3), options)

    assert result.succeeded
    assert result.chunks_indexed == 3
    assert result.vectors_created == 3
    assert not result.cancelled
    assert embedder.embed.await_count == 2
    assert store.upsert.await_count == 2

    records, collection = store.upsert.await_args_list[0].args
    assert collection == "docs"
    assert [r.id for r in records] == ["c0", "c1"]


@pytest.mark.asyncio
async def test_records_carry_identifiers(embedder, store, options):
    indexer = Indexer(embedder, store)
    chunks = make_chunks(1, metadata={"tenant_id": "someone-else", "topic": "rag"})

    await indexer.index(chunks, options)

    (record,), _ = store.upsert.await_args.args
    assert record.tenant_id == "t1"
    assert record.doc_id == "doc-1"
    assert record.version_id == "v1"
    assert record.chunk_id == "c0"
    assert record.metadata["tenant_id"] == "t1"
    assert record.metadata["chunk_id"] == "c0"
    assert record.metadata["text"] == "chunk text 0"
    assert record.metadata["topic"] == "rag"
    assert record.metadata["start_index"] == 0
    assert record.filterable_attributes()["tenant_id"] == "t1"


@pytest.mark.asyncio
async def test_invalid_tenant_rejected_before_io(embedder, store):
    indexer = Indexer(embedder, store)

    with pytest.raises(InvalidTenantError):
        await indexer.index(make_chunks(2), IndexOptions(tenant_id="bad tenant"))

    embedder.embed.assert_not_awaited()
    store.upsert.assert_not_awaited()


@pytest.mark.asyncio
async def test_embed_failure_is_recorded_per_chunk(embedder, store, options):
    embedder.embed.side_effect = EmbeddingError("boom")
    indexer = Indexer(embedder, store, batch_size=2)

    result = await indexer.index(make_chunks(3), options)

    assert not result.succeeded
    assert [e.stage for e in result.errors] == ["embed"] * 3
    assert result.vectors_created == 0
    store.upsert.assert_not_awaited()


@pytest.mark.asyncio
async def test_embedding_count_mismatch_is_an_embed_failure(embedder, store, options):
    embedder.embed.side_effect = lambda texts: [[1.0, 0.0]]
    indexer = Indexer(embedder, store, batch_size=2)

    result = await indexer.index(make_chunks(2), options)

    assert [e.chunk_id for e in result.errors] == ["c0", "c1"]
    assert all(e.stage == "embed" for e in result.errors)


@pytest.mark.asyncio
async def test_upsert_failure_does_not_stop_other_batches(embedder, store, options):
    store.upsert.side_effect = [VectorStoreError("down", operation="upsert"), None]
    indexer = Indexer(embedder, store, batch_size=2)

    result = await indexer.index(make_chunks(3), options)

    assert [e.stage for e in result.errors] == ["upsert", "upsert"]
    assert result.vectors_created == 1
    assert result.chunks_indexed == 3


@pytest.mark.asyncio
async def test_store_timeout_is_an_upsert_failure_not_cancellation(embedder, store, options):
    store.upsert.side_effect = [TimeoutError("db statement timeout"), None]
    indexer = Indexer(embedder, store, batch_size=2)

    result = await indexer.index(make_chunks(4), options)

    assert not result.cancelled
    assert [(e.chunk_id, e.stage) for e in result.errors] == [("c0", "upsert"), ("c1", "upsert")]
    assert "db statement timeout" in result.errors[0].message
    assert result.vectors_created == 2
    assert store.upsert.await_count == 2


@pytest.mark.asyncio
async def test_embedder_timeout_within_deadline_is_an_embed_failure(embedder, store, options):
    embedder.embed.side_effect = [asyncio.TimeoutError(), [[1.0, 0.0]]]
    indexer = Indexer(embedder, store, batch_size=2)

    result = await indexer.index(make_chunks(3), options, timeout=30)

    assert not result.cancelled
    assert [e.stage for e in result.errors] == ["embed", "embed"]
    assert result.vectors_created == 1


@pytest.mark.asyncio
async def test_cancel_event_already_set(embedder, store, options):
    event = asyncio.Event()
    event.set()
    indexer = Indexer(embedder, store)

    result = await indexer.index(make_chunks(3), options, cancel_event=event)

    assert result.cancelled
    assert [e.stage for e in result.errors] == ["cancelled"] * 3
    assert result.vectors_created == 0
    embedder.embed.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_event_set_during_run(store, options):
    event = asyncio.Event()
    slow = SlowEmbedder(delay=5)
    indexer = Indexer(slow, store, batch_size=1)

    async def cancel_soon():
        await asyncio.sleep(0.05)
        event.set()

    canceller = asyncio.create_task(cancel_soon())
    result = await indexer.index(make_chunks(2), options, cancel_event=event)
    await canceller

    assert result.cancelled
    assert slow.calls == 1
    assert len(result.errors) == 2


@pytest.mark.asyncio
async def test_timeout_reports_remaining_chunks(store, options):
    indexer = Indexer(SlowEmbedder(delay=5), store, batch_size=2)

    result = await indexer.index(make_chunks(3), options, timeout=0.05)

    assert result.cancelled
    assert len(result.errors) == 3
    assert all(e.stage == "cancelled" for e in result.errors)


@pytest.mark.asyncio
async def test_task_cancellation_propagates(store, options):
    indexer = Indexer(SlowEmbedder(delay=5), store)
    task = asyncio.create_task(indexer.index(make_chunks(1), options))
    await asyncio.sleep(0.05)

    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
