"""
PgVector Store Tests

Statements are compiled against the PostgreSQL dialect and the session is an
AsyncMock, so no database is needed.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from tenant_rag.core.errors import VectorStoreError
from tenant_rag.filters.algebra import eq
from tenant_rag.vectorstores.models import VectorRecord
from tenant_rag.vectorstores.pg_models import VectorRow
from tenant_rag.vectorstores.pgvector_store import PgVectorStore


def compile_sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.fixture
def session():
    return AsyncMock()


class TestBuildQuery:
    def test_cosine_similarity_select(self, session):
        stmt = PgVectorStore(session).build_query([0.1, 0.2], top_k=3, collection="docs")
        sql = compile_sql(stmt)

        assert "vector_record" in sql
        assert "<=>" in sql
        assert "score" in sql
        assert "LIMIT" in sql
        assert "->>" not in sql

    def test_filter_compiles_against_attributes(self, session):
        stmt = PgVectorStore(session).build_query([0.1, 0.2], 3, eq("tenant_id", "t1"), "docs")
        sql = compile_sql(stmt)

        assert "vector_record.attributes ->>" in sql


class TestUpsert:
    @pytest.mark.asyncio
    async def test_upsert_uses_on_conflict(self, session):
        store = PgVectorStore(session, default_collection="docs")
        records = [
            VectorRecord(id="a", vector=[1.0, 0.0], text="x", tenant_id="t1", metadata={"k": "v"}),
            VectorRecord(id="a", vector=[0.0, 1.0], text="y", tenant_id="t1"),
        ]

        await store.upsert(records)

        stmt = session.execute.await_args.args[0]
        sql = compile_sql(stmt)
        assert "ON CONFLICT (id, collection) DO UPDATE" in sql
        assert "updated_at" in sql
        session.flush.assert_awaited_once()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_upsert_is_a_no_op(self, session):
        await PgVectorStore(session).upsert([])
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_error_is_wrapped(self, session):
        session.execute.side_effect = SQLAlchemyError("boom")
        store = PgVectorStore(session)

        with pytest.raises(VectorStoreError) as excinfo:
            await store.upsert([VectorRecord(id="a", vector=[1.0], tenant_id="t1")], "docs")

        assert excinfo.value.operation == "upsert"
        assert excinfo.value.collection == "docs"
        assert excinfo.value.tenant_id == "t1"


class TestQuery:
    @pytest.mark.asyncio
    async def test_rows_become_matches(self, session):
        row = MagicMock()
        row.__getitem__.return_value = VectorRow(
            id="a",
            collection="docs",
            tenant_id="t1",
            doc_id="d1",
            text="hello",
            record_metadata={"chunk_index": 0},
            embedding=[1.0, 0.0],
        )
        row.score = 0.75
        result = MagicMock()
        result.all.return_value = [row]
        session.execute.return_value = result

        matches = await PgVectorStore(session).query([1.0, 0.0], 1, collection="docs")

        assert len(matches) == 1
        assert matches[0].score == 0.75
        assert matches[0].record.id == "a"
        assert matches[0].record.tenant_id == "t1"
        assert matches[0].record.metadata == {"chunk_index": 0}
        assert matches[0].record.vector == [1.0, 0.0]

    @pytest.mark.asyncio
    async def test_query_error_is_wrapped(self, session):
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(VectorStoreError) as excinfo:
            await PgVectorStore(session).query([1.0], 1, collection="docs")

        assert excinfo.value.operation == "query"


class TestDelete:
    @pytest.mark.asyncio
    async def test_returns_rowcount(self, session):
        session.execute.return_value = MagicMock(rowcount=2)

        assert await PgVectorStore(session).delete(["a", "b"], "docs") == 2

    @pytest.mark.asyncio
    async def test_no_ids(self, session):
        assert await PgVectorStore(session).delete([]) == 0
        session.execute.assert_not_awaited()
