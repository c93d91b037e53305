"""
Database Session Tests

The session factory and engine are replaced with AsyncMocks, so no database is needed.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tenant_rag.vectorstores import session as session_module
from tenant_rag.vectorstores.pg_models import Base
from tenant_rag.vectorstores.session import create_schema, session_scope


@pytest.fixture
def db_session():
    session = AsyncMock()
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    factory.return_value.__aexit__.return_value = False
    with patch.object(session_module, "get_session_factory", return_value=factory):
        yield session


class TestSessionScope:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, db_session):
        async with session_scope() as session:
            assert session is db_session
            await session.execute("SELECT 1")

        db_session.commit.assert_awaited_once()
        db_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises_on_error(self, db_session):
        with pytest.raises(RuntimeError, match="write failed"):
            async with session_scope():
                raise RuntimeError("write failed")

        db_session.rollback.assert_awaited_once()
        db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_commit_rolls_back(self, db_session):
        db_session.commit.side_effect = RuntimeError("commit failed")

        with pytest.raises(RuntimeError, match="commit failed"):
            async with session_scope():
                pass

        db_session.rollback.assert_awaited_once()


class TestCreateSchema:
    @pytest.mark.asyncio
    async def test_creates_extension_and_tables(self):
        conn = AsyncMock()
        engine = MagicMock()
        engine.begin.return_value.__aenter__.return_value = conn
        engine.begin.return_value.__aexit__.return_value = False

        with patch.object(session_module, "get_engine", return_value=engine):
            await create_schema()

        statement = conn.execute.await_args.args[0]
        assert str(statement) == "CREATE EXTENSION IF NOT EXISTS vector"
        conn.run_sync.assert_awaited_once_with(Base.metadata.create_all)
