"""
Vector Store Package

The `VectorStore` interface, its record types, and the two bundled
implementations: a local FAISS store and a PostgreSQL + pgvector store.
"""

from .base import VectorStore
from .models import VectorMatch, VectorRecord
from .faiss_store import FaissVectorStore
from .pg_models import Base, VectorRow
from .pgvector_store import PgVectorStore
from .session import create_schema, get_engine, get_session_factory, session_scope

__all__ = [
    "VectorStore",
    "VectorMatch",
    "VectorRecord",
    "FaissVectorStore",
    "Base",
    "VectorRow",
    "PgVectorStore",
    "create_schema",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
