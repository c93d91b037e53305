"""
SQLAlchemy Models

Defines the PostgreSQL schema for vector records stored with pgvector.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, DateTime, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class VectorRow(Base):
    """
    One vector record within a collection.

    `attributes` holds the record's filterable attributes (metadata merged
    with its identifiers) and is what metadata filters are compiled against.
    The embedding column is declared without a fixed dimension so collections
    can use any embedding model.
    """
    __tablename__ = "vector_record"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    collection: Mapped[str] = mapped_column(String(100), primary_key=True)
    tenant_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    doc_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    chunk_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_uri: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    record_metadata: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    attributes: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    embedding = Column(Vector(), nullable=False)

    __table_args__ = (
        Index("idx_vector_record_tenant", "collection", "tenant_id"),
        Index("idx_vector_record_doc", "collection", "doc_id"),
    )
