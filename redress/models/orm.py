"""
Knowledge Store Database Models

SQLAlchemy 2.0 ORM model for the embedded legal knowledge base.
Uses pgvector for cosine similarity search.

Tables:
    documents — One row per unique chunk of legal text, with its
                1536-dim embedding (text-embedding-3-small).
"""

from __future__ import annotations

import uuid
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import Text, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from redress.models.base import Base, TimestampMixin

# Embedding dimension for text-embedding-3-small
EMBEDDING_DIMENSION: int = 1536


class DocumentRecord(TimestampMixin, Base):
    """
    Persistent storage for embedded chunks of legal text.

    ``content`` is the natural key: the unique constraint is the conflict
    target of the upsert, so re-ingesting unchanged text replaces the
    embedding in place instead of adding a row.

    Attributes:
        id: UUID primary key (generated Python-side).
        content: Chunk text, unique across the table.
        embedding: 1536-dim vector, written together with content.
        doc_metadata: JSONB blob; always has ``source`` and ``source_tag``.
    """

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("content", name="uq_documents_content"),)

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float]] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=False,
    )
    doc_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
    )

    def __repr__(self) -> str:
        return f"<DocumentRecord(id={self.id!s:.8}, source='{self.doc_metadata.get('source')}')>"
