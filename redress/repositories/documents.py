"""
Vector Store Repository

Data access layer for the embedded legal knowledge base.
Provides content-keyed upserts and cosine similarity search via pgvector.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from redress.core.exceptions import StoreError
from redress.models.orm import DocumentRecord
from redress.models.schemas import DocumentRow, RetrievalResult

logger = logging.getLogger(__name__)


class VectorStore:
    """
    Repository for the ``documents`` table.

    Each method opens its own session from the injected factory, so
    concurrent searches never share an ``AsyncSession``.

    Key guarantees:
        - ``upsert``: one ``INSERT ... ON CONFLICT (content) DO UPDATE``
          statement per batch. Content and embedding are written together
          and unchanged content never produces a second row.
        - ``match_documents``: rows at or above the similarity threshold,
          highest similarity first, at most ``match_count`` rows.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def upsert(self, rows: Sequence[DocumentRow]) -> int:
        """
        Insert rows, replacing embedding and metadata on content conflict.

        Args:
            rows: Content/embedding/metadata triples.

        Returns:
            Number of distinct rows written.

        Raises:
            StoreError: If the statement fails. Nothing from the batch
                is committed in that case.
        """
        # Postgres rejects a statement that touches the same conflict key twice.
        by_content = {row.content: row for row in rows}
        if not by_content:
            return 0

        stmt = insert(DocumentRecord).values(
            [
                {
                    "id": uuid.uuid4(),
                    "content": row.content,
                    "embedding": row.embedding,
                    "doc_metadata": row.metadata,
                }
                for row in by_content.values()
            ]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DocumentRecord.content],
            set_={
                DocumentRecord.embedding: stmt.excluded.embedding,
                DocumentRecord.doc_metadata: stmt.excluded["metadata"],
                DocumentRecord.updated_at: func.now(),
            },
        )

        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Upsert of {len(by_content)} rows failed: {exc}") from exc

        logger.debug("Upserted %d rows", len(by_content))
        return len(by_content)

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def match_documents(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[RetrievalResult]:
        """
        Search documents by cosine similarity against a query vector.

        Similarity is ``1 - cosine_distance``; filtering on distance
        keeps the HNSW index usable for the ordering.

        Raises:
            StoreError: If the query fails.
        """
        distance = DocumentRecord.embedding.cosine_distance(query_embedding)
        stmt = (
            select(
                DocumentRecord.id,
                DocumentRecord.content,
                DocumentRecord.doc_metadata,
                distance.label("distance"),
            )
            .where(distance <= 1.0 - match_threshold)
            .order_by(distance)
            .limit(match_count)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Similarity search failed: {exc}") from exc

        return [
            RetrievalResult(
                id=row.id,
                content=row.content,
                metadata=row.doc_metadata or {},
                similarity=round(1.0 - float(row.distance), 4),
            )
            for row in rows
        ]

    async def count(self) -> int:
        """Total number of stored documents."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(func.count(DocumentRecord.id)))
                return int(result.scalar_one())
        except SQLAlchemyError as exc:
            raise StoreError(f"Count failed: {exc}") from exc
