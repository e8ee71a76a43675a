"""
Vector Store Repository Unit Tests

Verifies the SQL the repository issues (content-keyed upsert, cosine
ordering) and that database failures surface as StoreError.

Sessions are faked; statements are compiled with the PostgreSQL
dialect instead of being executed.
"""

from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from redress.core.exceptions import StoreError
from redress.models.schemas import DocumentRow
from redress.repositories.documents import VectorStore

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeResult:
    def __init__(self, rows) -> None:
        self._rows = rows

    def all(self):
        return self._rows

    def scalar_one(self):
        return self._rows


class FakeSession:
    def __init__(self, owner: FakeSessionFactory) -> None:
        self._owner = owner

    async def __aenter__(self) -> FakeSession:
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False

    async def execute(self, stmt):
        if self._owner.error is not None:
            raise self._owner.error
        self._owner.statements.append(stmt)
        return FakeResult(self._owner.rows)

    async def commit(self) -> None:
        self._owner.commits += 1


class FakeSessionFactory:
    def __init__(self, rows=None, error: Exception | None = None) -> None:
        self.rows = rows if rows is not None else []
        self.error = error
        self.statements: list = []
        self.commits = 0

    def __call__(self) -> FakeSession:
        return FakeSession(self)


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def _row(content: str, source: str = "https://example.org") -> DocumentRow:
    return DocumentRow(content=content, embedding=[0.1, 0.2, 0.3], metadata={"source": source})


# ---------------------------------------------------------------------------
# Upsert
# ---------------------------------------------------------------------------


class TestUpsert:
    @pytest.mark.asyncio
    async def test_single_statement_with_conflict_on_content(self) -> None:
        factory = FakeSessionFactory()
        store = VectorStore(factory)

        written = await store.upsert([_row("A"), _row("B")])

        assert written == 2
        assert factory.commits == 1
        (stmt,) = factory.statements
        sql = _sql(stmt)
        assert sql.startswith("INSERT INTO documents")
        assert "ON CONFLICT (content) DO UPDATE SET" in sql
        assert "embedding = excluded.embedding" in sql
        assert "metadata = excluded.metadata" in sql

    @pytest.mark.asyncio
    async def test_duplicate_content_in_batch_collapses(self) -> None:
        factory = FakeSessionFactory()

        written = await VectorStore(factory).upsert(
            [_row("A", "https://one"), _row("A", "https://two"), _row("B")]
        )

        assert written == 2
        params = factory.statements[0].compile(dialect=postgresql.dialect()).params
        assert {"source": "https://two"} in params.values()
        assert {"source": "https://one"} not in params.values()

    @pytest.mark.asyncio
    async def test_empty_batch_skips_the_database(self) -> None:
        factory = FakeSessionFactory()

        assert await VectorStore(factory).upsert([]) == 0
        assert factory.statements == []

    @pytest.mark.asyncio
    async def test_database_error_becomes_store_error(self) -> None:
        factory = FakeSessionFactory(error=OperationalError("INSERT", {}, Exception("gone")))

        with pytest.raises(StoreError, match="Upsert of 1 rows failed"):
            await VectorStore(factory).upsert([_row("A")])
        assert factory.commits == 0


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class TestMatchDocuments:
    @pytest.mark.asyncio
    async def test_orders_by_cosine_distance(self) -> None:
        factory = FakeSessionFactory()

        await VectorStore(factory).match_documents([0.1, 0.2, 0.3], 0.5, 7)

        sql = _sql(factory.statements[0])
        assert "<=>" in sql
        assert "ORDER BY" in sql
        assert "LIMIT" in sql

    @pytest.mark.asyncio
    async def test_similarity_is_one_minus_distance(self) -> None:
        doc_id = uuid.uuid4()
        rows = [
            SimpleNamespace(
                id=doc_id,
                content="Section 11 repairing obligations.",
                doc_metadata={"source": "https://www.legislation.gov.uk/ukpga/1985/70"},
                distance=0.25,
            ),
            SimpleNamespace(id=uuid.uuid4(), content="Orphan.", doc_metadata=None, distance=0.4),
        ]

        results = await VectorStore(FakeSessionFactory(rows=rows)).match_documents(
            [0.1, 0.2, 0.3], 0.5, 7
        )

        assert results[0].id == doc_id
        assert results[0].similarity == 0.75
        assert results[0].source == "https://www.legislation.gov.uk/ukpga/1985/70"
        assert results[1].metadata == {}

    @pytest.mark.asyncio
    async def test_database_error_becomes_store_error(self) -> None:
        factory = FakeSessionFactory(error=OperationalError("SELECT", {}, Exception("gone")))

        with pytest.raises(StoreError, match="Similarity search failed"):
            await VectorStore(factory).match_documents([0.1], 0.5, 7)


@pytest.mark.asyncio
async def test_count() -> None:
    assert await VectorStore(FakeSessionFactory(rows=42)).count() == 42
