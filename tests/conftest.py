"""
Pytest Configuration and Fixtures

Shared fixtures and in-memory fakes. Nothing here needs a network
connection, a database or an API key.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults: MUST be set before Settings is first built.
#
# 1. Load .env first so local credentials are visible.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()

_test_env = {
    "POSTGRES_USER": "redress",
    "POSTGRES_PASSWORD": "redress_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "redress_db",
    "OPENAI_API_KEY": "mock",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import math  # noqa: E402
import uuid  # noqa: E402
from collections.abc import Sequence  # noqa: E402

import pytest  # noqa: E402

from redress.core.exceptions import StoreError  # noqa: E402
from redress.models.schemas import DocumentRow, RetrievalResult  # noqa: E402
from redress.services.embedding import EmbeddingClient  # noqa: E402


def _cosine(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryVectorStore:
    """
    Dict-backed stand-in for ``VectorStore`` keyed on content.

    Honours the same contract: re-upserting content replaces the
    embedding and metadata of the existing row and keeps its id.
    """

    def __init__(self) -> None:
        self.rows: dict[str, dict] = {}
        self.upsert_calls = 0
        self.fail_upserts_on: set[int] = set()  # 1-based call numbers
        self.fail_search = False

    async def upsert(self, rows: Sequence[DocumentRow]) -> int:
        self.upsert_calls += 1
        if self.upsert_calls in self.fail_upserts_on:
            raise StoreError(f"simulated failure on upsert #{self.upsert_calls}")
        for row in rows:
            existing = self.rows.get(row.content)
            self.rows[row.content] = {
                "id": existing["id"] if existing else uuid.uuid4(),
                "embedding": row.embedding,
                "metadata": row.metadata,
            }
        return len({row.content for row in rows})

    async def match_documents(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[RetrievalResult]:
        if self.fail_search:
            raise StoreError("simulated search failure")
        scored = [
            (_cosine(query_embedding, row["embedding"]), content, row)
            for content, row in self.rows.items()
        ]
        scored = [item for item in scored if item[0] >= match_threshold]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            RetrievalResult(
                id=row["id"],
                content=content,
                metadata=row["metadata"],
                similarity=round(score, 4),
            )
            for score, content, row in scored[:match_count]
        ]

    async def count(self) -> int:
        return len(self.rows)


@pytest.fixture
def store() -> InMemoryVectorStore:
    """Empty in-memory vector store."""
    return InMemoryVectorStore()


@pytest.fixture
def embedder() -> EmbeddingClient:
    """Mock-mode embedding client: deterministic vectors, no network."""
    return EmbeddingClient(api_key="mock", dimension=16, batch_size=4)
