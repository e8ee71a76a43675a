"""
Embedding Client

OpenAI integration for generating text embeddings.
Model: text-embedding-3-small (1536 dimensions).

Design choices:
    - One client per process, built by the entry point and injected.
    - Requests are bounded by ``batch_size`` inputs and a timeout.
    - Mock mode (no key, or key ``"mock"``) returns deterministic
      pseudo-vectors so local runs need no API spend.
"""

from __future__ import annotations

import hashlib
import logging
import random
from collections.abc import Iterator, Sequence
from typing import TypeVar

import openai
from openai import AsyncOpenAI

from redress.core.config import Settings
from redress.core.exceptions import ConfigError, EmbeddingError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EmbeddingClient:
    """
    Async embedding client matching the provider's
    ``{model, input}`` → ``{data: [{embedding}]}`` contract.

    Usage::

        client = EmbeddingClient.from_settings(settings)
        for batch in client.iter_batches(texts):
            vectors = await client.embed(batch)
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        batch_size: int = 50,
        timeout: float = 30.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if batch_size < 1:
            raise ConfigError(f"batch_size must be positive, got {batch_size}")

        self._model = model
        self._dimension = dimension
        self._batch_size = batch_size
        self._mock = not api_key or api_key.lower() == "mock"

        if client is not None:
            self._client: AsyncOpenAI | None = client
            self._mock = False
        elif self._mock:
            self._client = None
            logger.warning("OPENAI_API_KEY not set: embeddings are mocked")
        else:
            self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=2)

    @classmethod
    def from_settings(cls, settings: Settings) -> EmbeddingClient:
        return cls(
            api_key=settings.OPENAI_API_KEY,
            model=settings.EMBEDDING_MODEL,
            dimension=settings.EMBEDDING_DIMENSION,
            batch_size=settings.EMBEDDING_BATCH_SIZE,
            timeout=settings.EMBEDDING_TIMEOUT,
        )

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def is_mocked(self) -> bool:
        return self._mock

    def iter_batches(self, items: Sequence[T]) -> Iterator[list[T]]:
        """Yield consecutive slices of at most ``batch_size`` items."""
        for start in range(0, len(items), self._batch_size):
            yield list(items[start : start + self._batch_size])

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed one batch of texts in a single provider request.

        Args:
            texts: At most ``batch_size`` strings.

        Returns:
            One vector per input, in input order.

        Raises:
            EmbeddingError: On provider failure, timeout or a response
                whose length does not match the input.
        """
        if not texts:
            return []
        if len(texts) > self._batch_size:
            raise EmbeddingError(
                f"Batch of {len(texts)} exceeds batch_size {self._batch_size}"
            )

        if self._client is None:
            return [self._mock_vector(text) for text in texts]

        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=list(texts),
            )
        except openai.OpenAIError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        vectors = [item.embedding for item in response.data]
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Provider returned {len(vectors)} embeddings for {len(texts)} inputs"
            )
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single search query."""
        vectors = await self.embed([text.replace("\n", " ")])
        return vectors[0]

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    def _mock_vector(self, text: str) -> list[float]:
        # Seeded by content so repeated runs produce identical vectors.
        seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
        rng = random.Random(seed)
        return [rng.uniform(-1.0, 1.0) for _ in range(self._dimension)]
