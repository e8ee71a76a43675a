"""
Embedding Client Unit Tests

Tests for the embedding client with a mocked OpenAI client.
No external API calls - runs without network or API keys.
"""

from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from redress.core.exceptions import ConfigError, EmbeddingError
from redress.services.embedding import EmbeddingClient


def _response(*vectors):
    # Dynamically create response object matching OpenAI SDK structure
    items = [type("Item", (), {"embedding": v}) for v in vectors]
    return type("Response", (), {"data": items})


@pytest.mark.asyncio
async def test_embed_calls_openai():
    """
    Verify embed calls the OpenAI API correctly when an API key is present.

    Validates:
        - Correct model selection (text-embedding-3-small)
        - The whole batch goes out in one request, in order
        - Response parsing
    """
    with patch("redress.services.embedding.AsyncOpenAI") as MockClient:
        mock_instance = MockClient.return_value
        mock_instance.embeddings.create = AsyncMock(
            return_value=_response([0.1] * 1536, [0.2] * 1536)
        )

        client = EmbeddingClient(api_key="sk-test")
        vectors = await client.embed(["Section 11", "Awaab's Law"])

        assert not client.is_mocked
        assert [v[0] for v in vectors] == [0.1, 0.2]
        assert all(len(v) == 1536 for v in vectors)
        mock_instance.embeddings.create.assert_called_once()
        _, kwargs = mock_instance.embeddings.create.call_args
        assert kwargs["model"] == "text-embedding-3-small"
        assert kwargs["input"] == ["Section 11", "Awaab's Law"]


@pytest.mark.asyncio
async def test_embed_query_flattens_newlines():
    with patch("redress.services.embedding.AsyncOpenAI") as MockClient:
        mock_instance = MockClient.return_value
        mock_instance.embeddings.create = AsyncMock(return_value=_response([0.3] * 1536))

        vector = await EmbeddingClient(api_key="sk-test").embed_query("damp\nand mould")

        assert vector[0] == 0.3
        _, kwargs = mock_instance.embeddings.create.call_args
        assert kwargs["input"] == ["damp and mould"]


@pytest.mark.asyncio
async def test_provider_error_becomes_embedding_error():
    with patch("redress.services.embedding.AsyncOpenAI") as MockClient:
        request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
        MockClient.return_value.embeddings.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=request)
        )

        with pytest.raises(EmbeddingError, match="Embedding request failed"):
            await EmbeddingClient(api_key="sk-test").embed(["text"])


@pytest.mark.asyncio
async def test_length_mismatch_is_an_error():
    with patch("redress.services.embedding.AsyncOpenAI") as MockClient:
        MockClient.return_value.embeddings.create = AsyncMock(
            return_value=_response([0.1] * 1536)
        )

        with pytest.raises(EmbeddingError, match="1 embeddings for 2 inputs"):
            await EmbeddingClient(api_key="sk-test").embed(["one", "two"])


@pytest.mark.asyncio
async def test_oversized_batch_is_rejected():
    client = EmbeddingClient(api_key="mock", batch_size=2)

    with pytest.raises(EmbeddingError):
        await client.embed(["a", "b", "c"])


@pytest.mark.asyncio
async def test_mock_mode_is_deterministic():
    """Mock vectors depend on content only, so re-runs are reproducible."""
    first = EmbeddingClient(api_key="", dimension=8)
    second = EmbeddingClient(api_key="mock", dimension=8)

    a1, b1 = await first.embed(["alpha", "beta"])
    (a2,) = await second.embed(["alpha"])

    assert first.is_mocked and second.is_mocked
    assert a1 == a2
    assert a1 != b1
    assert len(a1) == 8


@pytest.mark.asyncio
async def test_empty_input():
    assert await EmbeddingClient(api_key="mock").embed([]) == []


def test_iter_batches():
    client = EmbeddingClient(api_key="mock", batch_size=3)

    assert list(client.iter_batches(list(range(7)))) == [[0, 1, 2], [3, 4, 5], [6]]


def test_invalid_batch_size():
    with pytest.raises(ConfigError):
        EmbeddingClient(api_key="mock", batch_size=0)
