"""
Unit tests for OpenAIEmbedder

Tests:
- Batch embedding in request-sized slices
- Query embedding cache
- Provider errors surfaced as UpstreamProviderError
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from openai import OpenAIError

from docuchat.core.exceptions import UpstreamProviderError
from docuchat.embeddings.openai_embedder import OpenAIEmbedder
from docuchat.services.cache_service import CacheService, MemoryCacheBackend


def embedding_response(texts):
    response = MagicMock()
    response.data = [MagicMock(embedding=[float(len(t))] * 8) for t in texts]
    return response


@pytest.fixture
def embedder():
    with patch("docuchat.embeddings.openai_embedder.AsyncOpenAI") as mock_openai_class:
        client = MagicMock()
        client.embeddings.create = AsyncMock(
            side_effect=lambda model, input, dimensions: embedding_response(input)
        )
        mock_openai_class.return_value = client
        yield OpenAIEmbedder(cache=CacheService(backend=MemoryCacheBackend(max_entries=10)))


@pytest.mark.unit
class TestOpenAIEmbedder:

    def test_init_from_settings(self, embedder):
        assert embedder.model == "text-embedding-3-small"
        assert embedder.dimensions == 8

    @pytest.mark.asyncio
    async def test_embed_batch_splits_requests(self, embedder):
        embedder.batch_size = 2

        vectors = await embedder.embed_batch(["a", "bb", "ccc"])

        assert [v[0] for v in vectors] == [1.0, 2.0, 3.0]
        assert embedder.client.embeddings.create.await_count == 2
        first_call = embedder.client.embeddings.create.await_args_list[0]
        assert first_call.kwargs == {"model": "text-embedding-3-small", "input": ["a", "bb"], "dimensions": 8}

    @pytest.mark.asyncio
    async def test_embed_uses_cache(self, embedder):
        first = await embedder.embed("what is revenue?")
        second = await embedder.embed("what is revenue?")

        assert first == second
        embedder.client.embeddings.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_error(self, embedder):
        embedder.client.embeddings.create = AsyncMock(side_effect=OpenAIError("quota exceeded"))

        with pytest.raises(UpstreamProviderError) as exc_info:
            await embedder.embed_batch(["text"])

        assert exc_info.value.provider == "openai_embeddings"
