"""
OpenAI Embedder
Generate embeddings with the OpenAI embeddings endpoint, caching query vectors
"""

from typing import List, Optional
from openai import AsyncOpenAI, OpenAIError
from docuchat.config import settings
from docuchat.core.exceptions import UpstreamProviderError
from docuchat.services.cache_service import CacheService
import logging

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Generate embeddings using OpenAI API with caching"""

    def __init__(self, cache: Optional[CacheService] = None):
        self.client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self.model = settings.EMBEDDING_MODEL
        self.dimensions = settings.EMBEDDING_DIMENSIONS
        self.batch_size = settings.EMBEDDING_BATCH_SIZE
        self.cache = cache or CacheService()

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for batch of texts

        Args:
            texts: List of text strings

        Returns:
            One embedding vector per text, in order

        Raises:
            UpstreamProviderError: embedding endpoint failed
        """
        all_embeddings = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i:i + self.batch_size]

            try:
                response = await self.client.embeddings.create(
                    model=self.model,
                    input=batch,
                    dimensions=self.dimensions
                )
            except OpenAIError as e:
                logger.error(f"Embedding request failed for batch starting at {i}: {e}")
                raise UpstreamProviderError(
                    "openai_embeddings",
                    f"Embedding request failed: {e}",
                    status_code=getattr(e, "status_code", None),
                ) from e

            all_embeddings.extend(item.embedding for item in response.data)

        return all_embeddings

    async def embed(self, text: str) -> List[float]:
        """
        Generate embedding for single text with caching

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        cached = self.cache.get_embedding(text)
        if cached:
            return cached

        embedding = (await self.embed_batch([text]))[0]
        self.cache.set_embedding(text, embedding)
        return embedding
