"""
Embedding Service
Turns catalog records and user queries into dense vectors

Providers:
- OpenAI (text-embedding-3-small) when OPENAI_API_KEY is set
- Ollama (mxbai-embed-large, local) otherwise

An in-process LRU keyed by the sha256 of the input text sits in front of
the provider, so repeated queries and unchanged catalog records are free.
"""

import hashlib
from collections import OrderedDict
from typing import List

from loguru import logger

from ..config import Settings, settings as default_settings
from ..errors import UpstreamUnavailable


class OpenAIEmbeddingProvider:
    """AsyncOpenAI embeddings endpoint"""

    def __init__(self, api_key: str, model: str):
        from openai import AsyncOpenAI

        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.name = f"openai:{model}"

    async def embed(self, text: str) -> List[float]:
        response = await self.client.embeddings.create(model=self.model, input=text)
        return list(response.data[0].embedding)


class OllamaEmbeddingProvider:
    """Local Ollama embeddings (mxbai-embed-large, 1024 dimensions)"""

    def __init__(self, host: str, model: str):
        import ollama

        self.client = ollama.AsyncClient(host=host)
        self.model = model
        self.name = f"ollama:{model}"

    async def embed(self, text: str) -> List[float]:
        response = await self.client.embeddings(model=self.model, prompt=text)
        return list(response["embedding"])


def build_embedding_provider(config: Settings = default_settings):
    """Pick the embedding provider from configuration"""
    if config.use_openai:
        return OpenAIEmbeddingProvider(config.OPENAI_API_KEY, config.OPENAI_EMBEDDING_MODEL)
    return OllamaEmbeddingProvider(config.OLLAMA_BASE_URL, config.OLLAMA_EMBEDDING_MODEL)


class EmbeddingService:
    """
    Embedding provider wrapper with an LRU cache

    Usage:
        embedder = EmbeddingService(build_embedding_provider())
        vector = await embedder.embed("Beachfront resort in Tulum")
    """

    def __init__(self, provider, cache_size: int = 1000):
        self.provider = provider
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, List[float]]" = OrderedDict()
        self.cache_hits = 0
        self.cache_misses = 0

        logger.info(
            f"Embedding Service initialized: {getattr(provider, 'name', type(provider).__name__)} "
            f"(lru={cache_size})"
        )

    @staticmethod
    def _cache_key(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    async def embed(self, text: str) -> List[float]:
        """
        Generate (or recall) the embedding for a text

        Raises:
            UpstreamUnavailable: provider unreachable or returned nothing
        """
        key = self._cache_key(text)
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            self.cache_hits += 1
            return cached

        self.cache_misses += 1
        try:
            vector = await self.provider.embed(text)
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e}")
            raise UpstreamUnavailable("embeddings", f"embedding generation failed: {e}") from e

        if not vector:
            raise UpstreamUnavailable("embeddings", "provider returned an empty embedding")

        self._cache[key] = vector
        if len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)

        logger.debug(f"Generated embedding for: '{text[:50]}...' ({len(vector)} dims)")
        return vector

    def get_stats(self) -> dict:
        lookups = self.cache_hits + self.cache_misses
        return {
            "provider": getattr(self.provider, "name", type(self.provider).__name__),
            "cached_embeddings": len(self._cache),
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": round(self.cache_hits / lookups, 3) if lookups else 0.0,
        }
