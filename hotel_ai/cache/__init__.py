"""
Cache Module
Query fingerprints, the response cache and the embedding service
"""

from .redis_client import get_redis_client, check_redis_health
from .fingerprint import normalize_query, derive_cache_key
from .response_cache import ResponseCache, RedisCacheBackend, InMemoryCacheBackend
from .embeddings import EmbeddingService, build_embedding_provider

__all__ = [
    "get_redis_client",
    "check_redis_health",
    "normalize_query",
    "derive_cache_key",
    "ResponseCache",
    "RedisCacheBackend",
    "InMemoryCacheBackend",
    "EmbeddingService",
    "build_embedding_provider",
]
