"""Shared fixtures for the Hotel Concierge AI tests.

Provides deterministic stand-ins for the external providers:

- FakeEmbeddingProvider: hashed bag-of-words vectors, no network, can fail or stall
- FakeGenerator: records prompts, can fail or stall on demand
- FakeClock: settable clock for session expiry
- BrokenCacheBackend: a cache backend that errors or hangs
"""

import asyncio
import hashlib
import os
import re
from datetime import datetime, timedelta
from typing import List

import numpy as np
import pytest
from fastapi.testclient import TestClient

from hotel_ai.api.dependencies import build_services
from hotel_ai.config import Settings
from hotel_ai.errors import GenerationFailed
from hotel_ai.main import create_app

SAMPLE_CATALOG = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "sample_hotels.json")

EMBEDDING_DIMENSIONS = 64

_TOKEN = re.compile(r"[a-z0-9]+")


# ============================================================================
# Test doubles
# ============================================================================


class FakeEmbeddingProvider:
    """Hashes each token into a fixed-size count vector."""

    name = "fake-embeddings"

    def __init__(self, dimensions: int = EMBEDDING_DIMENSIONS):
        self.dimensions = dimensions
        self.calls: List[str] = []
        self.fail = False
        self.delay_seconds = 0.0

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.fail:
            raise ConnectionError("embedding provider unreachable")
        vector = np.zeros(self.dimensions, dtype=np.float32)
        for token in _TOKEN.findall(text.lower()):
            bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % self.dimensions
            vector[bucket] += 1.0
        return vector.tolist()


class FakeGenerator:
    """Text generator double."""

    name = "fake"

    def __init__(self, reply: str = "Here are a few hotels I think you'll love."):
        self.reply = reply
        self.calls: List[dict] = []
        self.fail = False
        self.delay_seconds = 0.0

    async def generate(self, system: str, prompt: str, history=None) -> str:
        self.calls.append({"system": system, "prompt": prompt, "history": history})
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.fail:
            raise GenerationFailed("generator offline")
        return self.reply


class FakeClock:
    """Settable stand-in for datetime.utcnow."""

    def __init__(self):
        self.now = datetime(2026, 1, 15, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds: int):
        self.now += timedelta(seconds=seconds)


class BrokenCacheBackend:
    """Cache backend that raises (mode='raise') or never answers (mode='hang')."""

    def __init__(self, mode: str = "raise"):
        self.mode = mode
        self.calls = 0

    async def _fail(self):
        self.calls += 1
        if self.mode == "hang":
            await asyncio.sleep(10)
        raise ConnectionError("redis connection refused")

    async def get(self, key):
        return await self._fail()

    async def set(self, key, raw, ttl):
        return await self._fail()

    async def delete(self, key):
        return await self._fail()

    async def delete_pattern(self, pattern):
        return await self._fail()

    async def ping(self):
        return await self._fail()

    def size(self) -> int:
        return 0


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment: no Redis, no real providers."""
    config = Settings()
    config.OPENAI_API_KEY = ""
    config.REDIS_HOST = ""
    config.API_ENV = "test"
    config.CACHE_NAMESPACE = "search"
    config.SEARCH_CACHE_NAMESPACE = "hotels"
    config.CACHE_KEY_VERSION = 1
    config.CACHE_TTL = 3600
    config.CACHE_TIMEOUT_SECONDS = 0.05
    config.MEMORY_CACHE_MAX_ENTRIES = 1000
    config.TOP_K = 5
    config.RETRIEVAL_CANDIDATE_MULTIPLIER = 4
    config.CATALOG_PATH = SAMPLE_CATALOG
    config.CATALOG_PERSIST = False
    config.QUICK_BUDGET_SECONDS = 0.5
    config.SEARCH_BUDGET_SECONDS = 5.0
    config.GENERAL_BUDGET_SECONDS = 5.0
    config.MAX_QUERY_LENGTH = 1000
    config.SESSION_MAX_TURNS = 6
    config.SESSION_IDLE_TTL_SECONDS = 1800
    config.SESSION_TIMEOUT_SECONDS = 0.5
    config.WEBHOOK_SIGNING_SECRET = ""
    config.REINDEX_SHARED_SECRET = ""
    config.REINDEX_JOB_HISTORY = 100
    config.EMBEDDING_CACHE_SIZE = 1000
    config.CORS_ORIGINS = "http://localhost:3000"
    return config


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def services(test_settings, embedding_provider, generator):
    """Service container wired with fakes and an empty catalog."""
    return build_services(test_settings, None, embedding_provider=embedding_provider, generator=generator)


@pytest.fixture
async def seeded_services(services):
    """Service container with the sample catalog indexed."""
    await services.reindexer.load_seed_file(SAMPLE_CATALOG)
    return services


@pytest.fixture
def client(test_settings, services):
    """TestClient over an app seeded with the sample catalog."""
    app = create_app(test_settings, services)
    with TestClient(app) as test_client:
        test_client.portal.call(services.reindexer.load_seed_file, SAMPLE_CATALOG)
        yield test_client
