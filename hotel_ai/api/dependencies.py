"""
Service container
Builds every component once at startup and hands them to routers through
FastAPI dependencies
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Request

from ..agents.orchestrator import ChatOrchestrator
from ..cache.embeddings import EmbeddingService, build_embedding_provider
from ..cache.response_cache import InMemoryCacheBackend, RedisCacheBackend, ResponseCache
from ..catalog.reindex import CatalogReindexer, HotelRepository, ReindexJobLog
from ..catalog.vector_index import CatalogIndex, RedisCatalogIndex
from ..config import Settings
from ..interfaces.session_store import SessionStore
from ..llm.composer import ResponseComposer
from ..llm.generator import build_generator
from ..llm.intent_classifier import IntentClassifier
from ..retrieval.engine import RetrievalEngine
from ..utils.performance import PerformanceMonitor


@dataclass
class AppServices:
    config: Settings
    redis: Any
    cache: ResponseCache
    embedder: EmbeddingService
    index: CatalogIndex
    repository: HotelRepository
    job_log: ReindexJobLog
    reindexer: CatalogReindexer
    classifier: IntentClassifier
    engine: RetrievalEngine
    composer: ResponseComposer
    sessions: SessionStore
    orchestrator: ChatOrchestrator
    monitor: PerformanceMonitor
    generator: Any


def build_services(
    config: Settings,
    redis_client=None,
    embedding_provider=None,
    generator=None,
    cache_backend=None,
) -> AppServices:
    """
    Wire the service graph

    Args:
        config: Settings instance
        redis_client: redis.asyncio client, or None to run in memory
        embedding_provider: Override for the embedding provider
        generator: Override for the text generator
        cache_backend: Override for the response cache backend
    """
    if cache_backend is None:
        cache_backend = (
            RedisCacheBackend(redis_client)
            if redis_client is not None
            else InMemoryCacheBackend(config.MEMORY_CACHE_MAX_ENTRIES)
        )
    cache = ResponseCache(cache_backend, ttl_seconds=config.CACHE_TTL, timeout_seconds=config.CACHE_TIMEOUT_SECONDS)

    embedder = EmbeddingService(
        embedding_provider or build_embedding_provider(config),
        cache_size=config.EMBEDDING_CACHE_SIZE,
    )
    if redis_client is not None and config.CATALOG_PERSIST:
        index = RedisCatalogIndex(redis_client)
    else:
        index = CatalogIndex()

    repository = HotelRepository()
    job_log = ReindexJobLog(redis_client, max_jobs=config.REINDEX_JOB_HISTORY)
    reindexer = CatalogReindexer(index, embedder, repository, job_log)

    classifier = IntentClassifier()
    engine = RetrievalEngine(
        index,
        embedder,
        default_k=config.TOP_K,
        candidate_multiplier=config.RETRIEVAL_CANDIDATE_MULTIPLIER,
    )
    generator = generator or build_generator(config)
    composer = ResponseComposer(generator)
    sessions = SessionStore(
        redis_client,
        max_turns=config.SESSION_MAX_TURNS,
        idle_ttl_seconds=config.SESSION_IDLE_TTL_SECONDS,
    )
    monitor = PerformanceMonitor()
    orchestrator = ChatOrchestrator(cache, classifier, engine, composer, sessions, config=config, monitor=monitor)

    return AppServices(
        config=config,
        redis=redis_client,
        cache=cache,
        embedder=embedder,
        index=index,
        repository=repository,
        job_log=job_log,
        reindexer=reindexer,
        classifier=classifier,
        engine=engine,
        composer=composer,
        sessions=sessions,
        orchestrator=orchestrator,
        monitor=monitor,
        generator=generator,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.services.orchestrator
