"""
Hotel Concierge AI Service - FastAPI Application
LLM Provider:
- If OPENAI_API_KEY is set: use OpenAI
- If no OPENAI_API_KEY: use Ollama (llama3.2 + mxbai-embed-large)

Redis backs the response cache, sessions, the persisted catalog index and
the reindex job log. Without Redis every store runs in memory.
"""

import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from . import __version__
from .api import catalog, chat, search
from .api.dependencies import AppServices, build_services, get_services
from .api.exception_handlers import setup_exception_handlers
from .cache.redis_client import check_redis_health, get_redis_client, get_redis_info
from .catalog.vector_index import RedisCatalogIndex
from .config import Settings, settings
from .errors import UpstreamUnavailable
from .schemas.ai_schemas import HealthResponse


def configure_logging(level: str):
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan> - <level>{message}</level>",
    )


async def bootstrap_catalog(services: AppServices):
    """
    Restore the persisted index, then index the seed catalog

    Unchanged seed records are skipped, so restarts only embed what changed.
    """
    index = services.index
    if isinstance(index, RedisCatalogIndex):
        await index.load()
        for record in index.records():
            services.repository.upsert(record)

    try:
        job = await services.reindexer.load_seed_file(services.config.CATALOG_PATH)
    except UpstreamUnavailable as e:
        logger.error(f"Seed catalog not indexed, embedding provider unavailable: {e}")
        return
    if job is not None:
        logger.info(f"✓ Catalog ready: {len(index)} hotels (indexed {job.indexed}, unchanged {job.skipped})")


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Settings = app.state.config
    logger.info(f"Starting Hotel Concierge AI v{__version__} ({config.API_ENV})")

    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        redis_client = get_redis_client() if config.redis_enabled else None
        if redis_client is not None and not await check_redis_health(redis_client):
            logger.warning("✗ Redis unreachable, falling back to in-memory stores")
            redis_client = None
        elif redis_client is not None:
            logger.info("✓ Redis connected")
        app.state.services = build_services(config, redis_client)
        await bootstrap_catalog(app.state.services)

    yield

    services: AppServices = app.state.services
    if owns_services and services.redis is not None:
        await services.redis.aclose()
    logger.info("Hotel Concierge AI stopped")


def create_app(config: Optional[Settings] = None, services: Optional[AppServices] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        config: Settings (defaults to the global settings)
        services: Prebuilt service container; when given, startup skips
            Redis discovery and catalog seeding
    """
    config = config or settings
    app = FastAPI(
        title="Hotel Concierge AI",
        description="Conversational hotel discovery with grounded recommendations",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    app.include_router(chat.router)
    app.include_router(search.router)
    app.include_router(catalog.router)

    # ============================================
    # Service endpoints
    # ============================================

    @app.get("/")
    async def root():
        return {
            "service": "Hotel Concierge AI",
            "version": __version__,
            "endpoints": ["/chat", "/search", "/catalog", "/health", "/cache/stats"],
        }

    @app.get("/health", response_model=HealthResponse)
    async def health(services: AppServices = Depends(get_services)):
        redis_ok = await check_redis_health(services.redis)
        cache_ok = await services.cache.ping()
        index_size = len(services.index)
        status = "healthy" if cache_ok and index_size > 0 else "degraded"
        return HealthResponse(
            status=status,
            timestamp=datetime.utcnow().isoformat(),
            environment=services.config.API_ENV,
            llm_provider=getattr(services.generator, "name", type(services.generator).__name__),
            components={
                "redis": "connected" if redis_ok else ("disabled" if services.redis is None else "unreachable"),
                "cache": services.cache.get_stats()["backend"] if cache_ok else "unavailable",
                "catalog": services.index.get_stats(),
                "sessions": services.sessions.get_stats(),
                "embeddings": services.embedder.get_stats(),
            },
        )

    @app.get("/cache/stats")
    async def cache_stats(services: AppServices = Depends(get_services)):
        return {
            "cache": services.cache.get_stats(),
            "redis": await get_redis_info(services.redis),
            "latency": services.monitor.summary(),
        }

    return app


configure_logging(settings.LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hotel_ai.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_ENV == "development",
    )
