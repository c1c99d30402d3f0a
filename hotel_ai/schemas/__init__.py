# schemas/__init__.py
"""
Pydantic Schemas Package

Contains all Pydantic v2 models for:
- API requests/responses
- Catalog records
"""

from .ai_schemas import (
    # Enums
    PriceTier, JobStatus,
    # Catalog
    Region, StructuredAddress, Coordinates, HotelRecord, HotelResult,
    # Chat
    ChatRequest, ChatResponse, SessionTurnView, SessionView,
    # Search
    SearchRequest,
    # Ingestion & reindex
    IngestRequest, IngestResponse, WebhookPayload, ReindexJob,
    ReindexResponse, CatalogStatus,
    # Health
    HealthResponse,
)

__all__ = [
    "PriceTier", "JobStatus",
    "Region", "StructuredAddress", "Coordinates", "HotelRecord", "HotelResult",
    "ChatRequest", "ChatResponse", "SessionTurnView", "SessionView",
    "SearchRequest",
    "IngestRequest", "IngestResponse", "WebhookPayload", "ReindexJob",
    "ReindexResponse", "CatalogStatus",
    "HealthResponse",
]
