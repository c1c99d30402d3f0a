# schemas/ai_schemas.py
"""
Pydantic v2 schemas for the Hotel Concierge AI service
Wire format is camelCase (priceRange, imageUrl, sessionId, ...); Python
code uses snake_case field names.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising to camelCase while accepting either form"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================
# Enums
# ============================================

class PriceTier(str, Enum):
    BUDGET = "budget"        # $ - $$
    MID_RANGE = "mid_range"  # $$ - $$$
    LUXURY = "luxury"        # $$$$+


class JobStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================
# Catalog
# ============================================

class Region(CamelModel):
    """CMS region reference"""
    id: Optional[str] = None
    name: str = ""
    slug: Optional[str] = None


class StructuredAddress(CamelModel):
    """Structured location as the CMS stores it"""
    address: str = ""
    city: str = ""
    state: str = ""
    latitude: float = 0.0
    longitude: float = 0.0


class Coordinates(CamelModel):
    latitude: float = 0.0
    longitude: float = 0.0


class HotelRecord(CamelModel):
    """A catalog hotel. `id` is stable across reseeds."""
    id: str
    name: str
    location: Union[str, StructuredAddress] = ""
    city: str = ""
    state: str = ""
    description: str = ""
    amenities: List[str] = Field(default_factory=list)
    price_range: str = ""
    rating: float = Field(0.0, ge=0, le=5)
    review_count: int = 0
    type: str = "Hotel"
    image_url: str = ""
    affiliate_link: str = "#"
    nearby_attractions: List[str] = Field(default_factory=list)
    coordinates: Coordinates = Field(default_factory=Coordinates)
    region: Optional[Region] = None

    @property
    def location_text(self) -> str:
        """Location flattened to a single display string"""
        if isinstance(self.location, StructuredAddress):
            parts = [self.location.address, self.location.city, self.location.state]
            return ", ".join(p for p in parts if p)
        return self.location or ""


class HotelResult(HotelRecord):
    """A hotel card returned to clients, with retrieval metadata"""
    score: float = 0.0
    exact_match: bool = True


# ============================================
# Chat
# ============================================

class ChatRequest(CamelModel):
    """Chat request model"""
    query: str = Field(..., description="User's message")
    session_id: Optional[str] = Field(None, description="Session ID for context continuity")


class ChatResponse(CamelModel):
    """Chat response model"""
    message: str = Field(..., description="Assistant reply")
    hotels: List[HotelResult] = Field(default_factory=list)
    session_id: str
    response_time_ms: int = Field(..., ge=0)
    intent: Optional[str] = None
    cached: bool = False


class SessionTurnView(CamelModel):
    query: str
    intent: str
    result_refs: List[str] = Field(default_factory=list)
    timestamp: datetime


class SessionView(CamelModel):
    """Conversation context as exposed by GET /chat/session/{id}"""
    session_id: str
    turns: List[SessionTurnView] = Field(default_factory=list)
    created_at: datetime
    last_touch: datetime


# ============================================
# Search
# ============================================

class SearchRequest(CamelModel):
    query: str = Field(..., description="Free-text hotel search")
    limit: int = Field(5, ge=1, le=20, description="Maximum number of hotels")


# ============================================
# Catalog ingestion & reindex
# ============================================

class IngestRequest(CamelModel):
    """Batch export from the CMS. Records are raw CMS objects."""
    hotels: List[Dict[str, Any]] = Field(..., min_length=1)


class IngestResponse(CamelModel):
    received: int
    indexed: int
    skipped: int
    warnings: List[str] = Field(default_factory=list)


class WebhookPayload(CamelModel):
    """CMS change notification; either form may be present"""
    ids: List[str] = Field(default_factory=list)
    documents: List[Dict[str, Any]] = Field(default_factory=list)


class ReindexJob(CamelModel):
    id: str
    trigger: str
    status: JobStatus = JobStatus.RUNNING
    requested_ids: List[str] = Field(default_factory=list)
    indexed: int = 0
    skipped: int = 0
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None


class ReindexResponse(CamelModel):
    message: str
    reindexed: int
    job: ReindexJob


class CatalogStatus(CamelModel):
    hotels: int
    template_version: str
    stale_ids: List[str] = Field(default_factory=list)
    last_job: Optional[ReindexJob] = None


# ============================================
# Health
# ============================================

class HealthResponse(CamelModel):
    status: str
    timestamp: str
    environment: str
    llm_provider: str
    components: Dict[str, Any] = Field(default_factory=dict)
