# api/search.py
"""
Search API Endpoint
Structured hotel search, no conversational reply

POST /search {query, limit?} -> HotelResult[]
"""

from typing import List

from fastapi import APIRouter, Depends

from ..agents.orchestrator import ChatOrchestrator
from ..schemas.ai_schemas import HotelResult, SearchRequest
from .dependencies import get_orchestrator

router = APIRouter(tags=["search"])


@router.post("/search", response_model=List[HotelResult])
async def search_hotels(body: SearchRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)):
    """Top hotels for a free-text query, ranked by relevance"""
    return await orchestrator.search(body.query, body.limit)
