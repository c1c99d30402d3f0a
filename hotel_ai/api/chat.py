# api/chat.py
"""
Chat API Endpoint
Main conversational interface for the hotel concierge

POST /chat                     - ask a question, get a reply + hotel cards
GET  /chat/session/{id}        - inspect the recent turns of a session
DELETE /chat/session/{id}      - forget a session
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from loguru import logger

from ..agents.orchestrator import ChatOrchestrator
from ..schemas.ai_schemas import ChatRequest, ChatResponse, SessionTurnView, SessionView
from .dependencies import AppServices, get_orchestrator, get_services

router = APIRouter(tags=["chat"])

DISCONNECT_POLL_SECONDS = 0.25


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    request: Request,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    """
    Answer a chat query

    The pipeline runs as its own task and is cancelled if the client
    disconnects before the reply is ready.
    """
    task = asyncio.create_task(orchestrator.handle(body.query, body.session_id))
    while True:
        done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
        if done:
            break
        if await request.is_disconnected():
            task.cancel()
            logger.info("Client disconnected, cancelled chat request")
            return Response(status_code=499)

    result = task.result()
    return result.to_response()


@router.get("/chat/session/{session_id}", response_model=SessionView)
async def get_session(session_id: str, services: AppServices = Depends(get_services)):
    session = await services.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found or expired")
    return SessionView(
        session_id=session.session_id,
        turns=[
            SessionTurnView(query=t.query, intent=t.intent, result_refs=t.result_refs, timestamp=t.timestamp)
            for t in session.turns
        ],
        created_at=session.created_at,
        last_touch=session.last_touch,
    )


@router.delete("/chat/session/{session_id}")
async def clear_session(session_id: str, services: AppServices = Depends(get_services)):
    cleared = await services.sessions.clear(session_id)
    return {"status": "cleared" if cleared else "not_found", "sessionId": session_id}
