# agents/orchestrator.py
"""
Chat Orchestrator
Runs one chat request through the pipeline:

    RECEIVED -> KEY_DERIVED -> CACHE_CHECKED
        hit:  CACHE_HIT -> REPLAYED -> DONE
        miss: CACHE_MISS -> CLASSIFIED -> [RETRIEVED] -> COMPOSED -> CACHE_WRITTEN -> DONE
        failure in an essential step: DEGRADED -> DONE (apology, nothing cached)

Session reads and writes are bounded by SESSION_TIMEOUT_SECONDS and skipped
when slower; a request never waits on conversation history.

Each request is an independent task; the only shared state is the cache
backend and the session store.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from ..cache.fingerprint import derive_cache_key
from ..cache.response_cache import ResponseCache
from ..config import Settings, settings as default_settings
from ..errors import QueryValidationError, ServiceUnavailableError, StepTimeout, UpstreamUnavailable
from ..interfaces.session_store import Session, SessionStore, Turn
from ..llm.composer import APOLOGY_MESSAGE, ComposedReply, ResponseComposer
from ..llm.intent_classifier import ClassifiedQuery, Intent, IntentClassifier
from ..retrieval.engine import RetrievalEngine
from ..schemas.ai_schemas import ChatResponse, HotelResult
from ..utils.performance import PerformanceMonitor, RequestTimer

RETRIEVAL_COMPONENTS = ("embeddings", "vector_index")


class RequestState(str, Enum):
    RECEIVED = "RECEIVED"
    KEY_DERIVED = "KEY_DERIVED"
    CACHE_CHECKED = "CACHE_CHECKED"
    CACHE_HIT = "CACHE_HIT"
    REPLAYED = "REPLAYED"
    CACHE_MISS = "CACHE_MISS"
    CLASSIFIED = "CLASSIFIED"
    RETRIEVED = "RETRIEVED"
    COMPOSED = "COMPOSED"
    CACHE_WRITTEN = "CACHE_WRITTEN"
    DEGRADED = "DEGRADED"
    DONE = "DONE"


@dataclass
class ChatResult:
    message: str
    hotels: List[HotelResult]
    session_id: str
    response_time_ms: int
    intent: str
    cached: bool = False
    degraded: bool = False
    trace: List[RequestState] = field(default_factory=list)

    def to_response(self) -> ChatResponse:
        return ChatResponse(
            message=self.message,
            hotels=self.hotels,
            session_id=self.session_id,
            response_time_ms=self.response_time_ms,
            intent=self.intent,
            cached=self.cached,
        )


class ChatOrchestrator:
    """
    Per-request pipeline over the cache, classifier, retrieval engine,
    composer and session store

    Usage:
        result = await orchestrator.handle("Hotels in Cancun", session_id)
        return result.to_response()
    """

    def __init__(
        self,
        cache: ResponseCache,
        classifier: IntentClassifier,
        engine: RetrievalEngine,
        composer: ResponseComposer,
        sessions: SessionStore,
        config: Settings = default_settings,
        monitor: Optional[PerformanceMonitor] = None,
    ):
        self.cache = cache
        self.classifier = classifier
        self.engine = engine
        self.composer = composer
        self.sessions = sessions
        self.config = config
        self.monitor = monitor

    # ============================================
    # Validation & keys
    # ============================================

    def validate_query(self, query: Any) -> str:
        if not isinstance(query, str) or not query.strip():
            raise QueryValidationError("query must be a non-empty string")
        if len(query) > self.config.MAX_QUERY_LENGTH:
            raise QueryValidationError(
                f"query exceeds {self.config.MAX_QUERY_LENGTH} characters",
                {"max_length": self.config.MAX_QUERY_LENGTH},
            )
        return query

    def chat_cache_key(self, query: str) -> str:
        return derive_cache_key(
            query,
            namespace=self.config.CACHE_NAMESPACE,
            version=self.config.CACHE_KEY_VERSION,
            top_k=self.config.TOP_K,
        )

    def search_cache_key(self, query: str, limit: int) -> str:
        return derive_cache_key(
            query,
            namespace=self.config.SEARCH_CACHE_NAMESPACE,
            version=self.config.CACHE_KEY_VERSION,
            top_k=limit,
        )

    # ============================================
    # Chat
    # ============================================

    async def handle(self, query: str, session_id: Optional[str] = None) -> ChatResult:
        """
        Answer one chat query

        Raises:
            QueryValidationError: empty or oversized query
            ServiceUnavailableError: cache and retrieval are both unavailable
        """
        self.validate_query(query)
        timer = RequestTimer(self.monitor)
        trace = [RequestState.RECEIVED]

        session = await self._resolve_session(session_id)

        key = self.chat_cache_key(query)
        trace.append(RequestState.KEY_DERIVED)

        with timer.step("cache_lookup"):
            cached = await self.cache.get(key)
        trace.append(RequestState.CACHE_CHECKED)

        replay = self._replay(cached, key) if cached is not None else None
        if replay is not None:
            trace.extend([RequestState.CACHE_HIT, RequestState.REPLAYED])
            message, hotels, intent = replay
            logger.info(f"[Cache Hit] {key[:40]}... replaying {len(hotels)} hotels")
            await self._record_turn(session, query, intent, hotels)
            trace.append(RequestState.DONE)
            return ChatResult(
                message=message,
                hotels=hotels,
                session_id=session.session_id,
                response_time_ms=timer.finish("chat_cached", [f"intent={intent}"]),
                intent=intent,
                cached=True,
                trace=trace,
            )

        trace.append(RequestState.CACHE_MISS)
        history = list(session.turns)

        with timer.step("classify"):
            classified = self.classifier.classify(query)
        trace.append(RequestState.CLASSIFIED)
        from_context = self._apply_session_context(classified, history)

        intent = classified.intent.value
        budget = self.config.budget_for(intent)
        try:
            reply = await asyncio.wait_for(
                self._answer(classified, history, timer, trace),
                timeout=budget,
            )
        except asyncio.TimeoutError:
            error = StepTimeout(intent.lower(), budget)
            logger.warning(f"Request degraded: {error.message}")
            return await self._degrade(session, query, intent, timer, trace)
        except UpstreamUnavailable as e:
            if e.component in RETRIEVAL_COMPONENTS and not self.cache.available:
                logger.error("Cache and retrieval both unavailable")
                raise ServiceUnavailableError("hotel search is temporarily unavailable") from e
            logger.warning(f"Request degraded: {e.component} unavailable ({e.message})")
            return await self._degrade(session, query, intent, timer, trace)

        if from_context:
            # The key covers the query text only, not the destination taken from history
            logger.info(f"Not caching context-dependent reply for {key[:40]}...")
        elif await self.cache.set(key, self._payload(reply, classified)):
            trace.append(RequestState.CACHE_WRITTEN)
        else:
            logger.warning(f"Cache write dropped for {key[:40]}...")

        await self._record_turn(session, query, intent, reply.hotels)
        trace.append(RequestState.DONE)
        return ChatResult(
            message=reply.message,
            hotels=reply.hotels,
            session_id=session.session_id,
            response_time_ms=timer.finish("chat", [f"intent={intent}"]),
            intent=intent,
            trace=trace,
        )

    async def _answer(self, classified: ClassifiedQuery, history, timer: RequestTimer, trace) -> ComposedReply:
        retrieval = None
        if classified.intent == Intent.HOTEL_SEARCH:
            with timer.step("retrieve"):
                retrieval = await self.engine.search(
                    classified.normalized, k=self.config.TOP_K, constraints=classified.constraints
                )
            trace.append(RequestState.RETRIEVED)

        with timer.step("compose"):
            reply = await self.composer.compose(classified, retrieval, history, started_at=timer.started_at)
        trace.append(RequestState.COMPOSED)
        return reply

    async def _degrade(self, session: Session, query: str, intent: str, timer: RequestTimer, trace) -> ChatResult:
        trace.append(RequestState.DEGRADED)
        await self._record_turn(session, query, intent, [])
        trace.append(RequestState.DONE)
        if self.monitor is not None:
            self.monitor.increment("degraded")
        return ChatResult(
            message=APOLOGY_MESSAGE,
            hotels=[],
            session_id=session.session_id,
            response_time_ms=timer.finish("chat_degraded", [f"intent={intent}"]),
            intent=intent,
            degraded=True,
            trace=trace,
        )

    # ============================================
    # Sessions
    # ============================================

    async def _resolve_session(self, session_id: Optional[str]) -> Session:
        """Load or create the session; a slow or failing store yields a detached one"""
        try:
            return await asyncio.wait_for(
                self.sessions.get_or_create(session_id),
                timeout=self.config.SESSION_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Session lookup exceeded {self.config.SESSION_TIMEOUT_SECONDS}s, continuing without history")
        except Exception as e:
            logger.error(f"Session lookup failed, continuing without history: {e}")
        return Session(session_id=session_id or self.sessions.new_session_id())

    async def _record_turn(self, session: Session, query: str, intent: str, hotels: List[HotelResult]):
        turn = Turn(query=query.strip(), intent=intent, result_refs=[h.id for h in hotels])
        try:
            await asyncio.wait_for(self.sessions.append(session, turn), timeout=self.config.SESSION_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"Recording turn for session {session.session_id} timed out, skipped")
        except Exception as e:
            logger.error(f"Failed to record turn for session {session.session_id}: {e}")

    def _apply_session_context(self, classified: ClassifiedQuery, history: List[Turn]) -> bool:
        """
        Carry the last searched destination into a follow-up search that
        names none ("Hotels in Tulum" then "any with a spa?")

        Returns:
            True when the constraints now depend on session history
        """
        if classified.intent != Intent.HOTEL_SEARCH or classified.constraints.location is not None:
            return False
        for turn in reversed(history):
            if turn.intent != Intent.HOTEL_SEARCH.value:
                continue
            destination = self.classifier.parser.extract_location(turn.query)
            if destination is not None:
                classified.constraints.location = destination
                logger.info(f"Follow-up search, using {destination.name} from session context")
                return True
        return False

    @staticmethod
    def _payload(reply: ComposedReply, classified: ClassifiedQuery) -> Dict[str, Any]:
        return {
            "message": reply.message,
            "hotels": [h.model_dump(mode="json", by_alias=True) for h in reply.hotels],
            "metadata": {
                "intent": classified.intent.value,
                "query": classified.normalized,
                "responseTimeMs": reply.response_time_ms,
                "createdAt": datetime.utcnow().isoformat(),
            },
        }

    @staticmethod
    def _replay(cached: Dict[str, Any], key: str):
        try:
            hotels = [HotelResult.model_validate(h) for h in cached.get("hotels", [])]
            message = cached["message"]
            intent = (cached.get("metadata") or {}).get("intent", Intent.GENERAL.value)
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.warning(f"Unreadable cache entry {key[:40]}..., treating as miss: {e}")
            return None
        return message, hotels, intent

    # ============================================
    # Search
    # ============================================

    async def search(self, query: str, limit: Optional[int] = None) -> List[HotelResult]:
        """
        Structured hotel search without reply composition

        Retrieval failures and timeouts return an empty list while the cache
        is reachable; degraded results are never cached.

        Raises:
            QueryValidationError: empty or oversized query
            ServiceUnavailableError: cache and retrieval are both unavailable
        """
        self.validate_query(query)
        limit = limit or self.config.TOP_K
        timer = RequestTimer(self.monitor)
        key = self.search_cache_key(query, limit)

        with timer.step("cache_lookup"):
            cached = await self.cache.get(key)
        if isinstance(cached, list):
            try:
                hotels = [HotelResult.model_validate(h) for h in cached]
                timer.finish("search_cached")
                return hotels
            except ValidationError as e:
                logger.warning(f"Unreadable search cache entry {key[:40]}...: {e}")

        budget = self.config.budget_for(Intent.HOTEL_SEARCH.value)
        try:
            with timer.step("retrieve"):
                result = await asyncio.wait_for(self.engine.search(query, k=limit), timeout=budget)
        except asyncio.TimeoutError:
            logger.warning(f"Search degraded: retrieval exceeded {budget}s")
            return self._degraded_search(timer)
        except UpstreamUnavailable as e:
            if not self.cache.available:
                logger.error("Cache and retrieval both unavailable")
                raise ServiceUnavailableError("hotel search is temporarily unavailable") from e
            logger.warning(f"Search degraded: {e.component} unavailable ({e.message})")
            return self._degraded_search(timer)

        hotels = [h.to_result() for h in result.hotels]
        await self.cache.set(key, [h.model_dump(mode="json", by_alias=True) for h in hotels])
        timer.finish("search", [f"hotels={len(hotels)}"])
        return hotels

    def _degraded_search(self, timer: RequestTimer) -> List[HotelResult]:
        if self.monitor is not None:
            self.monitor.increment("degraded")
        timer.finish("search_degraded")
        return []
