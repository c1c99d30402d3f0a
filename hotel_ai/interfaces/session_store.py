# interfaces/session_store.py
"""
Session State Management
Keeps a short window of recent turns per conversation so follow-up
questions ("what about Tulum?") have context

- Bounded history: only the last SESSION_MAX_TURNS turns are kept
- Idle expiry: sessions untouched for SESSION_IDLE_TTL_SECONDS reset, and
  idle in-memory sessions are swept while new requests arrive
- Redis (JSON + SETEX) when available, in-memory otherwise
"""

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from loguru import logger


@dataclass
class Turn:
    """One completed exchange"""
    query: str
    intent: str
    result_refs: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Turn":
        return cls(
            query=data["query"],
            intent=data["intent"],
            result_refs=list(data.get("result_refs") or []),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass
class Session:
    session_id: str
    turns: List[Turn] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.utcnow)
    last_touch: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict:
        return {
            "session_id": self.session_id,
            "turns": [t.to_dict() for t in self.turns],
            "created_at": self.created_at.isoformat(),
            "last_touch": self.last_touch.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Session":
        return cls(
            session_id=data["session_id"],
            turns=[Turn.from_dict(t) for t in data.get("turns", [])],
            created_at=datetime.fromisoformat(data["created_at"]),
            last_touch=datetime.fromisoformat(data["last_touch"]),
        )


class SessionStore:
    """
    Manages conversation sessions.

    Usage:
        store = SessionStore(redis_client, max_turns=6, idle_ttl_seconds=1800)
        session = await store.get_or_create(request.session_id)
        ...
        await store.append(session.session_id, Turn(query, "HOTEL_SEARCH", ["hotel-015"]))
    """

    def __init__(
        self,
        redis_client=None,
        max_turns: int = 6,
        idle_ttl_seconds: int = 1800,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.redis_client = redis_client
        self.max_turns = max_turns
        self.idle_ttl = timedelta(seconds=idle_ttl_seconds)
        self.clock = clock
        self._memory_store: Dict[str, Session] = {}
        self.sweep_interval = min(self.idle_ttl, timedelta(seconds=60))
        self._last_sweep = clock()

        backend = "Redis" if redis_client is not None else "in-memory"
        logger.info(f"SessionStore initialized ({backend}, max_turns={max_turns}, idle_ttl={idle_ttl_seconds}s)")

    def _get_key(self, session_id: str) -> str:
        return f"session:{session_id}"

    @staticmethod
    def new_session_id() -> str:
        return f"sess_{uuid.uuid4().hex[:16]}"

    def _is_expired(self, session: Session) -> bool:
        return self.clock() - session.last_touch > self.idle_ttl

    async def _load(self, session_id: str) -> Optional[Session]:
        if self.redis_client is not None:
            try:
                data = await self.redis_client.get(self._get_key(session_id))
                if data:
                    return Session.from_dict(json.loads(data))
                return self._memory_store.get(session_id)
            except Exception as e:
                logger.error(f"Redis session get error: {e}")
        return self._memory_store.get(session_id)

    async def _save(self, session: Session):
        ttl = max(int(self.idle_ttl.total_seconds()), 1)
        if self.redis_client is not None:
            try:
                await self.redis_client.setex(self._get_key(session.session_id), ttl, json.dumps(session.to_dict()))
                self._memory_store.pop(session.session_id, None)
                return
            except Exception as e:
                logger.error(f"Redis session save error: {e}")
        self._memory_store[session.session_id] = session

    async def get(self, session_id: str) -> Optional[Session]:
        """Get a live session without creating one"""
        session = await self._load(session_id)
        if session is None or self._is_expired(session):
            return None
        return session

    async def get_or_create(self, session_id: Optional[str] = None) -> Session:
        """
        Resolve the session for a request

        A missing id gets a fresh one. An unknown or expired id starts a new
        empty session under the same id, so the client keeps its id.
        """
        self._maybe_evict_idle()
        if not session_id:
            session = Session(session_id=self.new_session_id(), created_at=self.clock(), last_touch=self.clock())
            await self._save(session)
            logger.info(f"Created new session: {session.session_id}")
            return session

        session = await self._load(session_id)
        if session is not None and self._is_expired(session):
            logger.info(f"Session {session_id} idle for more than {self.idle_ttl}, resetting context")
            session = None

        if session is None:
            session = Session(session_id=session_id, created_at=self.clock(), last_touch=self.clock())
            await self._save(session)
            return session

        session.last_touch = self.clock()
        await self._save(session)
        return session

    async def append(self, session: Union[Session, str], turn: Turn) -> Session:
        """
        Record a turn, dropping the oldest beyond the history window

        Pass the Session already resolved for the request to skip reloading it.
        """
        if not isinstance(session, Session):
            session = await self.get_or_create(session)
        session.turns.append(turn)
        if len(session.turns) > self.max_turns:
            session.turns = session.turns[-self.max_turns:]
        session.last_touch = self.clock()
        await self._save(session)
        return session

    async def get_history(self, session_id: Optional[str]) -> List[Turn]:
        if not session_id:
            return []
        session = await self.get(session_id)
        return list(session.turns) if session else []

    async def clear(self, session_id: str) -> bool:
        existed = self._memory_store.pop(session_id, None) is not None
        if self.redis_client is not None:
            try:
                existed = bool(await self.redis_client.delete(self._get_key(session_id))) or existed
            except Exception as e:
                logger.error(f"Redis session delete error: {e}")
        if existed:
            logger.info(f"Cleared session: {session_id}")
        return existed

    def _maybe_evict_idle(self):
        now = self.clock()
        if now - self._last_sweep >= self.sweep_interval:
            self._last_sweep = now
            self.evict_idle()

    def evict_idle(self) -> int:
        """
        Drop idle in-memory sessions (Redis entries expire via TTL)

        Returns:
            Number of sessions evicted
        """
        expired = [sid for sid, s in self._memory_store.items() if self._is_expired(s)]
        for sid in expired:
            del self._memory_store[sid]
        if expired:
            logger.info(f"Evicted {len(expired)} idle sessions")
        return len(expired)

    def get_stats(self) -> Dict:
        return {
            "backend": "redis" if self.redis_client is not None else "memory",
            "memory_sessions": len(self._memory_store),
            "max_turns": self.max_turns,
            "idle_ttl_seconds": int(self.idle_ttl.total_seconds()),
        }
