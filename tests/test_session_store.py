"""Tests for bounded, expiring conversation sessions."""

import json

import pytest

from hotel_ai.interfaces.session_store import SessionStore, Turn
from tests.conftest import FakeClock


class FakeRedis:
    def __init__(self):
        self.values = {}
        self.ttls = {}

    async def get(self, key):
        return self.values.get(key)

    async def setex(self, key, ttl, value):
        self.values[key] = value.encode("utf-8")
        self.ttls[key] = ttl

    async def delete(self, key):
        return 1 if self.values.pop(key, None) is not None else 0


class BrokenRedis:
    async def get(self, key):
        raise ConnectionError("down")

    async def setex(self, key, ttl, value):
        raise ConnectionError("down")

    async def delete(self, key):
        raise ConnectionError("down")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(max_turns=3, idle_ttl_seconds=600, clock=clock)


class TestSessionStore:
    """In-memory behaviour."""

    @pytest.mark.asyncio
    async def test_missing_id_creates_session(self, store):
        session = await store.get_or_create(None)

        assert session.session_id.startswith("sess_")
        assert session.turns == []

    @pytest.mark.asyncio
    async def test_unknown_id_is_honoured(self, store):
        session = await store.get_or_create("client-chosen-id")

        assert session.session_id == "client-chosen-id"
        assert (await store.get("client-chosen-id")) is not None

    @pytest.mark.asyncio
    async def test_history_is_bounded(self, store):
        session = await store.get_or_create()
        for i in range(5):
            await store.append(session.session_id, Turn(query=f"q{i}", intent="GENERAL"))

        history = await store.get_history(session.session_id)
        assert [t.query for t in history] == ["q2", "q3", "q4"]

    @pytest.mark.asyncio
    async def test_idle_session_resets_context(self, store, clock):
        session = await store.get_or_create("sess_idle")
        await store.append("sess_idle", Turn(query="Hotels in Tulum", intent="HOTEL_SEARCH"))

        clock.advance(601)

        assert await store.get("sess_idle") is None
        assert await store.get_history("sess_idle") == []
        renewed = await store.get_or_create("sess_idle")
        assert renewed.session_id == session.session_id
        assert renewed.turns == []

    @pytest.mark.asyncio
    async def test_activity_keeps_session_alive(self, store, clock):
        await store.get_or_create("sess_busy")
        for _ in range(3):
            clock.advance(400)
            await store.append("sess_busy", Turn(query="more", intent="GENERAL"))

        assert len(await store.get_history("sess_busy")) == 3

    @pytest.mark.asyncio
    async def test_evict_idle(self, store, clock):
        await store.get_or_create("sess_a")
        clock.advance(300)
        await store.get_or_create("sess_b")
        clock.advance(400)

        assert store.evict_idle() == 1
        assert await store.get("sess_b") is not None

    @pytest.mark.asyncio
    async def test_new_requests_sweep_idle_sessions(self, store, clock):
        for _ in range(10):
            await store.get_or_create()
        clock.advance(3600)

        await store.get_or_create()

        assert store.get_stats()["memory_sessions"] == 1

    @pytest.mark.asyncio
    async def test_clear(self, store):
        await store.get_or_create("sess_x")
        assert await store.clear("sess_x") is True
        assert await store.clear("sess_x") is False


class TestRedisSessions:
    """Redis persistence and fallback."""

    @pytest.mark.asyncio
    async def test_sessions_persist_as_json_with_ttl(self, clock):
        redis = FakeRedis()
        store = SessionStore(redis, max_turns=3, idle_ttl_seconds=600, clock=clock)

        await store.append("sess_r", Turn(query="Hotels in Cancun", intent="HOTEL_SEARCH", result_refs=["hotel-015"]))

        stored = json.loads(redis.values["session:sess_r"])
        assert stored["turns"][0]["result_refs"] == ["hotel-015"]
        assert redis.ttls["session:sess_r"] == 600

        reloaded = SessionStore(redis, clock=clock)
        history = await reloaded.get_history("sess_r")
        assert history[0].query == "Hotels in Cancun"

    @pytest.mark.asyncio
    async def test_redis_errors_fall_back_to_memory(self, clock):
        store = SessionStore(BrokenRedis(), max_turns=3, idle_ttl_seconds=600, clock=clock)

        await store.append("sess_f", Turn(query="hi", intent="QUICK"))

        assert len(await store.get_history("sess_f")) == 1
        assert await store.clear("sess_f") is True

    @pytest.mark.asyncio
    async def test_append_to_resolved_session_skips_reload(self, clock):
        redis = FakeRedis()
        store = SessionStore(redis, max_turns=3, idle_ttl_seconds=600, clock=clock)
        session = await store.get_or_create("sess_once")
        reads = []
        original_get = redis.get

        async def counting_get(key):
            reads.append(key)
            return await original_get(key)

        redis.get = counting_get
        await store.append(session, Turn(query="Hotels in Cancun", intent="HOTEL_SEARCH"))

        assert reads == []
        assert json.loads(redis.values["session:sess_once"])["turns"][0]["query"] == "Hotels in Cancun"
