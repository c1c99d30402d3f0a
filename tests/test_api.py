"""HTTP API tests (FastAPI TestClient over a seeded app)."""

import json

import pytest

from hotel_ai.catalog.reindex import compute_signature
from hotel_ai.llm.intent_classifier import QUICK_RESPONSES


class TestChatEndpoint:
    """POST /chat and session inspection."""

    def test_greeting(self, client):
        response = client.post("/chat", json={"query": "Hello"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == QUICK_RESPONSES["hello"]
        assert body["hotels"] == []
        assert body["sessionId"].startswith("sess_")
        assert body["responseTimeMs"] >= 0
        assert body["intent"] == "QUICK"

    def test_hotel_search_returns_camel_case_cards(self, client):
        response = client.post("/chat", json={"query": "Hotels in Cancun"})

        assert response.status_code == 200
        body = response.json()
        assert body["cached"] is False
        assert len(body["hotels"]) == 5
        card = body["hotels"][0]
        for field in ("id", "name", "city", "priceRange", "imageUrl", "affiliateLink", "rating", "exactMatch", "score"):
            assert field in card
        assert all(h["city"] == "Cancun" for h in body["hotels"])

    def test_repeat_query_is_cached(self, client):
        first = client.post("/chat", json={"query": "Hotels in Cancun"}).json()
        second = client.post("/chat", json={"query": "hotels in cancun", "sessionId": first["sessionId"]}).json()

        assert second["cached"] is True
        assert second["hotels"] == first["hotels"]
        assert second["sessionId"] == first["sessionId"]

    def test_session_is_inspectable_and_clearable(self, client):
        sid = client.post("/chat", json={"query": "Hello"}).json()["sessionId"]
        client.post("/chat", json={"query": "Hotels in Tulum", "sessionId": sid})

        session = client.get(f"/chat/session/{sid}")
        assert session.status_code == 200
        turns = session.json()["turns"]
        assert [t["intent"] for t in turns] == ["QUICK", "HOTEL_SEARCH"]
        assert turns[1]["resultRefs"]

        assert client.delete(f"/chat/session/{sid}").json() == {"status": "cleared", "sessionId": sid}
        assert client.get(f"/chat/session/{sid}").status_code == 404

    @pytest.mark.parametrize("payload", [{"query": ""}, {"query": "   "}, {}, {"query": "x" * 1001}])
    def test_invalid_queries(self, client, payload):
        response = client.post("/chat", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_degraded_reply_is_200(self, client, generator):
        generator.fail = True

        response = client.post("/chat", json={"query": "Do I need a visa for Mexico?"})

        assert response.status_code == 200
        assert response.json()["hotels"] == []
        assert "sorry" in response.json()["message"].lower()

    def test_service_unavailable_when_everything_is_down(self, client, services, embedding_provider):
        class DownBackend:
            async def get(self, key):
                raise ConnectionError("down")

            async def set(self, key, raw, ttl):
                raise ConnectionError("down")

            def size(self):
                return 0

        services.cache.backend = DownBackend()
        embedding_provider.fail = True

        response = client.post("/chat", json={"query": "Hotels in Merida"})

        assert response.status_code == 503
        assert response.json()["code"] == "SERVICE_UNAVAILABLE"


class TestSearchEndpoint:
    def test_search(self, client):
        response = client.post("/search", json={"query": "adults only resorts in Cancun", "limit": 3})

        assert response.status_code == 200
        hotels = response.json()
        assert len(hotels) == 3
        assert all("Adults Only" in h["amenities"] for h in hotels)

    def test_default_limit(self, client):
        assert len(client.post("/search", json={"query": "beach resorts"}).json()) == 5

    @pytest.mark.parametrize("limit", [0, 21])
    def test_limit_bounds(self, client, limit):
        response = client.post("/search", json={"query": "hotels", "limit": limit})
        assert response.status_code == 400

    def test_embedding_outage_returns_empty_list(self, client, embedding_provider):
        embedding_provider.fail = True

        response = client.post("/search", json={"query": "hotels in merida"})

        assert response.status_code == 200
        assert response.json() == []

    def test_service_unavailable_when_cache_and_retrieval_are_down(self, client, services, embedding_provider):
        class DownBackend:
            async def get(self, key):
                raise ConnectionError("down")

            async def set(self, key, raw, ttl):
                raise ConnectionError("down")

            def size(self):
                return 0

        services.cache.backend = DownBackend()
        embedding_provider.fail = True

        response = client.post("/search", json={"query": "hotels in merida"})

        assert response.status_code == 503
        assert response.json()["code"] == "SERVICE_UNAVAILABLE"


class TestCatalogEndpoints:
    """Ingestion, webhook and reindex administration."""

    def test_ingest_slugifies_missing_ids(self, client, services):
        response = client.post(
            "/catalog/ingest",
            json={
                "hotels": [
                    {
                        "name": "Hotel Xcaret Arte",
                        "city": "Playa del Carmen",
                        "description": "Adults-only all-fun-inclusive art hotel.",
                        "amenities": ["Adults Only", "All-Inclusive", "Spa"],
                        "rating": 4.9,
                        "priceRange": "$$$$$",
                    },
                    {"name": "Casa Incompleta"},
                ]
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["received"] == 2
        assert body["indexed"] == 2
        assert any("casa-incompleta" in w for w in body["warnings"])
        assert "hotel-xcaret-arte" in services.index

    def test_ingest_requires_shared_secret_when_configured(self, client, test_settings):
        test_settings.REINDEX_SHARED_SECRET = "s3cret"
        payload = {"hotels": [{"name": "Hotel Nuevo", "city": "Tulum"}]}

        assert client.post("/catalog/ingest", json=payload).status_code == 403
        response = client.post("/catalog/ingest", json=payload, headers={"x-reindex-secret": "s3cret"})
        assert response.status_code == 200

    def test_empty_ingest_is_rejected(self, client):
        assert client.post("/catalog/ingest", json={"hotels": []}).status_code == 400

    def test_signed_webhook_with_ids(self, client, test_settings):
        test_settings.WEBHOOK_SIGNING_SECRET = "whsec_test"
        body = json.dumps({"ids": ["hotel-001", "hotel-002"]}).encode("utf-8")

        response = client.post(
            "/catalog/webhook",
            content=body,
            headers={"content-type": "application/json", "sanity-signature": compute_signature(body, "whsec_test")},
        )

        assert response.status_code == 200
        assert response.json()["reindexed"] == 2
        assert response.json()["job"]["trigger"] == "webhook-partial"

    def test_webhook_with_bad_signature(self, client, test_settings):
        test_settings.WEBHOOK_SIGNING_SECRET = "whsec_test"

        response = client.post(
            "/catalog/webhook",
            content=b'{"ids": ["hotel-001"]}',
            headers={"content-type": "application/json", "sanity-signature": "deadbeef"},
        )

        assert response.status_code == 403
        assert response.json()["code"] == "WEBHOOK_REJECTED"

    def test_webhook_not_configured_in_production(self, client, test_settings):
        test_settings.API_ENV = "production"

        response = client.post("/catalog/webhook", content=b"{}")

        assert response.status_code == 503
        assert response.json()["code"] == "WEBHOOK_NOT_CONFIGURED"

    def test_webhook_document_projection(self, client, services):
        document = {"_type": "hotel", "_id": "hotel-050", "name": "Casa Malca", "city": "Tulum",
                    "description": "Art-filled beach hotel.", "amenities": ["Beach Access"], "rating": 4.3}

        response = client.post("/catalog/webhook", json=document)

        assert response.status_code == 200
        assert response.json()["job"]["trigger"] == "webhook-documents"
        assert "hotel-050" in services.index

    def test_webhook_without_ids_rebuilds_stale(self, client):
        response = client.post("/catalog/webhook", content=b"")

        assert response.status_code == 200
        assert response.json()["job"]["trigger"] == "webhook-full"
        assert response.json()["reindexed"] == 0

    def test_webhook_invalid_json(self, client):
        response = client.post("/catalog/webhook", content=b"{not json")
        assert response.status_code == 400

    def test_status_reindex_and_jobs(self, client):
        status = client.get("/catalog/status").json()
        assert status["hotels"] == 24
        assert status["templateVersion"] == "hotel-text-v1"
        assert status["staleIds"] == []
        assert status["lastJob"]["trigger"] == "seed"

        reindex = client.post("/catalog/reindex", params={"force": "true"}).json()
        assert reindex["reindexed"] == 24

        jobs = client.get("/catalog/jobs", params={"limit": 5}).json()
        assert [j["trigger"] for j in jobs] == ["manual", "seed"]

    def test_purge_cache(self, client, services):
        client.post("/chat", json={"query": "Hotels in Cancun"})
        client.post("/search", json={"query": "Hotels in Cancun"})

        response = client.delete("/catalog/cache")

        assert response.json() == {"status": "purged", "deleted": 2}
        assert client.post("/chat", json={"query": "Hotels in Cancun"}).json()["cached"] is False


class TestServiceEndpoints:
    def test_root(self, client):
        assert "/chat" in client.get("/").json()["endpoints"]

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["llmProvider"] == "fake"
        assert body["components"]["redis"] == "disabled"
        assert body["components"]["catalog"]["hotels"] == 24

    def test_cache_stats(self, client):
        client.post("/chat", json={"query": "Hotels in Cancun"})
        client.post("/chat", json={"query": "Hotels in Cancun"})

        stats = client.get("/cache/stats").json()

        assert stats["cache"]["hits"] == 1
        assert stats["cache"]["writes"] == 1
        assert stats["redis"] == {}
        assert stats["latency"]["chat"]["count"] == 1
        assert stats["latency"]["chat_cached"]["count"] == 1
