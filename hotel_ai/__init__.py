# hotel_ai/__init__.py
"""
Hotel Concierge AI Service Package

A conversational hotel-discovery assistant:
- Intent classification (quick replies, hotel search, general travel talk)
- Semantic retrieval over the hotel catalog
- Grounded reply composition with an LLM
- Fingerprinted response cache for instant replays
- CMS ingestion and signed reindex webhooks
"""

__version__ = "1.0.0"

# Package structure:
# hotel_ai/
# ├── __init__.py           <- This file
# ├── main.py               <- FastAPI application entry
# ├── config.py             <- Configuration settings
# ├── errors.py             <- Error taxonomy
# │
# ├── agents/
# │   └── orchestrator.py   <- Per-request pipeline (state machine)
# │
# ├── api/                  <- FastAPI Routers
# │   ├── chat.py           <- /chat
# │   ├── search.py         <- /search
# │   ├── catalog.py        <- /catalog (ingest, webhook, reindex)
# │   ├── dependencies.py   <- Service container
# │   └── exception_handlers.py
# │
# ├── cache/
# │   ├── redis_client.py   <- Redis connection management
# │   ├── fingerprint.py    <- Cache key derivation
# │   ├── response_cache.py <- Cache store adapter
# │   └── embeddings.py     <- Embedding provider + LRU
# │
# ├── catalog/
# │   ├── templates.py      <- Embedding text + metadata snapshot
# │   ├── ingestion.py      <- CMS record normalisation
# │   ├── vector_index.py   <- Catalog embedding index
# │   └── reindex.py        <- Reindex jobs + webhook verification
# │
# ├── interfaces/
# │   └── session_store.py  <- Conversation sessions
# │
# ├── llm/
# │   ├── intent_classifier.py
# │   ├── query_parser.py   <- Location / amenity / price constraints
# │   ├── prompts.py
# │   ├── generator.py      <- OpenAI / Ollama text generation
# │   └── composer.py       <- Grounded reply composition
# │
# ├── retrieval/
# │   └── engine.py         <- Top-K retrieval with post-filters
# │
# ├── schemas/
# │   └── ai_schemas.py     <- Pydantic models
# │
# └── utils/
#     └── performance.py    <- Request step timing
