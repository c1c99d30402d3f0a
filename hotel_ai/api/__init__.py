"""
API Routers Package

FastAPI routers:
- chat: POST /chat, session inspection
- search: POST /search
- catalog: ingestion, webhook, reindex administration
"""

from . import catalog, chat, search

__all__ = ["catalog", "chat", "search"]
