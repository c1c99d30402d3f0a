"""
Retrieval Module
"""

from .engine import RetrievalEngine

__all__ = ["RetrievalEngine"]
