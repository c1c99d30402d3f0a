"""
Interfaces Package
Conversation session storage
"""

from .session_store import Session, SessionStore, Turn

__all__ = ["Session", "SessionStore", "Turn"]
