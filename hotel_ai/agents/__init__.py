"""
Agents Package
Request orchestration for the concierge chat
"""

from .orchestrator import ChatOrchestrator, ChatResult, RequestState

__all__ = ["ChatOrchestrator", "ChatResult", "RequestState"]
