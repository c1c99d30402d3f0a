# llm/__init__.py
"""
LLM Components Package

Contains:
- intent_classifier: QUICK / HOTEL_SEARCH / GENERAL routing
- query_parser: location, amenity and price constraints
- generator: OpenAI / Ollama text generation
- composer: grounded reply composition
"""

from .intent_classifier import ClassifiedQuery, Intent, IntentClassifier, intent_classifier
from .query_parser import QueryConstraints, QueryParser, query_parser
from .generator import build_generator
from .composer import ComposedReply, ResponseComposer, APOLOGY_MESSAGE

__all__ = [
    "ClassifiedQuery",
    "Intent",
    "IntentClassifier",
    "intent_classifier",
    "QueryConstraints",
    "QueryParser",
    "query_parser",
    "build_generator",
    "ComposedReply",
    "ResponseComposer",
    "APOLOGY_MESSAGE",
]
