# llm/intent_classifier.py
"""
Intent Classifier
Routes each chat query to exactly one pipeline:
- QUICK: greetings and small talk, answered from canned replies
- HOTEL_SEARCH: lodging requests, answered from the catalog
- GENERAL: everything else, answered by the LLM

Rule-based, constant time, never raises.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from loguru import logger

from ..cache.fingerprint import normalize_query
from .query_parser import QueryConstraints, QueryParser, fold, query_parser as default_parser


class Intent(str, Enum):
    QUICK = "QUICK"
    HOTEL_SEARCH = "HOTEL_SEARCH"
    GENERAL = "GENERAL"


@dataclass
class ClassifiedQuery:
    raw: str
    normalized: str
    intent: Intent
    quick_key: Optional[str] = None
    constraints: QueryConstraints = field(default_factory=QueryConstraints)


# ============================================
# Canned replies
# ============================================

QUICK_RESPONSES = {
    "hello": (
        "Hello! I'm Maya, your personal Mexico travel assistant. I'm here to help you find "
        "the perfect hotel for your Mexican vacation. Where are you thinking of staying? "
        "Popular destinations include Cancun, Playa del Carmen, Tulum, and Puerto Vallarta!"
    ),
    "hi": (
        "Hi there! I'm Maya, and I'd love to help you plan your Mexico trip. What kind of hotel "
        "experience are you looking for? Beach resort, boutique hotel, or something else?"
    ),
    "hey": (
        "Hey! Welcome! I'm Maya, your Mexico hotel expert. Tell me about your dream vacation. "
        "Are you looking for beaches, culture, adventure, or a mix of everything?"
    ),
    "help": (
        "I'm here to help you find amazing hotels in Mexico! Just tell me:\n"
        "- Where you want to go (like Cancun, Tulum, etc.)\n"
        "- Your budget preferences\n"
        "- What amenities matter to you\n"
        "- When you're planning to travel\n\n"
        "I'll find the perfect matches for you!"
    ),
    "hola": (
        "¡Hola! Welcome to your Mexico travel adventure! I'm Maya, and I'm excited to help you "
        "discover amazing hotels. What destination are you dreaming of?"
    ),
    "good morning": (
        "Good morning! Ready to plan an amazing Mexico getaway? I'm Maya, your travel assistant. "
        "Where would you like to explore?"
    ),
    "good afternoon": (
        "Good afternoon! Perfect time to start planning your Mexico vacation. I'm Maya, "
        "let's find you the perfect hotel!"
    ),
    "good evening": (
        "Good evening! Let's make your Mexico travel dreams come true. I'm Maya, ready to help "
        "you find amazing accommodations!"
    ),
    "thanks": "You're welcome! Let me know if you'd like more hotel ideas for your trip.",
}

QUICK_ALIASES = {
    "hi there": "hi",
    "hello there": "hello",
    "hey there": "hey",
    "thank you": "thanks",
    "thank you so much": "thanks",
    "thx": "thanks",
    "buenos dias": "good morning",
    "buenas tardes": "good afternoon",
    "buenas noches": "good evening",
}

_TRAILING_PUNCTUATION = re.compile(r"[\s!?.,¡¿]+$")
_LEADING_PUNCTUATION = re.compile(r"^[\s¡¿]+")


class IntentClassifier:
    """
    Classifies queries into QUICK / HOTEL_SEARCH / GENERAL

    Usage:
        classified = intent_classifier.classify("Hotels in Cancun")
        classified.intent  # Intent.HOTEL_SEARCH
    """

    def __init__(self, parser: QueryParser = default_parser):
        self.parser = parser

        # Unambiguous lodging vocabulary
        self.lodging_patterns = [
            r"\bhotels?\b", r"\bresorts?\b", r"\bmotels?\b", r"\bhostels?\b", r"\binns?\b",
            r"\bvillas?\b", r"\bsuites?\b", r"\bb&b\b", r"\bbnb\b",
            r"\baccommodations?\b", r"\blodging\b", r"\brooms?\b",
            r"\b(where|place|places) to stay\b", r"\bstay(ing)? (in|at|near)\b",
            r"\bbook(ing)? a (room|hotel|stay)\b", r"all[- ]?inclusive", r"adults?[- ]?only",
        ]

        # Weak lodging signals; only decisive when no other topic competes
        self.soft_patterns = [
            r"\bbeach(front)?\b", r"\bpool\b", r"\bspa\b", r"\bluxur(y|ious)\b", r"\bbudget\b",
            r"\bcheap\b", r"\baffordable\b", r"\bfamily[- ]friendly\b", r"\bpet[- ]friendly\b",
        ]

        # Non-lodging travel topics
        self.general_patterns = [
            r"\bweather\b", r"\bclimate\b", r"\btemperature\b", r"\brestaurants?\b", r"\bfood\b",
            r"\beat\b", r"\bflights?\b", r"\bairport\b", r"\bvisa\b", r"\bpassport\b",
            r"\bcurrency\b", r"\bpesos?\b", r"\bsafe(ty)?\b", r"\bhistory\b", r"\bthings to do\b",
            r"\bactivit(y|ies)\b", r"\bmuseums?\b", r"\btours?\b", r"\bnightlife\b",
            r"\btransport(ation)?\b", r"\bruins\b", r"\bcenotes?\b", r"\bbest time\b",
        ]

    def _quick_key(self, normalized: str) -> Optional[str]:
        text = _TRAILING_PUNCTUATION.sub("", _LEADING_PUNCTUATION.sub("", fold(normalized)))
        if text in QUICK_RESPONSES:
            return text
        return QUICK_ALIASES.get(text)

    def _any(self, patterns, text: str) -> bool:
        return any(re.search(p, text) for p in patterns)

    def _classify(self, query: str) -> ClassifiedQuery:
        normalized = normalize_query(query)

        quick_key = self._quick_key(normalized)
        if quick_key:
            return ClassifiedQuery(raw=query, normalized=normalized, intent=Intent.QUICK, quick_key=quick_key)

        text = fold(normalized)
        constraints = self.parser.parse(text)

        if self._any(self.lodging_patterns, text):
            intent = Intent.HOTEL_SEARCH
        elif self._any(self.general_patterns, text):
            intent = Intent.GENERAL
        elif constraints.location is not None or self._any(self.soft_patterns, text):
            intent = Intent.HOTEL_SEARCH
        else:
            intent = Intent.GENERAL

        return ClassifiedQuery(raw=query, normalized=normalized, intent=intent, constraints=constraints)

    def classify(self, query: str) -> ClassifiedQuery:
        """
        Classify a query. Never raises; unexpected input is GENERAL.

        Args:
            query: Raw user query

        Returns:
            ClassifiedQuery
        """
        try:
            classified = self._classify(query)
        except Exception as e:
            logger.error(f"Intent classification failed, defaulting to GENERAL: {e}")
            text = query if isinstance(query, str) else ""
            return ClassifiedQuery(raw=text, normalized=normalize_query(text), intent=Intent.GENERAL)

        logger.info(f"Classified intent: {classified.intent.value} for '{classified.normalized[:60]}'")
        return classified


# Global instance
intent_classifier = IntentClassifier()
