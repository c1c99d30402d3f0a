"""
Response Composer
Builds the user-facing reply for each intent

- QUICK: canned reply, no network call
- HOTEL_SEARCH: hotel cards come only from the retrieval result; reply text
  from the LLM, or a deterministic template when generation fails
- GENERAL: free-form LLM answer with recent session context
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from loguru import logger

from ..catalog.vector_index import RetrievalResult
from ..errors import GenerationFailed, GroundingViolation
from ..schemas.ai_schemas import HotelResult
from .intent_classifier import QUICK_RESPONSES, ClassifiedQuery, Intent
from .prompts import (
    GENERAL_REPLY_PROMPT,
    HOTEL_REPLY_PROMPT,
    SYSTEM_PROMPT,
    format_conversation_context,
    format_hotel_line,
)

APOLOGY_MESSAGE = (
    "I'm sorry, I'm having trouble answering that right now. "
    "Please try again in a moment, or ask me about hotels in a specific destination."
)


@dataclass
class ComposedReply:
    message: str
    hotels: List[HotelResult] = field(default_factory=list)
    response_time_ms: int = 0
    used_llm: bool = False


def elapsed_ms(started_at: float) -> int:
    return max(int((time.perf_counter() - started_at) * 1000), 0)


class ResponseComposer:
    """
    Usage:
        composer = ResponseComposer(generator)
        reply = await composer.compose(classified, retrieval, history, started_at)
    """

    def __init__(self, generator=None):
        self.generator = generator

    async def compose(
        self,
        classified: ClassifiedQuery,
        retrieval: Optional[RetrievalResult] = None,
        history=None,
        started_at: Optional[float] = None,
    ) -> ComposedReply:
        """
        Compose the reply for a classified query

        Args:
            classified: Output of the intent classifier
            retrieval: Retrieval result (HOTEL_SEARCH only)
            history: Recent session turns
            started_at: time.perf_counter() at request receipt

        Raises:
            GenerationFailed: GENERAL intent and the LLM is unavailable
        """
        started_at = started_at if started_at is not None else time.perf_counter()

        if classified.intent == Intent.QUICK:
            reply = ComposedReply(message=QUICK_RESPONSES[classified.quick_key or "hello"])
        elif classified.intent == Intent.HOTEL_SEARCH:
            reply = await self._compose_search(classified, retrieval or RetrievalResult())
        else:
            reply = await self._compose_general(classified, history or [])

        reply.response_time_ms = elapsed_ms(started_at)
        return reply

    # ============================================
    # HOTEL_SEARCH
    # ============================================

    async def _compose_search(self, classified: ClassifiedQuery, retrieval: RetrievalResult) -> ComposedReply:
        constraints = retrieval.constraints or classified.constraints

        if not retrieval.hotels:
            wanted = constraints.describe() if constraints is not None else "hotels"
            return ComposedReply(
                message=(
                    f"I couldn't find any {wanted} in our catalog right now. "
                    "Try another destination or fewer requirements and I'll take another look."
                ),
                hotels=[],
            )

        hotels = [h.to_result() for h in retrieval.hotels]
        self._check_grounding(hotels, retrieval)

        match_note = self._backfill_note(retrieval)
        used_llm = False
        try:
            message = await self._generate_search_text(classified, retrieval, match_note)
            used_llm = True
        except GenerationFailed as e:
            logger.warning(f"Generation failed for hotel reply, using template: {e}")
            message = self._template_reply(retrieval)

        if match_note and match_note not in message:
            message = f"{message}\n\n{match_note}"

        return ComposedReply(message=message, hotels=hotels, used_llm=used_llm)

    @staticmethod
    def _check_grounding(hotels: List[HotelResult], retrieval: RetrievalResult):
        allowed = set(retrieval.ids)
        stray = [h.id for h in hotels if h.id not in allowed]
        if stray:
            raise GroundingViolation(f"hotels not in retrieval result: {stray}", {"hotel_ids": stray})

    @staticmethod
    def _backfill_note(retrieval: RetrievalResult) -> str:
        if not retrieval.has_backfill:
            return ""
        wanted = retrieval.constraints.describe() if retrieval.constraints is not None else "your request"
        exact = retrieval.exact_count
        if exact == 0:
            return (
                f"I couldn't find exact matches for {wanted}, "
                "so these are the closest alternatives."
            )
        return (
            f"Only {exact} of these match everything you asked for ({wanted}); "
            "the others are the closest alternatives."
        )

    async def _generate_search_text(self, classified, retrieval: RetrievalResult, match_note: str) -> str:
        if self.generator is None:
            raise GenerationFailed("no text generator configured")
        lines = [
            format_hotel_line(i + 1, h.record.name, h.record.city, h.record.price_range, h.record.rating, h.record.amenities)
            for i, h in enumerate(retrieval.hotels)
        ]
        prompt = HOTEL_REPLY_PROMPT.format(
            user_query=classified.raw.strip(),
            hotel_context="\n".join(lines),
            match_note=f"\n{match_note}\n" if match_note else "",
        )
        return await self.generator.generate(SYSTEM_PROMPT, prompt)

    @staticmethod
    def _template_reply(retrieval: RetrievalResult) -> str:
        count = len(retrieval.hotels)
        wanted = retrieval.constraints.describe() if retrieval.constraints is not None else "hotels"
        header = f"Here {'is' if count == 1 else 'are'} {count} option{'' if count == 1 else 's'} for {wanted}:"
        lines = []
        for i, hotel in enumerate(retrieval.hotels, start=1):
            record = hotel.record
            price = f", {record.price_range}" if record.price_range else ""
            lines.append(f"{i}. {record.name} ({record.city or record.location_text}{price}, {record.rating:.1f}/5)")
        return header + "\n" + "\n".join(lines)

    # ============================================
    # GENERAL
    # ============================================

    async def _compose_general(self, classified: ClassifiedQuery, history) -> ComposedReply:
        if self.generator is None:
            raise GenerationFailed("no text generator configured")
        prompt = GENERAL_REPLY_PROMPT.format(
            user_query=classified.raw.strip(),
            conversation_context=format_conversation_context(history),
        )
        message = await self.generator.generate(SYSTEM_PROMPT, prompt)
        return ComposedReply(message=message, hotels=[], used_llm=True)
