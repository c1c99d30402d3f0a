"""
Retrieval Engine
Top-K hotel retrieval: vector similarity first, query constraints second

Constraints (location, amenities, price tier) are post-filters over a
candidate pool, so similarity ranking is preserved inside the filtered set.
When fewer than K hotels satisfy every constraint the remainder is
backfilled with the next-best candidates, flagged exact_match=False.
"""

from typing import Optional

from loguru import logger

from ..catalog.templates import build_query_text
from ..catalog.vector_index import CatalogIndex, RetrievalResult
from ..llm.query_parser import QueryConstraints, QueryParser, query_parser as default_parser


class RetrievalEngine:
    """
    Usage:
        engine = RetrievalEngine(index, embedder)
        result = await engine.search("adults only resorts in Cancun")
        for hotel in result.hotels:
            print(hotel.record.name, hotel.score, hotel.exact_match)
    """

    def __init__(
        self,
        index: CatalogIndex,
        embedder,
        parser: QueryParser = default_parser,
        default_k: int = 5,
        candidate_multiplier: int = 4,
    ):
        self.index = index
        self.embedder = embedder
        self.parser = parser
        self.default_k = default_k
        self.candidate_multiplier = max(candidate_multiplier, 1)

    async def search(
        self,
        query: str,
        k: Optional[int] = None,
        constraints: Optional[QueryConstraints] = None,
    ) -> RetrievalResult:
        """
        Retrieve up to k hotels for a query

        Args:
            query: User query (raw or normalised)
            k: Result size (defaults to TOP_K)
            constraints: Pre-parsed constraints; parsed from the query when omitted

        Returns:
            RetrievalResult, empty for an empty catalog

        Raises:
            UpstreamUnavailable: the embedding provider or index failed
        """
        k = k or self.default_k
        if constraints is None:
            constraints = self.parser.parse(query)

        if len(self.index) == 0:
            logger.warning("Catalog index is empty, returning no hotels")
            return RetrievalResult(hotels=[], constraints=constraints)

        query_text = build_query_text(
            query,
            city=constraints.location.name if constraints.location else "",
            amenities=constraints.amenities,
        )
        vector = await self.embedder.embed(query_text)

        pool_size = min(len(self.index), k * self.candidate_multiplier)
        candidates = self.index.query(vector, pool_size)

        if constraints.is_empty:
            hotels = candidates[:k]
            return RetrievalResult(hotels=hotels, constraints=constraints, candidates_considered=len(candidates))

        exact = [c for c in candidates if self.parser.matches(c.record, constraints)]
        if len(exact) < k and pool_size < len(self.index):
            # Widen to the whole catalog before falling back to non-exact results
            candidates = self.index.query(vector, len(self.index))
            exact = [c for c in candidates if self.parser.matches(c.record, constraints)]

        seen = set()
        hotels = []
        for candidate in exact:
            if candidate.hotel_id not in seen:
                seen.add(candidate.hotel_id)
                hotels.append(candidate)
            if len(hotels) >= k:
                break

        for candidate in candidates:
            if len(hotels) >= k:
                break
            if candidate.hotel_id in seen:
                continue
            seen.add(candidate.hotel_id)
            candidate.exact_match = False
            hotels.append(candidate)

        result = RetrievalResult(hotels=hotels, constraints=constraints, candidates_considered=len(candidates))
        logger.info(
            f"Retrieved {len(result)} hotels for '{query[:60]}' "
            f"({result.exact_count} exact, constraints={constraints.to_dict()})"
        )
        return result
