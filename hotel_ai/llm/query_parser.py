# llm/query_parser.py
"""
Query Constraint Parser
Extracts retrieval constraints from natural language hotel queries:
- Destination (city / region, Mexico destinations)
- Amenities ("adults only", "all-inclusive", "pet friendly", ...)
- Price tier (budget / mid-range / luxury)

Constraints are applied by the retrieval engine as post-filters.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from ..schemas.ai_schemas import HotelRecord, PriceTier


@dataclass(frozen=True)
class Destination:
    name: str
    state: str
    region: str

    @property
    def is_region(self) -> bool:
        return self.name == self.region


@dataclass
class QueryConstraints:
    """Structured constraints extracted from a query"""
    location: Optional[Destination] = None
    amenities: List[str] = field(default_factory=list)
    price_tier: Optional[PriceTier] = None

    @property
    def is_empty(self) -> bool:
        return self.location is None and not self.amenities and self.price_tier is None

    def describe(self) -> str:
        """Short human-readable summary, e.g. 'adults only in Cancun'"""
        parts = []
        if self.price_tier:
            parts.append(self.price_tier.value.replace("_", "-"))
        if self.amenities:
            parts.append(", ".join(a.lower() for a in self.amenities))
        text = " ".join(parts) or "hotels"
        if self.location:
            text += f" in {self.location.name}"
        return text

    def to_dict(self) -> Dict:
        return {
            "location": self.location.name if self.location else None,
            "amenities": list(self.amenities),
            "price_tier": self.price_tier.value if self.price_tier else None,
        }


def fold(text: str) -> str:
    """Lowercase and strip accents ("Cancún" -> "cancun")"""
    return unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii").lower()


def dollar_count(price_range: str) -> int:
    """Number of '$' in the leading price bucket ('$$$$' -> 4, '$$-$$$' -> 2)"""
    match = re.match(r"\s*(\$+)", price_range or "")
    return len(match.group(1)) if match else 0


class QueryParser:
    """
    Rule-based constraint extraction. Constant time, no network.
    """

    def __init__(self):
        # Destination table; the longest matching alias wins
        self.destinations = {
            "cancun": Destination("Cancun", "Quintana Roo", "Riviera Maya"),
            "playa del carmen": Destination("Playa del Carmen", "Quintana Roo", "Riviera Maya"),
            "tulum": Destination("Tulum", "Quintana Roo", "Riviera Maya"),
            "cozumel": Destination("Cozumel", "Quintana Roo", "Riviera Maya"),
            "riviera maya": Destination("Riviera Maya", "Quintana Roo", "Riviera Maya"),
            "isla mujeres": Destination("Isla Mujeres", "Quintana Roo", "Riviera Maya"),
            "cabo san lucas": Destination("Cabo San Lucas", "Baja California Sur", "Los Cabos"),
            "los cabos": Destination("Los Cabos", "Baja California Sur", "Los Cabos"),
            "cabo": Destination("Cabo San Lucas", "Baja California Sur", "Los Cabos"),
            "puerto vallarta": Destination("Puerto Vallarta", "Jalisco", "Pacific Coast"),
            "vallarta": Destination("Puerto Vallarta", "Jalisco", "Pacific Coast"),
            "acapulco": Destination("Acapulco", "Guerrero", "Pacific Coast"),
            "mazatlan": Destination("Mazatlan", "Sinaloa", "Pacific Coast"),
            "mexico city": Destination("Mexico City", "CDMX", "Central Mexico"),
            "cdmx": Destination("Mexico City", "CDMX", "Central Mexico"),
            "guadalajara": Destination("Guadalajara", "Jalisco", "Central Mexico"),
            "san miguel de allende": Destination("San Miguel de Allende", "Guanajuato", "Central Mexico"),
            "oaxaca": Destination("Oaxaca", "Oaxaca", "Southern Mexico"),
            "merida": Destination("Merida", "Yucatan", "Yucatan Peninsula"),
        }
        self._destination_patterns = [
            (re.compile(rf"\b{re.escape(alias)}\b"), dest)
            for alias, dest in sorted(self.destinations.items(), key=lambda kv: -len(kv[0]))
        ]

        # Canonical amenity -> query patterns
        self.amenity_patterns = {
            "Adults Only": [r"adults?[- ]?only", r"adult[- ]?exclusive", r"no (kids|children)", r"(kid|child)[- ]?free"],
            "All-Inclusive": [r"all[- ]?inclusive"],
            "Pet-Friendly": [r"pet[- ]?friendly", r"pets? allowed", r"with (my |our )?(dog|pets?)"],
            "Spa": [r"\bspa\b"],
            "Pool": [r"\bpools?\b", r"swimming"],
            "Beach Access": [r"\bbeach(front)?\b", r"ocean ?front", r"on the beach"],
            "Golf": [r"\bgolf\b"],
            "Kids Club": [r"kids? club", r"family[- ]friendly", r"(for|with) (the )?kids"],
            "WiFi": [r"wi-?fi", r"internet"],
            "Butler Service": [r"butler"],
        }

        # Canonical amenity -> pattern matched against hotel amenity strings
        self.amenity_matchers = {
            "Adults Only": re.compile(r"adults?[- ]?only"),
            "All-Inclusive": re.compile(r"all[- ]?inclusive"),
            "Pet-Friendly": re.compile(r"pet"),
            "Spa": re.compile(r"\bspa\b"),
            "Pool": re.compile(r"pool"),
            "Beach Access": re.compile(r"beach"),
            "Golf": re.compile(r"golf"),
            "Kids Club": re.compile(r"kids? club|family|water park"),
            "WiFi": re.compile(r"wi-?fi|internet"),
            "Butler Service": re.compile(r"butler"),
        }

        self.price_patterns = {
            PriceTier.BUDGET: [r"\bbudget\b", r"\bcheap(est)?\b", r"affordable", r"inexpensive", r"low[- ]cost"],
            PriceTier.MID_RANGE: [r"mid[- ]?range", r"moderate(ly priced)?", r"reasonably priced"],
            PriceTier.LUXURY: [r"luxur(y|ious)", r"upscale", r"high[- ]end", r"(five|5)[- ]star", r"premium"],
        }

    def parse(self, query: str) -> QueryConstraints:
        """
        Extract constraints from a query

        Args:
            query: Raw or normalised user query

        Returns:
            QueryConstraints (empty when nothing recognisable)
        """
        text = fold(query)
        constraints = QueryConstraints(
            location=self.extract_location(text),
            amenities=self._extract_amenities(text),
            price_tier=self._extract_price_tier(text),
        )
        if not constraints.is_empty:
            logger.debug(f"Parsed constraints: {constraints.to_dict()}")
        return constraints

    def extract_location(self, text: str) -> Optional[Destination]:
        folded = fold(text)
        for pattern, dest in self._destination_patterns:
            if pattern.search(folded):
                return dest
        return None

    def _extract_amenities(self, text: str) -> List[str]:
        found = []
        for amenity, patterns in self.amenity_patterns.items():
            if any(re.search(p, text) for p in patterns):
                found.append(amenity)
        if "Adults Only" in found and "Kids Club" in found:
            found.remove("Kids Club")
        return found

    def _extract_price_tier(self, text: str) -> Optional[PriceTier]:
        for tier, patterns in self.price_patterns.items():
            if any(re.search(p, text) for p in patterns):
                return tier
        return None

    # ============================================
    # Record matching (used by the retrieval post-filter)
    # ============================================

    def matches_location(self, record: HotelRecord, destination: Destination) -> bool:
        """City, location, state-level region or region reference matches"""
        target = fold(destination.name)
        haystack = [fold(record.city), fold(record.location_text)]
        if record.region:
            haystack.append(fold(record.region.name))
        if any(target and target in h for h in haystack):
            return True
        if destination.is_region:
            city_dest = self.extract_location(record.city) or self.extract_location(record.location_text)
            return city_dest is not None and city_dest.region == destination.region
        return False

    def matches_amenity(self, record: HotelRecord, amenity: str) -> bool:
        matcher = self.amenity_matchers.get(amenity)
        if matcher is None:
            return any(fold(amenity) in fold(a) for a in record.amenities)
        return any(matcher.search(fold(a)) for a in record.amenities)

    def matches_price_tier(self, record: HotelRecord, tier: PriceTier) -> bool:
        count = dollar_count(record.price_range)
        if count == 0:
            return False
        if tier == PriceTier.BUDGET:
            return count <= 2
        if tier == PriceTier.MID_RANGE:
            return 2 <= count <= 3
        return count >= 4

    def matches(self, record: HotelRecord, constraints: QueryConstraints) -> bool:
        """True when the record satisfies every constraint"""
        if constraints.location and not self.matches_location(record, constraints.location):
            return False
        if any(not self.matches_amenity(record, a) for a in constraints.amenities):
            return False
        if constraints.price_tier and not self.matches_price_tier(record, constraints.price_tier):
            return False
        return True


# Global instance
query_parser = QueryParser()
