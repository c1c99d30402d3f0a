"""Tests for intent classification and query constraint parsing."""

import pytest

from hotel_ai.llm.intent_classifier import QUICK_RESPONSES, Intent, IntentClassifier
from hotel_ai.llm.query_parser import QueryParser, dollar_count, fold
from hotel_ai.schemas.ai_schemas import HotelRecord, PriceTier, Region


@pytest.fixture
def classifier():
    return IntentClassifier()


@pytest.fixture
def parser():
    return QueryParser()


class TestIntentClassifier:
    """Exactly one intent per query; QUICK only for exact small talk."""

    @pytest.mark.parametrize(
        "query, key",
        [
            ("Hello", "hello"),
            ("hi!", "hi"),
            ("  HEY  ", "hey"),
            ("Good morning!", "good morning"),
            ("¡Hola!", "hola"),
            ("thank you", "thanks"),
            ("help?", "help"),
        ],
    )
    def test_quick(self, classifier, query, key):
        classified = classifier.classify(query)
        assert classified.intent == Intent.QUICK
        assert classified.quick_key == key
        assert key in QUICK_RESPONSES

    @pytest.mark.parametrize(
        "query",
        [
            "Hotels in Cancun",
            "Show me adults only resorts in Cancun",
            "Where to stay in Tulum?",
            "I need a room in Mexico City",
            "all-inclusive in Los Cabos",
            "hello, any hotels in Tulum?",
            "Hotels near good restaurants in Oaxaca",
            "Something in Puerto Vallarta",
            "Luxury beachfront with a spa",
        ],
    )
    def test_hotel_search(self, classifier, query):
        assert classifier.classify(query).intent == Intent.HOTEL_SEARCH

    @pytest.mark.parametrize(
        "query",
        [
            "What's the weather like in Tulum in March?",
            "Do I need a visa for Mexico?",
            "Tell me a joke",
            "Best time to visit the cenotes",
            "hello there, how are you today?",
        ],
    )
    def test_general(self, classifier, query):
        assert classifier.classify(query).intent == Intent.GENERAL

    def test_normalised_text_is_recorded(self, classifier):
        classified = classifier.classify("  Hotels   in CANCUN ")
        assert classified.normalized == "hotels in cancun"
        assert classified.raw == "  Hotels   in CANCUN "
        assert classified.constraints.location.name == "Cancun"

    @pytest.mark.parametrize("query", [None, 42, ""])
    def test_never_raises(self, classifier, query):
        assert classifier.classify(query).intent == Intent.GENERAL


class TestQueryParser:
    """Constraint extraction."""

    def test_location_and_amenities(self, parser):
        constraints = parser.parse("Show me adults only resorts in Cancún")

        assert constraints.location.name == "Cancun"
        assert constraints.location.region == "Riviera Maya"
        assert constraints.amenities == ["Adults Only"]
        assert constraints.price_tier is None
        assert constraints.describe() == "adults only in Cancun"

    def test_longest_destination_wins(self, parser):
        assert parser.parse("resorts in cabo san lucas").location.name == "Cabo San Lucas"
        assert parser.parse("playa del carmen hotels").location.name == "Playa del Carmen"

    def test_word_boundaries(self, parser):
        assert parser.parse("a cabochon ring").location is None

    @pytest.mark.parametrize(
        "query, tier",
        [
            ("cheap hotels in tulum", PriceTier.BUDGET),
            ("mid-range stay", PriceTier.MID_RANGE),
            ("five star resort", PriceTier.LUXURY),
        ],
    )
    def test_price_tiers(self, parser, query, tier):
        assert parser.parse(query).price_tier == tier

    def test_adults_only_drops_family_amenity(self, parser):
        assert parser.parse("adults only, no kids club").amenities == ["Adults Only"]

    def test_empty(self, parser):
        assert parser.parse("something nice").is_empty


class TestRecordMatching:
    """Post-filter predicates over catalog records."""

    def test_location_matches_city_and_region(self, parser):
        record = HotelRecord(
            id="hotel-001", name="Grand Velas", city="Playa del Carmen",
            region=Region(id="region-riviera-maya", name="Riviera Maya"),
        )
        assert parser.matches_location(record, parser.destinations["playa del carmen"])
        assert parser.matches_location(record, parser.destinations["riviera maya"])
        assert not parser.matches_location(record, parser.destinations["cancun"])

    def test_region_inferred_from_city(self, parser):
        record = HotelRecord(id="hotel-x", name="Casa", city="Tulum")
        assert parser.matches_location(record, parser.destinations["riviera maya"])

    def test_amenity_matching_is_case_insensitive(self, parser):
        record = HotelRecord(id="hotel-x", name="Casa", amenities=["ADULTS-ONLY", "Infinity Pool"])
        assert parser.matches_amenity(record, "Adults Only")
        assert parser.matches_amenity(record, "Pool")
        assert not parser.matches_amenity(record, "Spa")

    @pytest.mark.parametrize(
        "price_range, budget, mid, luxury",
        [("$", True, False, False), ("$$", True, True, False), ("$$$", False, True, False), ("$$$$$", False, False, True), ("", False, False, False)],
    )
    def test_price_tier_matching(self, parser, price_range, budget, mid, luxury):
        record = HotelRecord(id="hotel-x", name="Casa", price_range=price_range)
        assert parser.matches_price_tier(record, PriceTier.BUDGET) is budget
        assert parser.matches_price_tier(record, PriceTier.MID_RANGE) is mid
        assert parser.matches_price_tier(record, PriceTier.LUXURY) is luxury


def test_helpers():
    assert fold("Cancún") == "cancun"
    assert dollar_count("$$-$$$") == 2
    assert dollar_count("n/a") == 0
