"""Tests for CMS record normalisation and the embedding template."""

import json

import pytest

from hotel_ai.catalog.ingestion import normalize_batch, normalize_cms_record, slugify
from hotel_ai.catalog.templates import (
    TEMPLATE_VERSION,
    build_embedding_text,
    build_metadata,
    fallback_image,
    record_from_metadata,
)
from hotel_ai.errors import DataIntegrityWarning
from hotel_ai.schemas.ai_schemas import StructuredAddress


def cms_doc(**overrides):
    doc = {
        "_id": "hotel-015",
        "name": "Secrets The Vine Cancun",
        "location": "Cancun Hotel Zone",
        "city": "Cancun",
        "state": "Quintana Roo",
        "description": "Adults-only all-inclusive resort.",
        "amenities": ["Beach Access", "Adults Only", "All-Inclusive"],
        "priceRange": "$$$$",
        "rating": 4.6,
        "reviewCount": 1800,
        "type": "Resort",
        "imageUrl": "https://example.com/vine.jpg",
        "region": {"_id": "region-riviera-maya", "name": "Riviera Maya", "slug": {"current": "riviera-maya"}},
    }
    doc.update(overrides)
    return doc


class TestSlugify:
    def test_accents_and_punctuation(self):
        assert slugify("Hôtel Xcaret  Arte!") == "hotel-xcaret-arte"

    def test_empty(self):
        assert slugify("") == ""


class TestNormalizeCmsRecord:
    """Field handling for raw CMS documents."""

    def test_complete_record_has_no_warnings(self):
        normalized = normalize_cms_record(cms_doc())
        record = normalized.record

        assert normalized.warnings == []
        assert record.id == "hotel-015"
        assert record.price_range == "$$$$"
        assert record.region.slug == "riviera-maya"
        assert record.image_url == "https://example.com/vine.jpg"

    @pytest.mark.parametrize(
        "id_fields, expected",
        [
            ({"id": "hotel-900"}, "hotel-900"),
            ({"_id": "cms-abc"}, "cms-abc"),
            ({"_id": None, "slug": {"current": "the-vine"}}, "the-vine"),
            ({"_id": None}, "secrets-the-vine-cancun"),
        ],
    )
    def test_id_resolution_order(self, id_fields, expected):
        assert normalize_cms_record(cms_doc(**id_fields)).record.id == expected

    def test_id_is_stable_across_reseeds(self):
        first = normalize_cms_record(cms_doc(_id=None))
        second = normalize_cms_record(cms_doc(_id=None, description="Edited"))
        assert first.record.id == second.record.id

    def test_document_without_id_or_name_is_rejected(self):
        assert normalize_cms_record({"city": "Cancun"}) is None

    def test_structured_location(self):
        doc = cms_doc(
            city=None,
            state=None,
            location={"address": "Km 19.5", "city": "Los Cabos", "state": "BCS", "latitude": 22.98, "longitude": -109.77},
        )
        record = normalize_cms_record(doc).record

        assert isinstance(record.location, StructuredAddress)
        assert record.city == "Los Cabos"
        assert record.location_text == "Km 19.5, Los Cabos, BCS"
        assert record.coordinates.latitude == pytest.approx(22.98)

    def test_missing_fields_are_default_filled_with_warnings(self):
        doc = {"name": "Casa Sin Datos", "rating": "n/a"}
        normalized = normalize_cms_record(doc)
        fields = {w.field for w in normalized.warnings}

        assert fields == {"city", "description", "amenities", "rating"}
        assert all(isinstance(w, DataIntegrityWarning) for w in normalized.warnings)
        assert normalized.record.rating == 0.0
        assert normalized.record.review_count == 0
        assert normalized.record.type == "Hotel"
        assert normalized.record.affiliate_link == "#"
        assert normalized.record.image_url == fallback_image("casa-sin-datos")

    def test_amenities_are_unique_and_trimmed(self):
        doc = cms_doc(amenities=[" Spa", "spa", "Pool ", "", 7, "Pool"])
        assert normalize_cms_record(doc).record.amenities == ["Spa", "Pool"]

    def test_rating_is_clamped(self):
        assert normalize_cms_record(cms_doc(rating=7)).record.rating == 5.0

    def test_image_from_images_array(self):
        doc = cms_doc(imageUrl=None, images=[{"asset": {"url": "https://cdn.example.com/a.jpg"}}])
        assert normalize_cms_record(doc).record.image_url == "https://cdn.example.com/a.jpg"

    def test_batch_keeps_last_duplicate(self):
        batch = normalize_batch([cms_doc(rating=4.0), cms_doc(rating=4.9), "garbage"])
        assert len(batch) == 1
        assert batch[0].record.rating == 4.9


class TestTemplates:
    """Embedding input and metadata snapshot."""

    def test_embedding_text_is_deterministic(self):
        record = normalize_cms_record(cms_doc()).record
        assert build_embedding_text(record) == build_embedding_text(record.model_copy())

    def test_embedding_text_contains_fields_in_order(self):
        text = build_embedding_text(normalize_cms_record(cms_doc()).record)
        lines = text.split("\n")

        assert lines[0] == "Hotel: Secrets The Vine Cancun"
        assert "Amenities: Beach Access, Adults Only, All-Inclusive" in lines
        assert lines[-1] == "Type: Resort"

    def test_missing_fields_render_empty(self):
        record = normalize_cms_record({"name": "Bare Hotel"}).record
        text = build_embedding_text(record)
        assert "City: \n" in text
        assert "Rating: 0.0" in text

    def test_metadata_round_trip(self):
        record = normalize_cms_record(cms_doc(nearbyAttractions=["Playa Delfines"])).record
        metadata = build_metadata(record)

        assert json.loads(metadata["amenities"]) == record.amenities
        assert metadata["templateVersion"] == TEMPLATE_VERSION

        restored = record_from_metadata(record.id, metadata)
        assert restored.name == record.name
        assert restored.amenities == record.amenities
        assert restored.nearby_attractions == ["Playa Delfines"]
        assert restored.region.name == "Riviera Maya"

    def test_record_from_garbled_metadata(self):
        restored = record_from_metadata("hotel-x", {"amenities": "not-json", "rating": "high"})

        assert restored.name == "hotel-x"
        assert restored.amenities == []
        assert restored.rating == 0.0
        assert restored.image_url == fallback_image("hotel-x")
