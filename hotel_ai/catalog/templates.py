"""
Catalog templates
Fixed embedding-input template and the denormalised metadata snapshot
stored next to every vector

Changing EMBEDDING_TEMPLATE means bumping TEMPLATE_VERSION; records whose
stored version differs are reported stale and rebuilt on the next reindex.
"""

import hashlib
import json
from typing import Any, Dict, List, Optional

from loguru import logger

from ..schemas.ai_schemas import Coordinates, HotelRecord, Region

TEMPLATE_VERSION = "hotel-text-v1"

EMBEDDING_TEMPLATE = (
    "Hotel: {name}\n"
    "Location: {location}\n"
    "City: {city}\n"
    "State: {state}\n"
    "Region: {region}\n"
    "Description: {description}\n"
    "Amenities: {amenities}\n"
    "Price Range: {price_range}\n"
    "Rating: {rating}\n"
    "Type: {type}"
)

QUERY_TEMPLATE = (
    "Hotel search: {query}\n"
    "City: {city}\n"
    "Amenities: {amenities}"
)

FALLBACK_IMAGES = [
    "https://images.unsplash.com/photo-1566073771259-6a8506099945",
    "https://images.unsplash.com/photo-1571003123894-1f0594d2b5d9",
    "https://images.unsplash.com/photo-1582719508461-905c673771fd",
    "https://images.unsplash.com/photo-1520250497591-112f2f40a3f4",
    "https://images.unsplash.com/photo-1551882547-ff40c63fe5fa",
]


def fallback_image(hotel_id: str) -> str:
    """Stable placeholder image for a hotel without one"""
    digest = int(hashlib.md5(hotel_id.encode("utf-8")).hexdigest(), 16)
    return FALLBACK_IMAGES[digest % len(FALLBACK_IMAGES)]


def _format_rating(rating: Optional[float]) -> str:
    if rating is None:
        return ""
    return f"{float(rating):.1f}"


def build_embedding_text(record: HotelRecord) -> str:
    """
    Render the embedding input for a record

    Missing fields render as empty strings, so the same record always yields
    byte-identical text.
    """
    return EMBEDDING_TEMPLATE.format(
        name=record.name or "",
        location=record.location_text,
        city=record.city or "",
        state=record.state or "",
        region=record.region.name if record.region else "",
        description=record.description or "",
        amenities=", ".join(record.amenities),
        price_range=record.price_range or "",
        rating=_format_rating(record.rating),
        type=record.type or "",
    )


def build_query_text(query: str, city: str = "", amenities: Optional[List[str]] = None) -> str:
    """Render a user query in the same field vocabulary as catalog records"""
    return QUERY_TEMPLATE.format(
        query=query.strip(),
        city=city or "",
        amenities=", ".join(amenities or []),
    )


def text_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def build_metadata(record: HotelRecord) -> Dict[str, Any]:
    """
    Denormalised snapshot rendered into hotel cards without a second lookup

    Values are flat primitives so the snapshot can live in a Redis hash;
    list fields are JSON-encoded strings.
    """
    region = record.region or Region()
    return {
        "name": record.name,
        "location": record.location_text,
        "city": record.city or "",
        "state": record.state or "",
        "description": record.description or "",
        "amenities": json.dumps(record.amenities),
        "priceRange": record.price_range or "",
        "rating": float(record.rating or 0.0),
        "reviewCount": int(record.review_count or 0),
        "type": record.type or "Hotel",
        "imageUrl": record.image_url or fallback_image(record.id),
        "affiliateLink": record.affiliate_link or "#",
        "nearbyAttractions": json.dumps(record.nearby_attractions),
        "latitude": float(record.coordinates.latitude),
        "longitude": float(record.coordinates.longitude),
        "regionName": region.name or "",
        "regionId": region.id or "",
        "regionSlug": region.slug or "",
        "templateVersion": TEMPLATE_VERSION,
    }


def _json_list(hotel_id: str, metadata: Dict[str, Any], field: str) -> List[str]:
    raw = metadata.get(field)
    if raw in (None, ""):
        return []
    if isinstance(raw, list):
        return [str(item) for item in raw]
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Metadata field '{field}' of {hotel_id} is not valid JSON, using []")
        return []
    return [str(item) for item in value] if isinstance(value, list) else []


def _number(hotel_id: str, metadata: Dict[str, Any], field: str, default: float) -> float:
    raw = metadata.get(field, default)
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Metadata field '{field}' of {hotel_id} is not numeric, using {default}")
        return default


def record_from_metadata(hotel_id: str, metadata: Dict[str, Any]) -> HotelRecord:
    """
    Render a HotelRecord from a stored metadata snapshot

    Tolerates missing or garbled fields by default-filling them.
    """
    region = None
    if metadata.get("regionName"):
        region = Region(
            id=metadata.get("regionId") or None,
            name=metadata["regionName"],
            slug=metadata.get("regionSlug") or None,
        )

    rating = min(max(_number(hotel_id, metadata, "rating", 0.0), 0.0), 5.0)

    return HotelRecord(
        id=hotel_id,
        name=metadata.get("name") or hotel_id,
        location=metadata.get("location") or "",
        city=metadata.get("city") or "",
        state=metadata.get("state") or "",
        description=metadata.get("description") or "",
        amenities=_json_list(hotel_id, metadata, "amenities"),
        price_range=metadata.get("priceRange") or "",
        rating=rating,
        review_count=int(_number(hotel_id, metadata, "reviewCount", 0)),
        type=metadata.get("type") or "Hotel",
        image_url=metadata.get("imageUrl") or fallback_image(hotel_id),
        affiliate_link=metadata.get("affiliateLink") or "#",
        nearby_attractions=_json_list(hotel_id, metadata, "nearbyAttractions"),
        coordinates=Coordinates(
            latitude=_number(hotel_id, metadata, "latitude", 0.0),
            longitude=_number(hotel_id, metadata, "longitude", 0.0),
        ),
        region=region,
    )
