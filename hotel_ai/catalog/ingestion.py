"""
CMS record normalisation
Turns raw hotel documents from the CMS export (or webhook payloads) into
HotelRecord objects

Handled variations:
- id from `id`, `_id`, `slug.current`, or the slugified name
- `location` as a flat string or a structured address object
- coordinates from `coordinates`, `locationGeo` or the address object
- image from `imageUrl` or the first entry of `images`
- region reference `{_id, name, slug}`

Missing fields are default-filled and reported as DataIntegrityWarning.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from ..errors import DataIntegrityWarning
from ..schemas.ai_schemas import Coordinates, HotelRecord, Region, StructuredAddress
from .templates import fallback_image

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """
    Normalised slug used as a stable id when the CMS omits one

    Example:
        >>> slugify("Hôtel Xcaret  Arte!")
        'hotel-xcaret-arte'
    """
    ascii_text = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    return _SLUG_STRIP.sub("-", ascii_text.lower()).strip("-")


@dataclass
class NormalizedHotel:
    record: HotelRecord
    warnings: List[DataIntegrityWarning] = field(default_factory=list)


def _slug_value(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        return raw.get("current")
    if isinstance(raw, str):
        return raw
    return None


def _resolve_id(doc: Dict[str, Any]) -> Optional[str]:
    for candidate in (doc.get("id"), doc.get("_id"), _slug_value(doc.get("slug"))):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    name = doc.get("name")
    if isinstance(name, str) and slugify(name):
        return slugify(name)
    return None


def _string_list(value: Any) -> List[str]:
    """Strip, drop empties and de-duplicate case-insensitively, keeping order"""
    if isinstance(value, str):
        value = [part for part in value.split(",")]
    if not isinstance(value, list):
        return []
    seen = set()
    items = []
    for item in value:
        if not isinstance(item, str):
            continue
        text = item.strip()
        if text and text.lower() not in seen:
            seen.add(text.lower())
            items.append(text)
    return items


def _image_url(doc: Dict[str, Any]) -> str:
    url = doc.get("imageUrl")
    if isinstance(url, str) and url:
        return url
    images = doc.get("images")
    if isinstance(images, list) and images:
        first = images[0] or {}
        if isinstance(first, dict):
            url = first.get("url") or (first.get("asset") or {}).get("url")
            if url:
                return url
    return ""


def _region(raw: Any) -> Optional[Region]:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name") or ""
    region_id = raw.get("_id") or raw.get("_ref") or raw.get("id")
    slug = _slug_value(raw.get("slug"))
    if not slug and isinstance(region_id, str):
        slug = region_id.replace("region-", "", 1)
    if not (name or region_id):
        return None
    return Region(id=region_id, name=name, slug=slug)


def _coordinates(doc: Dict[str, Any], address: Optional[StructuredAddress]) -> Coordinates:
    geo = doc.get("coordinates") or doc.get("locationGeo") or {}
    if isinstance(geo, dict) and geo:
        lat = geo.get("latitude", geo.get("lat", 0.0))
        lng = geo.get("longitude", geo.get("lng", 0.0))
        try:
            return Coordinates(latitude=float(lat or 0.0), longitude=float(lng or 0.0))
        except (TypeError, ValueError):
            pass
    if address is not None:
        return Coordinates(latitude=address.latitude, longitude=address.longitude)
    return Coordinates()


def normalize_cms_record(doc: Dict[str, Any]) -> Optional[NormalizedHotel]:
    """
    Normalise one CMS document

    Returns:
        NormalizedHotel, or None when the document has neither an id nor a
        usable name (nothing stable to key it by)
    """
    hotel_id = _resolve_id(doc)
    if not hotel_id:
        logger.warning(f"Skipping CMS document without id or name: {str(doc)[:80]}")
        return None

    issues: List[DataIntegrityWarning] = []

    def note(field_name: str):
        issue = DataIntegrityWarning(hotel_id, field_name)
        issues.append(issue)
        logger.warning(f"[Catalog] {issue}")

    name = doc.get("name")
    if not isinstance(name, str) or not name.strip():
        note("name")
        name = hotel_id

    raw_location = doc.get("location")
    address = None
    if isinstance(raw_location, dict):
        address = StructuredAddress(
            address=raw_location.get("address") or raw_location.get("street") or "",
            city=raw_location.get("city") or "",
            state=raw_location.get("state") or "",
            latitude=float(raw_location.get("latitude") or raw_location.get("lat") or 0.0),
            longitude=float(raw_location.get("longitude") or raw_location.get("lng") or 0.0),
        )
        location = address
    elif isinstance(raw_location, str):
        location = raw_location.strip()
    else:
        location = ""

    city = doc.get("city") or (address.city if address else "") or ""
    state = doc.get("state") or (address.state if address else "") or ""
    if not city:
        note("city")

    description = doc.get("description")
    if not isinstance(description, str) or not description:
        note("description")
        description = ""

    amenities = _string_list(doc.get("amenities"))
    if not amenities:
        note("amenities")

    rating = doc.get("rating")
    try:
        rating = min(max(float(rating), 0.0), 5.0)
    except (TypeError, ValueError):
        note("rating")
        rating = 0.0

    try:
        review_count = int(doc.get("reviewCount") or 0)
    except (TypeError, ValueError):
        review_count = 0

    image_url = _image_url(doc) or fallback_image(hotel_id)

    record = HotelRecord(
        id=hotel_id,
        name=name.strip(),
        location=location,
        city=city,
        state=state,
        description=description,
        amenities=amenities,
        price_range=str(doc.get("priceRange") or ""),
        rating=rating,
        review_count=review_count,
        type=doc.get("type") or "Hotel",
        image_url=image_url,
        affiliate_link=doc.get("affiliateLink") or "#",
        nearby_attractions=_string_list(doc.get("nearbyAttractions")),
        coordinates=_coordinates(doc, address),
        region=_region(doc.get("region")),
    )
    return NormalizedHotel(record=record, warnings=issues)


def normalize_batch(docs: List[Dict[str, Any]]) -> List[NormalizedHotel]:
    """Normalise a batch; later duplicates of an id replace earlier ones"""
    by_id: Dict[str, NormalizedHotel] = {}
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        normalized = normalize_cms_record(doc)
        if normalized is not None:
            by_id[normalized.record.id] = normalized
    return list(by_id.values())
