"""
Catalog Module
Hotel records, their embedding text and the embedding index
"""

from .templates import TEMPLATE_VERSION, build_embedding_text, build_metadata, record_from_metadata
from .ingestion import slugify, normalize_cms_record, normalize_batch
from .vector_index import CatalogIndex, RedisCatalogIndex, RetrievalResult, ScoredHotel
from .reindex import CatalogReindexer, HotelRepository, ReindexJobLog, verify_webhook

__all__ = [
    "TEMPLATE_VERSION",
    "build_embedding_text",
    "build_metadata",
    "record_from_metadata",
    "slugify",
    "normalize_cms_record",
    "normalize_batch",
    "CatalogIndex",
    "RedisCatalogIndex",
    "RetrievalResult",
    "ScoredHotel",
    "CatalogReindexer",
    "HotelRepository",
    "ReindexJobLog",
    "verify_webhook",
]
