"""
Query fingerprinting
Derives deterministic cache keys from free-text queries
"""

import hashlib
import re

_WHITESPACE = re.compile(r"\s+")


def normalize_query(text: str) -> str:
    """
    Lowercase, trim and collapse internal whitespace

    Example:
        >>> normalize_query("  Hotels   in CANCUN ")
        'hotels in cancun'
    """
    return _WHITESPACE.sub(" ", (text or "").strip().lower())


def query_digest(text: str) -> str:
    """sha256 hex digest of the normalised query"""
    return hashlib.sha256(normalize_query(text).encode("utf-8")).hexdigest()


def derive_cache_key(
    query: str,
    namespace: str = "search",
    version: int = 1,
    top_k: int = 5,
) -> str:
    """
    Build the cache key for a query

    Key format: {namespace}:v{version}:{sha256(normalized)}:top{top_k}

    Two queries that are equal after normalisation share a key. Bumping
    `version` orphans every older key; those expire through their TTL.

    Args:
        query: Raw user query
        namespace: Key namespace ("search" for chat turns, "hotels" for /search)
        version: Cache schema version
        top_k: Result-shape tag

    Returns:
        Cache key string
    """
    return f"{namespace}:v{version}:{query_digest(query)}:top{top_k}"
