"""
Catalog Embedding Index
One embedding record per hotel id: dense vector + metadata snapshot

CatalogIndex keeps vectors in a numpy matrix and answers nearest-neighbour
queries by cosine similarity. Ties break by ascending hotel id so identical
inputs always return identical order.

RedisCatalogIndex adds write-through persistence (float32 bytes in a Redis
hash per hotel) and restores the matrix at startup.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
from loguru import logger

from ..errors import UpstreamUnavailable
from ..schemas.ai_schemas import HotelRecord, HotelResult
from .templates import TEMPLATE_VERSION, record_from_metadata


@dataclass
class EmbeddingRecord:
    hotel_id: str
    vector: np.ndarray
    metadata: Dict[str, Any]
    template_version: str = TEMPLATE_VERSION
    text_digest: str = ""


@dataclass
class ScoredHotel:
    record: HotelRecord
    score: float
    exact_match: bool = True

    @property
    def hotel_id(self) -> str:
        return self.record.id

    def to_result(self) -> HotelResult:
        return HotelResult(
            **self.record.model_dump(),
            score=round(self.score, 4),
            exact_match=self.exact_match,
        )


@dataclass
class RetrievalResult:
    """Ordered, de-duplicated hotels for one query"""
    hotels: List[ScoredHotel] = field(default_factory=list)
    constraints: Optional[Any] = None
    candidates_considered: int = 0

    @property
    def ids(self) -> List[str]:
        return [h.hotel_id for h in self.hotels]

    @property
    def exact_count(self) -> int:
        return sum(1 for h in self.hotels if h.exact_match)

    @property
    def has_backfill(self) -> bool:
        return any(not h.exact_match for h in self.hotels)

    def __len__(self) -> int:
        return len(self.hotels)


class CatalogIndex:
    """
    In-memory catalog embedding index

    Usage:
        index = CatalogIndex()
        await index.upsert("hotel-001", vector, build_metadata(record), text_digest=digest)
        top = index.query(query_vector, k=10)
    """

    def __init__(self):
        self._records: Dict[str, EmbeddingRecord] = {}
        self._matrix: Optional[np.ndarray] = None
        self._matrix_ids: List[str] = []
        self._dirty = True

    # ============================================
    # Writes
    # ============================================

    async def upsert(
        self,
        hotel_id: str,
        vector: List[float],
        metadata: Dict[str, Any],
        template_version: str = TEMPLATE_VERSION,
        text_digest: str = "",
    ) -> EmbeddingRecord:
        """Insert or replace the single embedding record for a hotel id"""
        arr = np.asarray(vector, dtype=np.float32)
        other = next((rec for hid, rec in self._records.items() if hid != hotel_id), None)
        if other is not None and other.vector.shape[0] != arr.shape[0]:
            raise ValueError(
                f"embedding dimension {arr.shape[0]} does not match index dimension {other.vector.shape[0]}"
            )

        record = EmbeddingRecord(
            hotel_id=hotel_id,
            vector=arr,
            metadata=dict(metadata),
            template_version=template_version,
            text_digest=text_digest,
        )
        self._records[hotel_id] = record
        self._dirty = True
        return record

    async def delete(self, hotel_id: str) -> bool:
        removed = self._records.pop(hotel_id, None) is not None
        if removed:
            self._dirty = True
        return removed

    async def clear(self):
        self._records.clear()
        self._dirty = True

    # ============================================
    # Reads
    # ============================================

    def get(self, hotel_id: str) -> Optional[EmbeddingRecord]:
        return self._records.get(hotel_id)

    def ids(self) -> List[str]:
        return sorted(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, hotel_id: str) -> bool:
        return hotel_id in self._records

    def stale_ids(self, template_version: str = TEMPLATE_VERSION) -> List[str]:
        """Records embedded with a different template version"""
        return sorted(
            hotel_id for hotel_id, rec in self._records.items()
            if rec.template_version != template_version
        )

    def records(self) -> List[HotelRecord]:
        return [record_from_metadata(hid, self._records[hid].metadata) for hid in self.ids()]

    def _rebuild(self):
        self._matrix_ids = sorted(self._records)
        if not self._matrix_ids:
            self._matrix = None
        else:
            matrix = np.vstack([self._records[hid].vector for hid in self._matrix_ids])
            norms = np.linalg.norm(matrix, axis=1, keepdims=True)
            norms[norms == 0] = 1.0
            self._matrix = matrix / norms
        self._dirty = False

    def query(
        self,
        vector: List[float],
        k: int,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[ScoredHotel]:
        """
        Top-k hotels by cosine similarity

        Args:
            vector: Query embedding
            k: Maximum number of results
            filters: Optional exact-match metadata predicates,
                e.g. {"city": "Cancun"}

        Returns:
            ScoredHotel list sorted by (score desc, id asc). Empty index gives [].
        """
        if k <= 0 or not self._records:
            return []
        if self._dirty:
            self._rebuild()

        q = np.asarray(vector, dtype=np.float32)
        if q.shape[0] != self._matrix.shape[1]:
            raise UpstreamUnavailable(
                "vector_index",
                f"query dimension {q.shape[0]} does not match index dimension {self._matrix.shape[1]}",
            )
        q_norm = float(np.linalg.norm(q))
        scores = self._matrix @ (q / q_norm) if q_norm else np.zeros(len(self._matrix_ids), dtype=np.float32)

        order = sorted(range(len(self._matrix_ids)), key=lambda i: (-float(scores[i]), self._matrix_ids[i]))

        results = []
        for i in order:
            hotel_id = self._matrix_ids[i]
            metadata = self._records[hotel_id].metadata
            if filters and any(str(metadata.get(key, "")).lower() != str(val).lower() for key, val in filters.items()):
                continue
            results.append(ScoredHotel(record=record_from_metadata(hotel_id, metadata), score=float(scores[i])))
            if len(results) >= k:
                break
        return results

    def get_stats(self) -> dict:
        dims = next(iter(self._records.values())).vector.shape[0] if self._records else 0
        return {
            "hotels": len(self._records),
            "dimensions": int(dims),
            "template_version": TEMPLATE_VERSION,
            "stale": len(self.stale_ids()),
        }


class RedisCatalogIndex(CatalogIndex):
    """
    CatalogIndex with write-through persistence to Redis

    Layout:
        catalog:hotels          set of hotel ids
        catalog:hotel:{id}      hash {vector, metadata, template_version, text_digest}

    Persistence failures are logged; the in-memory index stays authoritative
    for the running process.
    """

    ids_key = "catalog:hotels"
    record_prefix = "catalog:hotel:"

    def __init__(self, redis_client):
        super().__init__()
        self.redis = redis_client

    def _record_key(self, hotel_id: str) -> str:
        return f"{self.record_prefix}{hotel_id}"

    async def upsert(self, hotel_id, vector, metadata, template_version=TEMPLATE_VERSION, text_digest=""):
        record = await super().upsert(hotel_id, vector, metadata, template_version, text_digest)
        try:
            await self.redis.hset(
                self._record_key(hotel_id),
                mapping={
                    "vector": record.vector.tobytes(),
                    "metadata": json.dumps(record.metadata),
                    "template_version": template_version,
                    "text_digest": text_digest,
                },
            )
            await self.redis.sadd(self.ids_key, hotel_id)
        except Exception as e:
            logger.error(f"Failed to persist embedding for {hotel_id}: {e}")
        return record

    async def delete(self, hotel_id: str) -> bool:
        removed = await super().delete(hotel_id)
        try:
            await self.redis.delete(self._record_key(hotel_id))
            await self.redis.srem(self.ids_key, hotel_id)
        except Exception as e:
            logger.error(f"Failed to delete persisted embedding for {hotel_id}: {e}")
        return removed

    async def load(self) -> int:
        """
        Restore persisted records into memory

        Returns:
            Number of records loaded (0 if Redis is unreachable)
        """
        try:
            members = await self.redis.smembers(self.ids_key)
        except Exception as e:
            logger.warning(f"Could not load persisted catalog index: {e}")
            return 0

        loaded = 0
        for member in members:
            hotel_id = member.decode("utf-8") if isinstance(member, bytes) else member
            try:
                data = await self.redis.hgetall(self._record_key(hotel_id))
            except Exception as e:
                logger.warning(f"Could not load embedding for {hotel_id}: {e}")
                continue
            if not data:
                continue
            data = {(k.decode("utf-8") if isinstance(k, bytes) else k): v for k, v in data.items()}
            try:
                vector = np.frombuffer(data["vector"], dtype=np.float32)
                metadata = json.loads(data["metadata"])
            except (KeyError, ValueError) as e:
                logger.warning(f"Corrupt persisted embedding for {hotel_id}, skipping: {e}")
                continue

            def text(value) -> str:
                return value.decode("utf-8") if isinstance(value, bytes) else (value or "")

            self._records[hotel_id] = EmbeddingRecord(
                hotel_id=hotel_id,
                vector=vector.copy(),
                metadata=metadata,
                template_version=text(data.get("template_version")),
                text_digest=text(data.get("text_digest")),
            )
            loaded += 1

        self._dirty = True
        logger.info(f"Loaded {loaded} persisted catalog embeddings")
        return loaded
