"""
Catalog reindexing
Keeps the embedding index in step with the CMS

- HotelRepository: last ingested copy of every hotel record
- ReindexJobLog: bounded log of reindex runs (Redis list, memory fallback)
- CatalogReindexer: embeds changed records, skips unchanged ones
- verify_webhook: HMAC-SHA256 signature check for CMS webhooks
"""

import hashlib
import hmac
import json
import time
import uuid
from collections import deque
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from ..config import Settings, settings as default_settings
from ..errors import (
    DataIntegrityWarning,
    WebhookNotConfiguredError,
    WebhookVerificationError,
)
from ..schemas.ai_schemas import HotelRecord, JobStatus, ReindexJob
from .ingestion import normalize_batch
from .templates import TEMPLATE_VERSION, build_embedding_text, build_metadata, text_digest

SIGNATURE_HEADERS = ("sanity-signature", "x-sanity-signature", "x-webhook-signature")
SHARED_SECRET_HEADER = "x-reindex-secret"


# ============================================
# Webhook verification
# ============================================

def compute_signature(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw request body"""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def _signature_candidates(header_value: str) -> List[str]:
    # Accepts "hex", "sha256=hex" and "t=...,v1=hex" forms
    candidates = []
    for part in header_value.split(","):
        part = part.strip()
        if "=" in part:
            part = part.split("=", 1)[1].strip()
        if part:
            candidates.append(part.lower())
    return candidates


def verify_webhook(raw_body: bytes, headers: Mapping[str, str], config: Settings = default_settings) -> str:
    """
    Authenticate a CMS webhook

    - Signing secret configured: the HMAC signature is required.
    - No signing secret in production: rejected as not configured.
    - No signing secret otherwise: the static shared-secret header is
      checked when REINDEX_SHARED_SECRET is set, else accepted.

    Returns:
        The method that authenticated the request ("hmac", "shared_secret", "open")

    Raises:
        WebhookVerificationError: signature or secret mismatch
        WebhookNotConfiguredError: production without a signing secret
    """
    lowered = {k.lower(): v for k, v in headers.items()}

    if config.WEBHOOK_SIGNING_SECRET:
        signature = next((lowered[h] for h in SIGNATURE_HEADERS if lowered.get(h)), None)
        if not signature:
            logger.warning("Webhook rejected: missing signature header")
            raise WebhookVerificationError("missing webhook signature")
        expected = compute_signature(raw_body, config.WEBHOOK_SIGNING_SECRET)
        if not any(hmac.compare_digest(expected, c) for c in _signature_candidates(signature)):
            logger.warning("Webhook rejected: HMAC verification failed")
            raise WebhookVerificationError("webhook signature mismatch")
        logger.info("Webhook verified via HMAC")
        return "hmac"

    if config.is_production:
        logger.warning("No WEBHOOK_SIGNING_SECRET set in production, rejecting webhook")
        raise WebhookNotConfiguredError("webhook signing not configured")

    if not check_shared_secret(lowered, config):
        logger.warning("Webhook rejected: shared secret mismatch")
        raise WebhookVerificationError("shared secret mismatch")

    if config.REINDEX_SHARED_SECRET:
        logger.info("Webhook verified via shared secret (development fallback)")
        return "shared_secret"
    logger.warning("Webhook accepted without verification (no secrets configured)")
    return "open"


def check_shared_secret(headers: Mapping[str, str], config: Settings = default_settings) -> bool:
    """Static shared-secret check used by the admin endpoints"""
    if not config.REINDEX_SHARED_SECRET:
        return True
    lowered = {k.lower(): v for k, v in headers.items()}
    supplied = lowered.get(SHARED_SECRET_HEADER, "")
    return hmac.compare_digest(supplied.encode("utf-8"), config.REINDEX_SHARED_SECRET.encode("utf-8"))


# ============================================
# Repository & job log
# ============================================

class HotelRepository:
    """Last ingested copy of each hotel, keyed by stable id"""

    def __init__(self):
        self._records: Dict[str, HotelRecord] = {}

    def upsert(self, record: HotelRecord):
        self._records[record.id] = record

    def delete(self, hotel_id: str) -> bool:
        return self._records.pop(hotel_id, None) is not None

    def get(self, hotel_id: str) -> Optional[HotelRecord]:
        return self._records.get(hotel_id)

    def all(self) -> List[HotelRecord]:
        return [self._records[hid] for hid in sorted(self._records)]

    def __len__(self) -> int:
        return len(self._records)


class ReindexJobLog:
    """
    Recent reindex jobs, newest first

    Stored in a Redis list when available, always mirrored in memory.
    """

    list_key = "catalog:reindex:jobs"

    def __init__(self, redis_client=None, max_jobs: int = 100):
        self.redis = redis_client
        self.max_jobs = max_jobs
        self._jobs: deque = deque(maxlen=max_jobs)

    async def record(self, job: ReindexJob):
        self._jobs.appendleft(job)
        if self.redis is None:
            return
        try:
            await self.redis.lpush(self.list_key, job.model_dump_json())
            await self.redis.ltrim(self.list_key, 0, self.max_jobs - 1)
        except Exception as e:
            logger.warning(f"Failed to persist reindex job {job.id}: {e}")

    async def recent(self, limit: int = 50) -> List[ReindexJob]:
        if self.redis is not None:
            try:
                raw_jobs = await self.redis.lrange(self.list_key, 0, limit - 1)
                return [ReindexJob.model_validate_json(raw) for raw in raw_jobs]
            except Exception as e:
                logger.warning(f"Reading reindex jobs from Redis failed, using memory: {e}")
        return list(self._jobs)[:limit]

    def last(self) -> Optional[ReindexJob]:
        return self._jobs[0] if self._jobs else None


# ============================================
# Reindexer
# ============================================

class CatalogReindexer:
    """
    Embeds catalog records into the index

    A record is re-embedded only when its embedding text changed or it was
    embedded under an older template version (or when forced).
    """

    def __init__(self, index, embedder, repository: HotelRepository, job_log: ReindexJobLog):
        self.index = index
        self.embedder = embedder
        self.repository = repository
        self.job_log = job_log

    def _needs_embedding(self, record: HotelRecord, digest: str) -> bool:
        existing = self.index.get(record.id)
        if existing is None:
            return True
        return existing.text_digest != digest or existing.template_version != TEMPLATE_VERSION

    async def index_records(self, records: Iterable[HotelRecord], force: bool = False) -> Tuple[int, int]:
        """
        Embed and upsert records

        Returns:
            (indexed, skipped)

        Raises:
            UpstreamUnavailable: the embedding provider failed
        """
        indexed = skipped = 0
        for record in records:
            self.repository.upsert(record)
            text = build_embedding_text(record)
            digest = text_digest(text)
            if not force and not self._needs_embedding(record, digest):
                skipped += 1
                continue
            vector = await self.embedder.embed(text)
            await self.index.upsert(
                record.id,
                vector,
                build_metadata(record),
                template_version=TEMPLATE_VERSION,
                text_digest=digest,
            )
            indexed += 1
        return indexed, skipped

    async def _run_job(self, trigger: str, requested_ids: List[str], work) -> ReindexJob:
        job = ReindexJob(id=f"job-{uuid.uuid4().hex[:12]}", trigger=trigger, requested_ids=requested_ids)
        started = time.perf_counter()
        logger.info(f"Reindex job {job.id} started ({trigger})")
        try:
            job.indexed, job.skipped = await work()
            job.status = JobStatus.COMPLETED
        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            logger.error(f"Reindex job {job.id} failed: {e}")
            raise
        finally:
            job.finished_at = datetime.utcnow()
            job.duration_ms = int((time.perf_counter() - started) * 1000)
            await self.job_log.record(job)
        logger.info(
            f"Reindex job {job.id} done: indexed={job.indexed}, skipped={job.skipped}, "
            f"{job.duration_ms}ms"
        )
        return job

    async def ingest(
        self, docs: List[Dict[str, Any]], trigger: str = "ingest"
    ) -> Tuple[ReindexJob, List[DataIntegrityWarning], int]:
        """
        Normalise raw CMS documents and index them

        Returns:
            (job, data integrity warnings, number of documents rejected)
        """
        normalized = normalize_batch(docs)
        issues = [w for n in normalized for w in n.warnings]
        rejected = len([d for d in docs if isinstance(d, dict)]) - len(normalized)
        records = [n.record for n in normalized]

        async def work():
            return await self.index_records(records)

        job = await self._run_job(trigger, [r.id for r in records], work)
        return job, issues, max(rejected, 0)

    async def reindex_ids(self, ids: List[str], trigger: str = "webhook-partial") -> ReindexJob:
        """
        Reindex specific hotels from the repository

        Ids no longer in the repository are removed from the index.
        """
        async def work():
            records = []
            removed = 0
            for hotel_id in ids:
                record = self.repository.get(hotel_id)
                if record is None:
                    if await self.index.delete(hotel_id):
                        removed += 1
                        logger.info(f"Removed {hotel_id} from the catalog index")
                    continue
                records.append(record)
            indexed, skipped = await self.index_records(records, force=True)
            return indexed + removed, skipped

        return await self._run_job(trigger, list(ids), work)

    async def reindex_stale(self, trigger: str = "manual", force: bool = False) -> ReindexJob:
        """Re-embed every repository record whose embedding is missing or stale"""
        async def work():
            return await self.index_records(self.repository.all(), force=force)

        return await self._run_job(trigger, [], work)

    async def load_seed_file(self, path: str) -> Optional[ReindexJob]:
        """Index a JSON array of hotels (the sample catalog) at startup"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                docs = json.load(f)
        except FileNotFoundError:
            logger.warning(f"Seed catalog not found at {path}, starting with an empty catalog")
            return None
        except ValueError as e:
            logger.error(f"Seed catalog {path} is not valid JSON: {e}")
            return None

        job, issues, _ = await self.ingest(docs, trigger="seed")
        if issues:
            logger.warning(f"Seed catalog loaded with {len(issues)} data integrity warnings")
        return job
