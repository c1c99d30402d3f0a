# api/catalog.py
"""
Catalog API Endpoints
CMS ingestion, signed change webhooks and reindex administration

POST   /catalog/ingest    - batch export from the CMS (shared secret)
POST   /catalog/webhook   - CMS change notification (HMAC signed)
POST   /catalog/reindex   - rebuild stale embeddings (shared secret)
GET    /catalog/status    - index size, template version, last job
GET    /catalog/jobs      - recent reindex jobs (shared secret)
DELETE /catalog/cache     - purge cached replies for the current key version (shared secret)
"""

import json
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from loguru import logger
from pydantic import ValidationError

from ..catalog.reindex import check_shared_secret, verify_webhook
from ..catalog.templates import TEMPLATE_VERSION
from ..errors import InvalidPayloadError, WebhookVerificationError
from ..schemas.ai_schemas import (
    CatalogStatus,
    IngestRequest,
    IngestResponse,
    ReindexJob,
    ReindexResponse,
    WebhookPayload,
)
from .dependencies import AppServices, get_services

router = APIRouter(prefix="/catalog", tags=["catalog"])


def require_shared_secret(request: Request, services: AppServices = Depends(get_services)):
    if not check_shared_secret(request.headers, services.config):
        raise WebhookVerificationError("invalid or missing x-reindex-secret header")


@router.post("/ingest", response_model=IngestResponse, dependencies=[Depends(require_shared_secret)])
async def ingest_hotels(body: IngestRequest, services: AppServices = Depends(get_services)):
    """Normalise and index a batch of CMS hotel documents"""
    job, issues, rejected = await services.reindexer.ingest(body.hotels, trigger="ingest")
    return IngestResponse(
        received=len(body.hotels),
        indexed=job.indexed,
        skipped=job.skipped + rejected,
        warnings=[str(issue) for issue in issues],
    )


def _parse_webhook(raw_body: bytes) -> WebhookPayload:
    if not raw_body.strip():
        return WebhookPayload()
    try:
        data = json.loads(raw_body)
    except ValueError as e:
        raise InvalidPayloadError(f"webhook body is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidPayloadError("webhook body must be a JSON object")

    # A projection of a single hotel document
    if data.get("_type") == "hotel" and "ids" not in data and "documents" not in data:
        data = {"documents": [data]}
    try:
        return WebhookPayload.model_validate(data)
    except ValidationError as e:
        raise InvalidPayloadError(f"unrecognised webhook payload: {e.errors()[0].get('msg', '')}") from e


@router.post("/webhook", response_model=ReindexResponse)
async def cms_webhook(request: Request, services: AppServices = Depends(get_services)):
    """
    CMS change notification

    The signature is computed over the raw body, so the body is read
    before any JSON parsing.
    """
    raw_body = await request.body()
    method = verify_webhook(raw_body, request.headers, services.config)
    payload = _parse_webhook(raw_body)
    reindexer = services.reindexer

    if payload.documents:
        job, issues, _ = await reindexer.ingest(payload.documents, trigger="webhook-documents")
        covered = set(job.requested_ids)
        remaining = [i for i in payload.ids if i not in covered]
        if remaining:
            await reindexer.reindex_ids(remaining)
        if issues:
            logger.warning(f"Webhook documents had {len(issues)} data integrity warnings")
        message = f"Reindexed {job.indexed} hotels from webhook documents"
    elif payload.ids:
        job = await reindexer.reindex_ids(payload.ids)
        message = f"Reindexed {job.indexed} hotels"
    else:
        logger.info("CMS webhook received without ids; reindexing all stale hotels")
        job = await reindexer.reindex_stale(trigger="webhook-full")
        message = f"Reindexed {job.indexed} hotels (full)"

    logger.info(f"Webhook ({method}) handled: {message}")
    return ReindexResponse(message=message, reindexed=job.indexed, job=job)


@router.post("/reindex", response_model=ReindexResponse, dependencies=[Depends(require_shared_secret)])
async def manual_reindex(
    force: bool = Query(False, description="Re-embed every hotel, even unchanged ones"),
    services: AppServices = Depends(get_services),
):
    job = await services.reindexer.reindex_stale(trigger="manual", force=force)
    return ReindexResponse(message=f"Reindexed {job.indexed} hotels", reindexed=job.indexed, job=job)


@router.get("/status", response_model=CatalogStatus)
async def catalog_status(services: AppServices = Depends(get_services)):
    return CatalogStatus(
        hotels=len(services.index),
        template_version=TEMPLATE_VERSION,
        stale_ids=services.index.stale_ids(),
        last_job=services.job_log.last(),
    )


@router.get("/jobs", response_model=List[ReindexJob], dependencies=[Depends(require_shared_secret)])
async def reindex_jobs(
    limit: int = Query(50, ge=1, le=100),
    services: AppServices = Depends(get_services),
):
    return await services.job_log.recent(limit)


@router.delete("/cache", dependencies=[Depends(require_shared_secret)])
async def purge_cache(services: AppServices = Depends(get_services)):
    """Drop cached chat and search replies for the current key version"""
    config = services.config
    deleted = 0
    for namespace in (config.CACHE_NAMESPACE, config.SEARCH_CACHE_NAMESPACE):
        deleted += await services.cache.purge(f"{namespace}:v{config.CACHE_KEY_VERSION}:*")
    return {"status": "purged", "deleted": deleted}
