"""Webhook retry endpoints.

Cron endpoints drive the retry scheduler and the dead-letter retention
cleanup; admin endpoints expose queue status, health and the manual
dead-letter operations; ``/webhooks/incoming`` receives raw webhooks.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from api.dependencies.auth import require_admin, verify_cron_secret
from api.dependencies.rate_limits import get_limiter
from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, OperationStatus
from infrastructure.services import SettingsDep, WebhookRetryServiceDep
from models.webhooks import ManualRetryRequest, ResolveRequest
from modules.webhook_retry.dead_letter import DEFAULT_PAGE_SIZE

logger = get_module_logger()
router = APIRouter(tags=["Webhook Retry"])
limiter = get_limiter()

MAX_PAGE_SIZE = 500

STATUS_CODES = {
    OperationStatus.SUCCESS: 200,
    OperationStatus.NOT_FOUND: 404,
    OperationStatus.PERMANENT_ERROR: 400,
    OperationStatus.CONFLICT: 409,
    OperationStatus.UNAUTHORIZED: 401,
}


def to_response(result: OperationResult) -> JSONResponse:
    """Render an OperationResult with its mapped HTTP status code."""
    status_code = STATUS_CODES.get(result.status, 500)
    headers = None
    if result.retry_after:
        headers = {"Retry-After": str(result.retry_after)}
    return JSONResponse(
        status_code=status_code, content=result.to_dict(), headers=headers
    )


# Cron


@router.post("/cron/webhook-retry", dependencies=[Depends(verify_cron_secret)])
@limiter.limit("30/minute")
def run_webhook_retry(
    request: Request, service: WebhookRetryServiceDep
):  # pylint: disable=unused-argument
    """Process one batch of due retry entries."""
    result = service.process_retry_queue()
    return {"ok": True, "result": result.to_dict()}


@router.post(
    "/cron/webhook-dlq-cleanup", dependencies=[Depends(verify_cron_secret)]
)
@limiter.limit("10/minute")
def run_dlq_cleanup(
    request: Request,  # pylint: disable=unused-argument
    service: WebhookRetryServiceDep,
    settings: SettingsDep,
    older_than_days: Optional[int] = Query(default=None, ge=0),
):
    """Delete reviewed dead-letter entries older than the retention period."""
    days = (
        older_than_days
        if older_than_days is not None
        else settings.retry.dlq_retention_days
    )
    deleted = service.cleanup_old_dlq_entries(days)
    return {"ok": True, "deleted": deleted, "older_than_days": days}


# Admin


@router.get("/webhooks/retry/status")
@limiter.limit("60/minute")
def get_retry_status(
    request: Request,  # pylint: disable=unused-argument
    service: WebhookRetryServiceDep,
    _user: str = Depends(require_admin),
):
    """Counts over the retry queue."""
    return service.get_retry_queue_status().to_dict()


@router.get("/webhooks/retry/dlq-status")
@limiter.limit("60/minute")
def get_dlq_status(
    request: Request,  # pylint: disable=unused-argument
    service: WebhookRetryServiceDep,
    _user: str = Depends(require_admin),
):
    """Counts over the dead-letter queue."""
    return service.get_dlq_status().to_dict()


@router.get("/webhooks/retry/health")
@limiter.limit("60/minute")
def get_retry_health(
    request: Request,  # pylint: disable=unused-argument
    service: WebhookRetryServiceDep,
    _user: str = Depends(require_admin),
):
    """Health report with threshold issues. Unhealthy reports use 503."""
    report = service.check_retry_system_health()
    return JSONResponse(
        status_code=200 if report.healthy else 503, content=report.to_dict()
    )


@router.get("/webhooks/failed")
@limiter.limit("60/minute")
def list_failed_webhooks(
    request: Request,  # pylint: disable=unused-argument
    service: WebhookRetryServiceDep,
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    start_after: Optional[str] = None,
    only_unreviewed: bool = False,
    _user: str = Depends(require_admin),
):
    """List dead-letter entries, newest failure first."""
    page = service.list_dlq_entries(
        limit=limit, start_after=start_after, only_unreviewed=only_unreviewed
    )
    return page.to_dict()


@router.post("/webhooks/retry")
@limiter.limit("30/minute")
def retry_failed_webhook(
    request: Request,  # pylint: disable=unused-argument
    payload: ManualRetryRequest,
    service: WebhookRetryServiceDep,
    user: str = Depends(require_admin),
):
    """Queue a dead-lettered webhook again with high priority."""
    logger.info("manual_retry_requested", dlq_id=payload.dlq_id, user=user)
    result = service.manual_retry_webhook(
        payload.dlq_id, user, expected_version=payload.expected_version
    )
    return to_response(result)


@router.post("/webhooks/retry/resolve")
@limiter.limit("30/minute")
def resolve_failed_webhook(
    request: Request,  # pylint: disable=unused-argument
    payload: ResolveRequest,
    service: WebhookRetryServiceDep,
    user: str = Depends(require_admin),
):
    """Mark a dead-letter entry as ignored or fixed by hand."""
    result = service.resolve_dlq_entry(
        payload.dlq_id,
        user,
        payload.resolution,
        notes=payload.notes,
        expected_version=payload.expected_version,
    )
    return to_response(result)


# Ingestion


@router.post("/webhooks/incoming")
@limiter.limit("300/minute")
async def receive_webhook(request: Request, service: WebhookRetryServiceDep):
    """Forward a raw webhook to the processor, queueing it for retry on failure.

    The body is read as bytes and stored unchanged.
    """
    raw_payload = await request.body()
    if not raw_payload:
        raise HTTPException(status_code=400, detail="Empty payload")

    result = await run_in_threadpool(
        service.receive_webhook, raw_payload, dict(request.headers)
    )
    if not result.is_success:
        return to_response(result)
    status_code = 200 if result.data.get("delivered") else 202
    return JSONResponse(status_code=status_code, content=result.to_dict())
