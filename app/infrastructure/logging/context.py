"""Request and job context binding for structured logging.

Binds correlation ids and request or job metadata to structlog's context
vars so every log line emitted while handling an HTTP request or a scheduler
run can be tied together.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(correlation_id="req-123", user_id="admin@example.com"):
        logger.info("processing_request")
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    user_id: Optional[str] = None,
    request_path: Optional[str] = None,
    request_method: Optional[str] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind request-scoped context to all logs within the context manager.

    Args:
        correlation_id: Unique request identifier. Auto-generated if not provided.
        user_id: ID of the authenticated admin (if available).
        request_path: HTTP request path (e.g., "/api/v1/webhooks/failed").
        request_method: HTTP method (e.g., "GET", "POST").
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation id bound for the block.

    Example:
        @app.middleware("http")
        async def logging_middleware(request: Request, call_next):
            with bind_request_context(
                correlation_id=request.headers.get("X-Correlation-ID"),
                request_path=request.url.path,
                request_method=request.method,
            ):
                return await call_next(request)
    """
    context: dict[str, Any] = {}

    context["correlation_id"] = correlation_id or str(uuid.uuid4())

    if user_id is not None:
        context["user_id"] = user_id

    if request_path is not None:
        context["request_path"] = request_path

    if request_method is not None:
        context["request_method"] = request_method

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield context["correlation_id"]
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


@contextmanager
def bind_job_context(job_name: str, **extra_context: Any) -> Generator[str, None, None]:
    """Bind a fresh correlation id and the job name for one scheduled run.

    Example:
        with bind_job_context("process_retry_queue"):
            service.process_retry_queue()
    """
    with bind_request_context(job_name=job_name, **extra_context) as correlation_id:
        yield correlation_id
