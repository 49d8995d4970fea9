"""HTTP implementation of the webhook processor.

Re-posts the stored raw payload and headers to the downstream handler. The
downstream must be idempotent: a webhook may be delivered more than once.
"""

from typing import Dict

import requests

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.models import ProcessingOutcome, WebhookRequest

logger = get_module_logger()

# Hop-by-hop and length headers are recomputed by requests
EXCLUDED_HEADERS = frozenset(
    {"host", "content-length", "connection", "transfer-encoding", "accept-encoding"}
)


def forwardable_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in EXCLUDED_HEADERS}


class HttpForwardProcessor:
    """Delivers webhooks to a downstream URL with ``requests``.

    Connection errors and timeouts propagate as exceptions; the retry worker
    records them as failed attempts.

    Args:
        url: Downstream endpoint
        timeout: Per-request timeout in seconds
        session: Optional ``requests.Session`` (connection pooling, tests)
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def process(self, request: WebhookRequest) -> ProcessingOutcome:
        response = self.session.request(
            request.method,
            self.url,
            data=request.raw_payload,
            headers=forwardable_headers(request.headers),
            timeout=self.timeout,
        )
        message = None
        if not 200 <= response.status_code < 300:
            message = response.text[:500] if response.text else response.reason
            logger.warning(
                "webhook_forward_rejected",
                url=self.url,
                status_code=response.status_code,
            )
        return ProcessingOutcome(status_code=response.status_code, message=message)
