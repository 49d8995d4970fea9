"""Infrastructure observability module - Prometheus metrics.

Exports:
    RetryMetrics: Recorder for retry lifecycle counters
"""

from infrastructure.observability.metrics import RetryMetrics

__all__ = [
    "RetryMetrics",
]
