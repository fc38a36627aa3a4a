"""Observability infrastructure module.

This module provides monitoring utilities:
- Structured logging with request-scoped context
- Prometheus metrics
"""

from chat_runtime.platform.observability.logging import configure_logging, get_logger
from chat_runtime.platform.observability.metrics import (
    BUCKETS,
    metrics,
    prometheus_middleware,
)

__all__ = [
    "BUCKETS",
    "configure_logging",
    "get_logger",
    "metrics",
    "prometheus_middleware",
]
