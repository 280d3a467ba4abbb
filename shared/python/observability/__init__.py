"""
Observability module for Drive Courier.

Provides:
- Structured JSON logging (logging.py)

Prometheus metrics are defined next to the service that owns them
(services/courier/src/metrics.py).
"""

from .logging import (
    setup_logging,
    get_logger,
    LogContext,
    set_trace_id,
    get_trace_id,
    clear_trace_id,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "LogContext",
    "set_trace_id",
    "get_trace_id",
    "clear_trace_id",
]
