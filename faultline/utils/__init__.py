"""
Utility modules for the Faultline error collector.
"""

from faultline.utils.logging import (
    get_logger,
    setup_logging,
    log_api_call,
    log_breaker_transition,
    log_error_with_context,
)
from faultline.utils.metrics import (
    IngestionMetrics,
    track_api_call,
    emit_metric,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "log_api_call",
    "log_breaker_transition",
    "log_error_with_context",
    "IngestionMetrics",
    "track_api_call",
    "emit_metric",
]
