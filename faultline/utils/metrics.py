"""
Metrics collection and emission for observability.

This module provides metrics tracking for:
- Ingestion outcomes (accepted, invalid, rate limited, persistence failures)
- Outbound API call latency
"""

import time
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextlib import asynccontextmanager
from dataclasses import dataclass

from faultline.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


@dataclass
class LatencyStats:
    """Running latency aggregate; constant size however many calls are recorded."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    def add(self, duration_ms: float) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "min_ms": round(self.min_ms, 2),
            "max_ms": round(self.max_ms, 2),
            "avg_ms": round(self.total_ms / self.count, 2),
        }


class IngestionMetrics:
    """
    Counters for the error ingestion endpoint.

    Tracks:
    - Accepted reports
    - Reports rejected by schema validation
    - Requests rejected by the rate limiter
    - Reports lost to persistence failures
    - Outbound API call counts and latency
    """

    def __init__(self):
        self.started_at = datetime.now(timezone.utc)

        self.accepted: int = 0
        self.rejected_invalid: int = 0
        self.rate_limited: int = 0
        self.persistence_failures: int = 0
        self.backend_errors: int = 0

        self.api_calls: Dict[str, int] = {}
        self.api_latencies: Dict[str, LatencyStats] = {}

    def record_accepted(self) -> None:
        self.accepted += 1

    def record_invalid(self) -> None:
        self.rejected_invalid += 1

    def record_rate_limited(self) -> None:
        self.rate_limited += 1

    def record_persistence_failure(self) -> None:
        self.persistence_failures += 1

    def record_backend_error(self) -> None:
        self.backend_errors += 1

    def record_api_call(self, service: str, duration_ms: float) -> None:
        """
        Record API call and latency.

        Args:
            service: Service name (e.g., 'error_reporting')
            duration_ms: Call duration in milliseconds
        """
        self.api_calls[service] = self.api_calls.get(service, 0) + 1
        self.api_latencies.setdefault(service, LatencyStats()).add(duration_ms)

    def get_metrics_summary(self) -> Dict[str, Any]:
        """
        Get summary of collected metrics.

        Returns:
            Dictionary of metrics
        """
        summary: Dict[str, Any] = {
            "started_at": self.started_at.isoformat(),
            "accepted": self.accepted,
            "rejected_invalid": self.rejected_invalid,
            "rate_limited": self.rate_limited,
            "persistence_failures": self.persistence_failures,
            "backend_errors": self.backend_errors,
            "api_calls": self.api_calls,
        }

        if self.api_latencies:
            summary["api_latencies"] = {
                service: stats.summary() for service, stats in self.api_latencies.items()
            }

        return summary


@asynccontextmanager
async def track_api_call(
    metrics: Optional[IngestionMetrics],
    service: str,
    logger_adapter,
    endpoint: str = "",
    method: str = "",
):
    """
    Context manager to time an outbound API call.

    Usage:
        async with track_api_call(metrics, "error_reporting", logger, url, "POST"):
            await client.post(url, json=payload)
    """
    start_time = time.perf_counter()
    error = None

    try:
        yield
    except Exception as e:
        error = e
        raise
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000

        if metrics:
            metrics.record_api_call(service, duration_ms)

        log_api_call(
            logger_adapter,
            service=service,
            endpoint=endpoint,
            method=method,
            duration_ms=duration_ms,
            error=str(error) if error else None
        )


def emit_metric(metric_name: str, value: float, **tags: Any) -> None:
    """
    Emit a metric as a structured log line.

    Args:
        metric_name: Metric name
        value: Metric value
        **tags: Metric tags/labels
    """
    logger.info(
        f"Metric: {metric_name}",
        extra={
            "metric_name": metric_name,
            "metric_value": value,
            "metric_tags": tags,
        }
    )
