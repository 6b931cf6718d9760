"""
Backend-side error capture.

Failures raised inside this process are trusted input: they skip the client
schema and go to their own append-only log, separate from client reports.
"""

import traceback
from typing import Optional

from fastapi import Request

from faultline.models.error_report import BackendErrorReport
from faultline.services.error_log import AppendOnlyLog
from faultline.services.runtime_hooks import PythonRuntimeHooks, RuntimeHooks
from faultline.utils.clock import now_ms
from faultline.utils.logging import get_logger
from faultline.utils.metrics import IngestionMetrics

logger = get_logger(__name__)


def resolve_client_ip(request: Optional[Request], trust_proxy_headers: bool = True) -> str:
    """
    Identify the caller: trusted proxy header, then socket peer, then "unknown".
    """
    if request is None:
        return "unknown"

    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


class BackendErrorRecorder:
    """
    Writes BackendErrorReport records for exceptions raised in this process.

    Args:
        log: Destination log (the backend log, never the client one)
        hooks: Host runtime hook registry used by install() (default: PythonRuntimeHooks)
        metrics: Optional counters
        trust_proxy_headers: Whether X-Forwarded-For identifies the client
    """

    def __init__(
        self,
        log: AppendOnlyLog,
        hooks: Optional[RuntimeHooks] = None,
        metrics: Optional[IngestionMetrics] = None,
        trust_proxy_headers: bool = True,
    ):
        self.log = log
        self.hooks = hooks or PythonRuntimeHooks()
        self.metrics = metrics
        self.trust_proxy_headers = trust_proxy_headers
        self.installed = False

    def build_report(self, exc: BaseException, request: Optional[Request] = None) -> BackendErrorReport:
        stack = None
        if exc.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

        fields = {
            "stack": stack,
            "timestamp": now_ms(),
            "ip": resolve_client_ip(request, self.trust_proxy_headers),
        }
        if str(exc):
            fields["message"] = str(exc)
        if request is not None:
            fields["url"] = str(request.url)
            fields["method"] = request.method
            fields["user_agent"] = request.headers.get("user-agent", "")

        return BackendErrorReport(**fields)

    async def record(self, exc: BaseException, request: Optional[Request] = None) -> Optional[BackendErrorReport]:
        """
        Persist one backend failure.

        Returns:
            The written report, or None if the write failed (logged, not raised)
        """
        report = self.build_report(exc, request)

        if self.metrics:
            self.metrics.record_backend_error()

        logger.error(
            f"Backend error: {report.message}",
            extra={"report_type": report.type, "client_ip": report.ip, "method": report.method},
            exc_info=(type(exc), exc, exc.__traceback__),
        )

        try:
            await self.log.append(report.to_record())
        except OSError as e:
            logger.error(f"Failed to write backend error log: {e}", exc_info=True)
            return None

        return report

    async def _on_runtime_error(self, exc: BaseException) -> None:
        await self.record(exc)

    def install(self) -> None:
        """Capture uncaught exceptions and unhandled async failures process-wide."""
        if self.installed:
            return
        self.hooks.register(self._on_runtime_error, self._on_runtime_error)
        self.installed = True

    def uninstall(self) -> None:
        if self.installed:
            self.hooks.unregister()
            self.installed = False
