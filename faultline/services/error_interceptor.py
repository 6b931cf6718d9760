"""
Client-side error interceptor.

Captures uncaught errors and unhandled async failures in the host process,
turns them into ClientErrorReport records enriched with browser/OS data,
forwards them to the ingestion endpoint, and shows a user-facing
notification. Forwarding failures are logged and dropped: reporting must
never cause a second failure.
"""

import traceback
from typing import Dict, Optional

import httpx

from faultline.config import Settings
from faultline.models.error_report import ClientErrorReport, ErrorType
from faultline.services.error_classifier import get_user_friendly_message
from faultline.services.notifications import NotificationCenter
from faultline.services.runtime_hooks import PythonRuntimeHooks, RuntimeHooks
from faultline.services.user_agent import parse_user_agent
from faultline.utils.clock import now_ms
from faultline.utils.logging import get_logger
from faultline.utils.metrics import IngestionMetrics, track_api_call
from faultline.utils.resilience import CircuitBreaker

logger = get_logger(__name__)


class ErrorReportSender:
    """
    Posts error reports to the ingestion endpoint.

    Calls go through a circuit breaker so a collector outage costs one
    failed request per reset window instead of one per error.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        breaker: Optional[CircuitBreaker] = None,
        metrics: Optional[IngestionMetrics] = None,
    ):
        self.client = client
        self.endpoint = endpoint
        self.breaker = breaker
        self.metrics = metrics

    async def send(self, report: ClientErrorReport) -> bool:
        """
        Deliver one report.

        Returns:
            True if the collector accepted it, False otherwise (never raises)
        """
        async def _post() -> httpx.Response:
            response = await self.client.post(self.endpoint, json=report.to_record())
            response.raise_for_status()
            return response

        try:
            async with track_api_call(self.metrics, "error_reporting", logger, self.endpoint, "POST"):
                if self.breaker is not None:
                    await self.breaker.execute(_post)
                else:
                    await _post()
            return True
        except Exception as e:
            logger.warning(
                f"Failed to deliver error report: {e}",
                extra={"report_type": report.type, "error_type": type(e).__name__}
            )
            return False


class ErrorInterceptor:
    """
    Installs global error hooks and reports what they catch.

    Args:
        sender: Delivers reports to the collector
        notifications: Where the user-facing message is shown (optional)
        page_url: URL reported as the failure location
        user_agent: User agent of the client, used for browser/OS enrichment
        hooks: Host runtime hook registry (default: PythonRuntimeHooks)
        debounce_window: Seconds during which a repeated report is dropped
        max_message_length: Report messages are truncated to this length
    """

    def __init__(
        self,
        sender: ErrorReportSender,
        notifications: Optional[NotificationCenter] = None,
        page_url: str = "http://localhost/",
        user_agent: Optional[str] = None,
        hooks: Optional[RuntimeHooks] = None,
        debounce_window: float = 5.0,
        max_message_length: int = 200,
    ):
        self.sender = sender
        self.notifications = notifications
        self.page_url = page_url
        self.user_agent = user_agent
        self.hooks = hooks or PythonRuntimeHooks()
        self.debounce_window = debounce_window
        self.max_message_length = max_message_length
        self.installed = False
        self._last_reported: Dict[str, int] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: httpx.AsyncClient,
        breaker: Optional[CircuitBreaker] = None,
        **kwargs,
    ) -> "ErrorInterceptor":
        sender = ErrorReportSender(client, settings.error_report_endpoint, breaker)
        notifications = NotificationCenter(
            timeout=settings.notification_timeout_seconds,
            max_message_length=settings.max_message_length,
        )
        return cls(
            sender,
            notifications,
            debounce_window=settings.error_report_debounce_seconds,
            max_message_length=settings.max_message_length,
            **kwargs,
        )

    def install(self) -> None:
        if self.installed:
            return
        self.hooks.register(self.on_uncaught_error, self.on_unhandled_rejection)
        self.installed = True

    def uninstall(self) -> None:
        """Deregister both hooks and cancel any pending notification timer."""
        if self.installed:
            self.hooks.unregister()
            self.installed = False
        if self.notifications is not None:
            self.notifications.close()

    async def on_uncaught_error(self, exc: BaseException) -> bool:
        return await self.capture(exc, ErrorType.ERROR)

    async def on_unhandled_rejection(self, exc: BaseException) -> bool:
        return await self.capture(exc, ErrorType.UNHANDLED_REJECTION)

    async def capture_component_error(self, exc: BaseException, component_stack: str) -> bool:
        """Report a failure caught while rendering a UI component tree."""
        return await self.capture(exc, ErrorType.ERROR, component_stack=component_stack)

    async def capture(
        self,
        exc: BaseException,
        error_type: ErrorType = ErrorType.ERROR,
        component_stack: Optional[str] = None,
    ) -> bool:
        """
        Report one failure and notify the user.

        Returns:
            True if the report reached the collector
        """
        delivered = False
        try:
            report = self.build_report(exc, error_type, component_stack)
        except Exception as e:
            logger.error(f"Could not build error report: {e}", exc_info=True)
        else:
            if self._should_report(report):
                delivered = await self.sender.send(report)
            else:
                logger.debug("Duplicate error report suppressed", extra={"report_type": report.type})

        if self.notifications is not None:
            self.notifications.show_error(get_user_friendly_message(exc))

        return delivered

    def build_report(
        self,
        exc: BaseException,
        error_type: ErrorType = ErrorType.ERROR,
        component_stack: Optional[str] = None,
    ) -> ClientErrorReport:
        browser, os_name = parse_user_agent(self.user_agent)

        stack = None
        line_number = None
        column_number = None
        if exc.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            frames = traceback.extract_tb(exc.__traceback__)
            if frames:
                line_number = frames[-1].lineno
                column_number = getattr(frames[-1], "colno", None)

        return ClientErrorReport.model_validate(
            {
                "message": str(exc) or type(exc).__name__,
                "stack": stack,
                "url": self.page_url,
                "line_number": line_number,
                "column_number": column_number,
                "browser": browser,
                "os": os_name,
                "timestamp": now_ms(),
                "type": error_type.value,
                "user_agent": self.user_agent,
                "component_stack": component_stack,
            },
            context={"max_message_length": self.max_message_length},
        )

    def _should_report(self, report: ClientErrorReport) -> bool:
        if self.debounce_window <= 0:
            return True

        key = f"{report.type}:{report.message}"
        now = now_ms()
        window_ms = self.debounce_window * 1000

        # Error messages are unbounded, so expired keys are dropped eagerly
        self._last_reported = {
            k: ts for k, ts in self._last_reported.items() if now - ts <= window_ms
        }

        if key in self._last_reported:
            return False
        self._last_reported[key] = now
        return True
