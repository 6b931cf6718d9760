"""Error capture and ingestion services."""

from faultline.services.backend_errors import BackendErrorRecorder, resolve_client_ip
from faultline.services.error_classifier import (
    ErrorCategory,
    classify_error,
    get_user_friendly_message,
    message_for_category,
)
from faultline.services.error_interceptor import ErrorInterceptor, ErrorReportSender
from faultline.services.error_log import AppendOnlyLog
from faultline.services.notifications import NotificationCenter
from faultline.services.rate_limiter import FixedWindowRateLimiter, RateLimitRecord
from faultline.services.runtime_hooks import PythonRuntimeHooks, RuntimeHooks
from faultline.services.user_agent import parse_user_agent

__all__ = [
    'BackendErrorRecorder',
    'resolve_client_ip',
    'ErrorCategory',
    'classify_error',
    'get_user_friendly_message',
    'message_for_category',
    'ErrorInterceptor',
    'ErrorReportSender',
    'AppendOnlyLog',
    'NotificationCenter',
    'FixedWindowRateLimiter',
    'RateLimitRecord',
    'PythonRuntimeHooks',
    'RuntimeHooks',
    'parse_user_agent',
]
