"""Data models for the Faultline error collector."""

from .api_response import IngestionResponse
from .error_report import (
    BackendErrorReport,
    ClientErrorReport,
    ErrorReport,
    ErrorType,
    IngestedErrorRecord,
)
from .notification import Notification, NotificationType

__all__ = [
    # Error report models
    "ErrorType",
    "ClientErrorReport",
    "IngestedErrorRecord",
    "BackendErrorReport",
    "ErrorReport",
    # Notification models
    "Notification",
    "NotificationType",
    # API response models
    "IngestionResponse",
]
