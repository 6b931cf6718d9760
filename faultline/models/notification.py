"""Notification data models."""

from enum import Enum

from pydantic import BaseModel


class NotificationType(str, Enum):
    """Visual category of a notification."""

    ERROR = "error"
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"


class Notification(BaseModel):
    """The single notification currently on screen."""

    message: str
    type: NotificationType
    created_at: int
