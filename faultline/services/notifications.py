"""
Transient notification state for the surrounding UI.

Exactly one notification is visible at a time. Every show call preempts the
previous notification and its auto-clear timer. Timers run on the running
asyncio event loop, or on a daemon timer thread when called without one.
"""

import asyncio
import threading
from typing import Callable, List, Optional, Union

from faultline.models.notification import Notification, NotificationType
from faultline.utils.clock import now_ms
from faultline.utils.logging import get_logger

logger = get_logger(__name__)

NotificationListener = Callable[[Optional[Notification]], None]


class NotificationCenter:
    """
    Holds the current notification and clears it after a timeout.

    Args:
        timeout: Seconds before a notification clears itself (default: 5.0)
        max_message_length: Longer messages are truncated (default: 200)
    """

    def __init__(self, timeout: float = 5.0, max_message_length: int = 200):
        self.timeout = timeout
        self.max_message_length = max_message_length
        self._current: Optional[Notification] = None
        self._timer: Optional[Union[asyncio.TimerHandle, threading.Timer]] = None
        self._generation = 0
        self._listeners: List[NotificationListener] = []

    @property
    def current_notification(self) -> Optional[Notification]:
        return self._current

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """
        Register a listener called with the new notification (or None) on every change.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def show_error(self, message: str) -> None:
        self._show(message, NotificationType.ERROR)

    def show_success(self, message: str) -> None:
        self._show(message, NotificationType.SUCCESS)

    def show_warning(self, message: str) -> None:
        self._show(message, NotificationType.WARNING)

    def show_info(self, message: str) -> None:
        self._show(message, NotificationType.INFO)

    def clear_error(self) -> None:
        """Cancel the pending timer and clear the notification immediately."""
        self._cancel_timer()
        self._set(None)

    def close(self) -> None:
        """Cancel the pending timer without touching the notification."""
        self._cancel_timer()

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def _show(self, message: str, notification_type: NotificationType) -> None:
        self._cancel_timer()
        self._generation += 1
        self._timer = self._schedule_clear(self._generation)
        self._set(Notification(
            message=message[:self.max_message_length],
            type=notification_type,
            created_at=now_ms(),
        ))

    def _schedule_clear(self, generation: int) -> Union[asyncio.TimerHandle, threading.Timer]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called from synchronous code; clear from a timer thread instead
            timer = threading.Timer(self.timeout, self._auto_clear, args=(generation,))
            timer.daemon = True
            timer.start()
            return timer
        return loop.call_later(self.timeout, self._auto_clear, generation)

    def _auto_clear(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._timer = None
        self._set(None)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set(self, notification: Optional[Notification]) -> None:
        self._current = notification
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Notification listener failed: {e}", exc_info=True)
