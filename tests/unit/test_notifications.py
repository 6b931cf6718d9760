"""
Unit tests for the notification center.
"""

import asyncio
import time

import pytest

from faultline.models.notification import NotificationType
from faultline.services.notifications import NotificationCenter


@pytest.mark.asyncio
async def test_show_error_sets_current_notification():
    center = NotificationCenter(timeout=10)

    center.show_error("Something went wrong. Please try again.")

    assert center.current_notification.message == "Something went wrong. Please try again."
    assert center.current_notification.type == NotificationType.ERROR
    center.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, expected_type",
    [
        ("show_success", NotificationType.SUCCESS),
        ("show_warning", NotificationType.WARNING),
        ("show_info", NotificationType.INFO),
    ],
)
async def test_show_variants_set_category(method, expected_type):
    center = NotificationCenter(timeout=10)

    getattr(center, method)("Saved")

    assert center.current_notification.type == expected_type
    center.close()


@pytest.mark.asyncio
async def test_auto_clears_after_timeout():
    center = NotificationCenter(timeout=0.05)

    center.show_error("Temporary")
    await asyncio.sleep(0.15)

    assert center.current_notification is None
    assert not center.has_pending_timer


@pytest.mark.asyncio
async def test_new_notification_preempts_previous_timer():
    center = NotificationCenter(timeout=0.2)

    center.show_error("first")
    await asyncio.sleep(0.12)
    center.show_info("second")
    await asyncio.sleep(0.12)

    # The first timer would have fired by now had it not been cancelled
    assert center.current_notification.message == "second"

    await asyncio.sleep(0.2)
    assert center.current_notification is None


@pytest.mark.asyncio
async def test_message_is_truncated():
    center = NotificationCenter(timeout=10, max_message_length=20)

    center.show_warning("w" * 100)

    assert center.current_notification.message == "w" * 20
    center.close()


@pytest.mark.asyncio
async def test_clear_error_cancels_timer_and_clears():
    center = NotificationCenter(timeout=10)
    center.show_error("boom")

    center.clear_error()

    assert center.current_notification is None
    assert not center.has_pending_timer


@pytest.mark.asyncio
async def test_subscribers_observe_changes():
    center = NotificationCenter(timeout=10)
    seen = []
    unsubscribe = center.subscribe(lambda notification: seen.append(notification and notification.message))

    center.show_success("Message sent")
    center.clear_error()
    unsubscribe()
    center.show_info("not observed")
    center.close()

    assert seen == ["Message sent", None]


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_break_state():
    center = NotificationCenter(timeout=10)

    def broken(_):
        raise RuntimeError("listener bug")

    center.subscribe(broken)
    center.show_error("still shown")

    assert center.current_notification.message == "still shown"
    center.close()


def test_show_without_running_loop_still_auto_clears():
    center = NotificationCenter(timeout=0.05)

    center.show_error("shown from sync code")

    assert center.current_notification.message == "shown from sync code"
    assert center.has_pending_timer

    deadline = time.monotonic() + 2
    while center.current_notification is not None and time.monotonic() < deadline:
        time.sleep(0.01)

    assert center.current_notification is None
    assert not center.has_pending_timer


def test_close_cancels_thread_timer():
    center = NotificationCenter(timeout=0.05)

    center.show_warning("kept")
    center.close()
    time.sleep(0.15)

    assert center.current_notification.message == "kept"


def test_stale_thread_timer_does_not_clear_newer_notification():
    center = NotificationCenter(timeout=0.5)

    center.show_info("first")
    time.sleep(0.3)
    center.show_info("second")
    time.sleep(0.3)

    assert center.current_notification.message == "second"
    center.close()
