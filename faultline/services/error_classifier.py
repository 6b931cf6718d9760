"""
Error classification for user-facing messages.

Raw error text is only ever logged; what users see is one of four fixed
sentences chosen by keyword heuristics on the message.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Coarse failure categories."""
    NETWORK = "network"
    VALIDATION = "validation"
    SERVER = "server"
    UNKNOWN = "unknown"


# Checked in order; the first category with a matching keyword wins
_CATEGORY_KEYWORDS = (
    (ErrorCategory.NETWORK, ("fetch", "network", "timeout")),
    (ErrorCategory.VALIDATION, ("validation", "invalid")),
    (ErrorCategory.SERVER, ("500", "server")),
)

_USER_MESSAGES = {
    ErrorCategory.NETWORK: "Connection failed. Please check your internet connection and try again.",
    ErrorCategory.VALIDATION: "Invalid input. Please check your data and try again.",
    ErrorCategory.SERVER: "Server error. Please try again later.",
    ErrorCategory.UNKNOWN: "Something went wrong. Please try again.",
}


def classify_error(error: BaseException) -> ErrorCategory:
    """Map an error to a category by case-insensitive substring match on its message."""
    message = str(error).lower()

    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return category

    return ErrorCategory.UNKNOWN


def message_for_category(category: ErrorCategory) -> str:
    return _USER_MESSAGES[category]


def get_user_friendly_message(error: BaseException) -> str:
    """Static sentence suitable for showing to an end user."""
    return message_for_category(classify_error(error))
