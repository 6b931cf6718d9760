"""
User-agent parsing for error report enrichment.

Substring checks run in order. Chromium browsers send "Safari" in their
user agent too, so Edge and Chrome are tested before Safari; Android sends
"Linux", and iOS sends "Mac OS X", so those are tested first as well.
"""

from typing import Optional, Tuple

UNKNOWN = "Unknown"

_BROWSERS = (
    ("Edg", "Edge"),
    ("OPR", "Opera"),
    ("Opera", "Opera"),
    ("Chrome", "Chrome"),
    ("CriOS", "Chrome"),
    ("Firefox", "Firefox"),
    ("FxiOS", "Firefox"),
    ("Safari", "Safari"),
)

_OPERATING_SYSTEMS = (
    ("Windows", "Windows"),
    ("Android", "Android"),
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("Mac OS X", "macOS"),
    ("Macintosh", "macOS"),
    ("CrOS", "ChromeOS"),
    ("Linux", "Linux"),
)


def _first_match(user_agent: str, table: Tuple[Tuple[str, str], ...]) -> str:
    for token, name in table:
        if token in user_agent:
            return name
    return UNKNOWN


def parse_browser(user_agent: Optional[str]) -> str:
    return _first_match(user_agent or "", _BROWSERS)


def parse_os(user_agent: Optional[str]) -> str:
    return _first_match(user_agent or "", _OPERATING_SYSTEMS)


def parse_user_agent(user_agent: Optional[str]) -> Tuple[str, str]:
    """Return ``(browser, os)`` derived from a user-agent string."""
    return parse_browser(user_agent), parse_os(user_agent)
