"""
Unit tests for user-agent parsing.
"""

import pytest

from faultline.services.user_agent import parse_user_agent

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/120.0.0.0"
SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_1) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)
FIREFOX_LINUX = "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
CHROME_ANDROID = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)


@pytest.mark.parametrize(
    "user_agent, expected",
    [
        (CHROME_WINDOWS, ("Chrome", "Windows")),
        (EDGE_WINDOWS, ("Edge", "Windows")),
        (SAFARI_MAC, ("Safari", "macOS")),
        (SAFARI_IPHONE, ("Safari", "iOS")),
        (FIREFOX_LINUX, ("Firefox", "Linux")),
        (CHROME_ANDROID, ("Chrome", "Android")),
    ],
)
def test_parse_user_agent(user_agent, expected):
    assert parse_user_agent(user_agent) == expected


def test_chrome_is_not_misclassified_as_safari():
    """Test Chrome UA containing 'Safari' resolves to Chrome."""
    browser, _ = parse_user_agent(CHROME_WINDOWS)
    assert "Safari" in CHROME_WINDOWS
    assert browser == "Chrome"


@pytest.mark.parametrize("user_agent", [None, "", "curl/8.4.0"])
def test_unknown_user_agents(user_agent):
    assert parse_user_agent(user_agent) == ("Unknown", "Unknown")
