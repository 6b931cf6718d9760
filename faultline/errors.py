"""
Error taxonomy shared by the resilience primitives and the ingestion API.
"""

from typing import Optional


class FaultlineError(Exception):
    """Base exception for Faultline errors."""
    pass


class NetworkError(FaultlineError):
    """Raised when an outbound call fails before a response is received."""
    pass


class ServerError(FaultlineError):
    """Raised when a dependency answers with a server-side failure."""
    pass


class HTTPStatusError(ServerError):
    """Raised when an outbound call returns a non-success status code."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        message = f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}"
        super().__init__(message)


class CircuitOpenError(FaultlineError):
    """Raised when a circuit breaker is open and the call was not attempted."""
    pass


class RateLimitError(FaultlineError):
    """Raised when a client exceeds its request allowance."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message)
