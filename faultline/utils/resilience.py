"""
Resilience utilities for error handling and fault tolerance.

This module provides:
- compute_backoff_delay for fixed and exponential retry schedules
- retry / retry_with_backoff for transient errors
- CircuitBreaker and CircuitBreakerRegistry for outbound dependencies
- FallbackCache and fetch_with_fallback for last-known-good responses
- safe_async for call sites where availability trumps correctness
- ResilienceContext, the process-scoped handle owning breakers and cache
"""

import asyncio
import inspect
import json
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, ParamSpec
from functools import wraps
from enum import Enum

import httpx

from faultline.errors import CircuitOpenError, HTTPStatusError, NetworkError
from faultline.utils.clock import now_ms
from faultline.utils.logging import get_logger, log_breaker_transition, log_error_with_context

logger = get_logger(__name__)

# Type variables for generic decorator
P = ParamSpec('P')
T = TypeVar('T')

# Async HTTP client function: (url, options) -> response-like object
Fetcher = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Failing, reject requests
    HALF_OPEN = "HALF_OPEN"  # Testing if service recovered


def compute_backoff_delay(attempt: int, delay: float, backoff: bool = True) -> float:
    """
    Compute the wait before the attempt following `attempt`.

    Args:
        attempt: Attempt number that just failed (1-indexed)
        delay: Base delay in seconds
        backoff: Exponential (`delay * 2 ** (attempt - 1)`) when True, fixed otherwise

    Returns:
        Delay in seconds
    """
    if attempt < 1:
        raise ValueError("attempt is 1-indexed")
    if not backoff:
        return delay
    return delay * (2 ** (attempt - 1))


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: bool = True,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Invoke `operation` until it succeeds or `max_attempts` is exhausted.

    `on_retry(attempt, error)` runs before each wait; there is no wait after
    the final attempt. The last error is re-raised when every attempt fails.

    Example:
        data = await retry(lambda: client.get_json("/status"), max_attempts=5)
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            result = await operation()
            if attempt > 1:
                logger.info(f"Operation succeeded on attempt {attempt}/{max_attempts}")
            return result

        except Exception as e:
            if attempt == max_attempts:
                logger.error(
                    f"Operation failed after {max_attempts} attempts: {e}",
                    extra={"attempts": max_attempts, "error_type": type(e).__name__}
                )
                raise

            if on_retry:
                on_retry(attempt, e)

            wait = compute_backoff_delay(attempt, delay, backoff)
            logger.warning(
                f"Operation failed on attempt {attempt}/{max_attempts}: {e}. "
                f"Retrying in {wait:.1f}s..."
            )
            await sleep(wait)

    raise AssertionError("unreachable")


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: tuple = (Exception,)
):
    """
    Decorator for retrying functions with exponential backoff.

    Works for both coroutine functions and plain functions. Delays follow
    `compute_backoff_delay`, capped at `max_delay`.

    Args:
        max_retries: Maximum number of attempts (default: 3)
        base_delay: Initial delay in seconds between attempts (default: 1.0)
        max_delay: Maximum delay in seconds between attempts (default: 60.0)
        exceptions: Tuple of exception types to catch and retry (default: all exceptions)

    Example:
        @retry_with_backoff(max_retries=3, base_delay=0.5)
        async def push_report():
            return await sender.send(report)
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        def _delay_for(attempt: int) -> float:
            return min(compute_backoff_delay(attempt, base_delay), max_delay)

        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            for attempt in range(1, max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(f"{func.__name__} failed after {max_retries} attempts: {e}")
                        raise
                    wait = _delay_for(attempt)
                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt}/{max_retries}: {e}. "
                        f"Retrying in {wait:.1f}s..."
                    )
                    await asyncio.sleep(wait)
            raise AssertionError("unreachable")

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(f"{func.__name__} failed after {max_retries} attempts: {e}")
                        raise
                    wait = _delay_for(attempt)
                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt}/{max_retries}: {e}. "
                        f"Retrying in {wait:.1f}s..."
                    )
                    time.sleep(wait)
            raise AssertionError("unreachable")

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


class CircuitBreaker:
    """
    Circuit breaker pattern implementation for outbound dependency calls.

    States:
    - CLOSED: Normal operation, calls pass through
    - OPEN: Dependency is failing, calls are rejected without being attempted
    - HALF_OPEN: Reset timeout elapsed, the next call probes the dependency

    A single success in HALF_OPEN closes the breaker. A failure in HALF_OPEN
    re-opens it immediately, since the failure count already meets the
    threshold. The OPEN -> HALF_OPEN move happens only when a call arrives.

    Every state change happens synchronously before or after the single await
    on the operation, so no other task can observe a half-applied transition.

    Args:
        failure_threshold: Consecutive failures before opening (default: 5)
        reset_timeout: Seconds after the last failure before probing (default: 60)
        name: Dependency key, used in logs and errors
        clock: Returns epoch milliseconds; injectable for tests
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        name: str = "default",
        clock: Callable[[], int] = now_ms,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.name = name
        self._clock = clock

        self.failures = 0
        self.last_failure_time = 0
        self.state = CircuitState.CLOSED

        logger.debug(
            f"CircuitBreaker '{name}' initialized: failure_threshold={failure_threshold}, "
            f"reset_timeout={reset_timeout}s",
            extra={"breaker": name}
        )

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Execute operation with circuit breaker protection.

        Raises:
            CircuitOpenError: If the circuit is open and the timeout has not elapsed
            Exception: Any exception raised by the operation
        """
        if self.state == CircuitState.OPEN:
            elapsed_ms = self._clock() - self.last_failure_time
            if elapsed_ms > self.reset_timeout * 1000:
                self._transition(CircuitState.HALF_OPEN)
            else:
                raise CircuitOpenError(f"Circuit breaker '{self.name}' is OPEN")

        try:
            result = await operation()
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def _record_success(self) -> None:
        self.failures = 0
        if self.state != CircuitState.CLOSED:
            self._transition(CircuitState.CLOSED)

    def _record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = self._clock()

        if self.failures >= self.failure_threshold and self.state != CircuitState.OPEN:
            self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        previous = self.state
        self.state = new_state
        log_breaker_transition(logger, self.name, previous.value, new_state.value, self.failures)

    def get_state(self) -> CircuitState:
        """Get current circuit breaker state."""
        return self.state

    def reset(self) -> None:
        """Manually reset circuit breaker to closed state."""
        logger.info(f"Circuit breaker '{self.name}' manually reset to CLOSED state", extra={"breaker": self.name})
        self.state = CircuitState.CLOSED
        self.failures = 0
        self.last_failure_time = 0


class CircuitBreakerRegistry:
    """
    One circuit breaker per dependency key, created lazily on first use.

    Keys are dependency names chosen by the code, not request data; the
    registry never evicts.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        clock: Callable[[], int] = now_ms,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}

    def get(self, key: str) -> CircuitBreaker:
        breaker = self._breakers.get(key)
        if breaker is None:
            breaker = CircuitBreaker(
                failure_threshold=self.failure_threshold,
                reset_timeout=self.reset_timeout,
                name=key,
                clock=self._clock,
            )
            self._breakers[key] = breaker
        return breaker

    def states(self) -> Dict[str, str]:
        """Snapshot of every breaker's state, keyed by dependency."""
        return {key: breaker.state.value for key, breaker in self._breakers.items()}

    def clear(self) -> None:
        self._breakers.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._breakers

    def __len__(self) -> int:
        return len(self._breakers)


class FallbackCache:
    """Last successful payload per fallback key. Entries never expire."""

    def __init__(self):
        self._entries: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def httpx_fetcher(client: httpx.AsyncClient) -> Fetcher:
    """
    Adapt an httpx.AsyncClient to the `(url, options)` fetch signature.

    `options` may carry `method` (default GET) plus any keyword accepted by
    `AsyncClient.request` (json, headers, params, timeout...).
    """
    async def fetch(url: str, options: Dict[str, Any]) -> httpx.Response:
        request_options = dict(options)
        method = request_options.pop("method", "GET")
        return await client.request(method, url, **request_options)

    return fetch


async def fetch_with_fallback(
    fetch: Fetcher,
    url: str,
    options: Optional[Dict[str, Any]] = None,
    fallback_key: Optional[str] = None,
    cache: Optional[FallbackCache] = None,
) -> Any:
    """
    Fetch a JSON payload, falling back to the last good payload on failure.

    Args:
        fetch: Injected HTTP client function returning a response-like object
        url: Resource to fetch
        options: Request options passed through to `fetch`
        fallback_key: Cache key; enables caching and fallback when given (requires `cache`)
        cache: Fallback cache to read and write

    Returns:
        Parsed JSON payload, live or cached

    Raises:
        HTTPStatusError: Non-2xx response and no cached payload
        NetworkError: Transport failure and no cached payload
        ValueError: fallback_key given without a cache
    """
    if fallback_key is not None and cache is None:
        raise ValueError("fallback_key requires a cache")
    use_cache = fallback_key is not None

    try:
        try:
            response = await fetch(url, options or {})
        except httpx.RequestError as e:
            raise NetworkError(f"Network request failed for {url}: {e}") from e

        if not 200 <= response.status_code < 300:
            raise HTTPStatusError(response.status_code, getattr(response, "reason_phrase", ""))

        data = response.json()

    except Exception as e:
        if use_cache and fallback_key in cache:
            logger.warning(
                f"Using cached data for {url} due to error: {e}",
                extra={"fallback_key": fallback_key, "error_type": type(e).__name__}
            )
            return cache.get(fallback_key)
        raise

    if use_cache:
        cache.set(fallback_key, data)

    return data


async def safe_async(
    operation: Callable[[], Awaitable[T]],
    fallback_value: T,
    error_message: str = "Operation failed",
) -> T:
    """
    Run `operation`, logging any failure and returning `fallback_value` instead.

    Never raises for ordinary exceptions; cancellation still propagates.
    """
    try:
        return await operation()
    except Exception as e:
        log_error_with_context(logger, error_message, e, error_type=type(e).__name__)
        return fallback_value


def safe_json_parse(text: str, fallback: T) -> Any:
    """Parse JSON text, returning `fallback` when it is malformed."""
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning(f"Failed to parse JSON, using fallback: {e}")
        return fallback


class ResilienceContext:
    """
    Process-scoped resilience state: circuit breakers, the fallback cache
    and default retry policy.

    Created once at startup and handed to the components that need it;
    `close()` at shutdown drops all state.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        max_attempts: int = 3,
        delay: float = 1.0,
        clock: Callable[[], int] = now_ms,
    ):
        self.breakers = CircuitBreakerRegistry(
            failure_threshold=failure_threshold,
            reset_timeout=reset_timeout,
            clock=clock,
        )
        self.fallback_cache = FallbackCache()
        self.max_attempts = max_attempts
        self.delay = delay

    async def retry(self, operation: Callable[[], Awaitable[T]], **overrides: Any) -> T:
        """retry() using this context's default attempts and delay."""
        overrides.setdefault("max_attempts", self.max_attempts)
        overrides.setdefault("delay", self.delay)
        return await retry(operation, **overrides)

    async def fetch_with_fallback(
        self,
        fetch: Fetcher,
        url: str,
        options: Optional[Dict[str, Any]] = None,
        fallback_key: Optional[str] = None,
    ) -> Any:
        """fetch_with_fallback bound to this context's cache."""
        return await fetch_with_fallback(fetch, url, options, fallback_key, self.fallback_cache)

    async def call(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run operation through the breaker registered under `key`."""
        return await self.breakers.get(key).execute(operation)

    def close(self) -> None:
        self.breakers.clear()
        self.fallback_cache.clear()
