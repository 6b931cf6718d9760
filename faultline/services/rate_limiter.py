"""
Fixed-window rate limiter for the ingestion endpoint.

Each client key gets a counter that lives for one window. The first request
after the window's reset time replaces the record instead of incrementing it.
Windows are fixed, not sliding: a client can get up to twice the limit through
in a short span straddling a window boundary. That is accepted behaviour.

Records are in-memory only and do not survive a restart or span processes.
Keys are client IPs, so expired records are swept periodically.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from faultline.errors import RateLimitError
from faultline.utils.clock import now_ms
from faultline.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitRecord:
    """Request count for one key in its current window."""

    count: int
    reset_time: int  # epoch ms


class FixedWindowRateLimiter:
    """
    Fixed-window request counter per client key.

    Args:
        window_seconds: Window length (default: 60)
        max_requests: Requests admitted per window (default: 10)
        sweep_interval_seconds: How often the background sweep runs (default: 300)
        clock: Returns epoch milliseconds; injectable for tests
    """

    def __init__(
        self,
        window_seconds: int = 60,
        max_requests: int = 10,
        sweep_interval_seconds: int = 300,
        clock: Callable[[], int] = now_ms,
    ):
        self.window_ms = window_seconds * 1000
        self.max_requests = max_requests
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._records: Dict[str, RateLimitRecord] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def check(self, key: str) -> RateLimitRecord:
        """
        Count one request for `key`.

        Returns:
            The record after admitting the request

        Raises:
            RateLimitError: If `key` has used up its window
        """
        now = self._clock()
        record = self._records.get(key)

        if record is None or now > record.reset_time:
            record = RateLimitRecord(count=1, reset_time=now + self.window_ms)
            self._records[key] = record
            return record

        if record.count >= self.max_requests:
            retry_after = max(record.reset_time - now, 0) / 1000
            raise RateLimitError("Rate limit exceeded", retry_after=retry_after)

        record.count += 1
        return record

    def get_record(self, key: str) -> Optional[RateLimitRecord]:
        return self._records.get(key)

    def sweep(self) -> int:
        """Delete expired records. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, record in self._records.items() if now > record.reset_time]
        for key in expired:
            del self._records[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit records")
        return len(expired)

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            self.sweep()

    def __len__(self) -> int:
        return len(self._records)
