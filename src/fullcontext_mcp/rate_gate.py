"""
Rate gate for tool invocations.

Every tool call passes through RateGate.wait() before it touches the
filesystem. The gate enforces a minimum spacing between calls and escalates
that spacing as the number of calls inside the current one-minute window
grows:

- calls 1-5 in a window:  at least ``min_delay`` since the previous call
- calls 6-10:             at least ``busy_delay``
- calls 11+:              at least ``burst_delay``

The wait is a deterministic delay, never a retry.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from .config import EngineConfig

logger = logging.getLogger(__name__)


@dataclass
class RateState:
    """Bookkeeping for the rolling window."""

    last_request_time: float | None
    request_count: int
    window_reset_at: float


class RateGate:
    """
    Serializes and throttles tool invocations.

    The clock and sleep function are injectable so the window arithmetic can be
    driven by a fake clock in tests.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or EngineConfig()
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self.state = RateState(
            last_request_time=None,
            request_count=0,
            window_reset_at=clock() + self.config.rate_window_seconds,
        )
        self.total_requests = 0
        self.total_delay_seconds = 0.0

    def _roll_window(self, now: float) -> None:
        if now > self.state.window_reset_at:
            self.state.request_count = 0
            # Advance in whole windows so the boundary stays aligned and never
            # moves backward, even after a long idle period.
            while now > self.state.window_reset_at:
                self.state.window_reset_at += self.config.rate_window_seconds

    def compute_delay(self, now: float) -> float:
        """Delay owed by a call arriving at ``now`` (after the count bump)."""
        cfg = self.config
        if self.state.last_request_time is None:
            delay = 0.0
        else:
            delay = cfg.rate_min_delay_seconds - (now - self.state.last_request_time)

        if self.state.request_count > cfg.rate_burst_threshold:
            delay = max(delay, cfg.rate_burst_delay_seconds)
        elif self.state.request_count > cfg.rate_busy_threshold:
            delay = max(delay, cfg.rate_busy_delay_seconds)

        return max(delay, 0.0)

    async def wait(self) -> float:
        """
        Block until the caller may proceed.

        Returns:
            Seconds actually waited (0.0 when no delay was needed)
        """
        async with self._lock:
            now = self._clock()
            self._roll_window(now)
            self.state.request_count += 1
            self.total_requests += 1

            delay = self.compute_delay(now)
            if delay > 0:
                logger.debug(
                    "Rate gate: call %d in window, waiting %.2fs",
                    self.state.request_count, delay,
                )
                await self._sleep(delay)
                self.total_delay_seconds += delay

            self.state.last_request_time = self._clock()
            return delay

    def get_stats(self) -> dict:
        """Get rate gate statistics."""
        return {
            "requests_in_window": self.state.request_count,
            "total_requests": self.total_requests,
            "total_delay_seconds": round(self.total_delay_seconds, 3),
            "min_delay_seconds": self.config.rate_min_delay_seconds,
            "window_seconds": self.config.rate_window_seconds,
        }
