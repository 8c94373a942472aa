"""
Async Utilities for Source Adapters.

Provides:
- Per-source minimum-interval rate limiting with an atomic slot reservation
- A registry that owns one limiter per external source
- Circuit breaker for fault tolerance

Clocks and sleep functions are injectable so tests never wait for real.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from .exceptions import RateLimitError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


# =============================================================================
# Rate Limiter (minimum interval between requests)
# =============================================================================


@dataclass
class SourceRateLimiter:
    """
    Enforces a minimum interval between requests to one source.

    Concurrent callers reserve consecutive slots under a lock, then sleep
    outside it, so two tasks can never both observe the same "last request
    time" and under-sleep.

    Example:
        limiter = SourceRateLimiter(name="openalex", min_interval=1.0)
        async with limiter:
            await make_api_call()
    """

    name: str = "default"
    min_interval: float = 1.0  # seconds
    clock: Clock = field(default=time.monotonic, repr=False)
    sleep: Sleeper = field(default=asyncio.sleep, repr=False)
    _next_slot: float = field(init=False, default=0.0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock, repr=False)

    async def acquire(self) -> float:
        """Reserve the next request slot and wait for it. Returns seconds waited."""
        async with self._lock:
            now = self.clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.min_interval
        wait_time = slot - now
        if wait_time > 0:
            logger.debug(f"Rate limit ({self.name}): waiting {wait_time:.2f}s")
            await self.sleep(wait_time)
        return wait_time

    async def __aenter__(self) -> SourceRateLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


class RateLimiterRegistry:
    """
    Owns one ``SourceRateLimiter`` per source name.

    Adapters of the same source share a limiter, so the interval holds
    across every concurrent request to that source.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        *,
        overrides: dict[str, float] | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._min_interval = min_interval
        self._overrides = dict(overrides or {})
        self._clock = clock
        self._sleep = sleep
        self._limiters: dict[str, SourceRateLimiter] = {}

    def get(self, name: str) -> SourceRateLimiter:
        """Get or create the limiter for a source."""
        if name not in self._limiters:
            self._limiters[name] = SourceRateLimiter(
                name=name,
                min_interval=self._overrides.get(name, self._min_interval),
                clock=self._clock,
                sleep=self._sleep,
            )
        return self._limiters[name]

    def __contains__(self, name: str) -> bool:
        return name in self._limiters


# =============================================================================
# Circuit Breaker Pattern
# =============================================================================


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for fault tolerance.

    States:
    - CLOSED: Normal operation
    - OPEN: Failing, reject requests immediately
    - HALF_OPEN: Testing if service recovered

    Example:
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=300)

        async with breaker:
            result = await risky_api_call()
    """

    failure_threshold: int = 3
    recovery_timeout: float = 300.0
    half_open_max_calls: int = 1
    clock: Clock = field(default=time.monotonic, repr=False)

    _failure_count: int = field(init=False, default=0)
    _last_failure_time: float | None = field(init=False, default=None)
    _state: str = field(init=False, default="closed")
    _half_open_calls: int = field(init=False, default=0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock, repr=False)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (rejecting requests)."""
        if self._state == "open":
            if self._last_failure_time is not None:
                if self.clock() - self._last_failure_time > self.recovery_timeout:
                    return False  # Move to half-open
            return True
        return False

    async def __aenter__(self) -> CircuitBreaker:
        async with self._lock:
            if self.is_open:
                remaining = self.recovery_timeout
                if self._last_failure_time is not None:
                    remaining -= self.clock() - self._last_failure_time
                raise RateLimitError("Circuit breaker is open", retry_after=max(remaining, 0.0))

            if self._state == "open":
                self._state = "half_open"
                self._half_open_calls = 0

            if self._state == "half_open":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise RateLimitError(
                        "Circuit breaker is half-open (trial call in flight)",
                        retry_after=self.recovery_timeout / 2,
                    )
                self._half_open_calls += 1

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        async with self._lock:
            # Cancellation says nothing about the health of the source
            if isinstance(exc_val, asyncio.CancelledError):
                if self._state == "half_open":
                    self._half_open_calls = max(0, self._half_open_calls - 1)
                return

            if exc_val is not None:
                self._failure_count += 1
                self._last_failure_time = self.clock()

                if self._state == "half_open" or self._failure_count >= self.failure_threshold:
                    self._state = "open"
                    logger.warning(f"Circuit breaker opened after {self._failure_count} failures")
            else:
                if self._state == "half_open":
                    logger.info("Circuit breaker closed (recovered)")
                self._state = "closed"
                self._failure_count = 0
