"""Rate limiter and response cache for provider calls.

One RateLimiter is constructed by the process entry point and injected into
the ProviderAdapter; every provider call goes through ``call()``:

- cache hit (not expired): return the cached response, no network call and
  no rate-limit accounting
- otherwise wait for admission: fewer than ``ceiling`` requests in the last
  ``window_seconds``, no active backoff, and first in the FIFO queue
- on success: cache the response for ``cache_ttl`` seconds; in adaptive mode
  grow the ceiling by one after ``recovery_threshold`` consecutive successes
- on a provider rate-limit error: halve the ceiling (adaptive mode, floored
  at ``min_ceiling``) and back off exponentially

A request that is still queued after ``queue_timeout`` raises
RateLimitedError. Admission counts the request whether or not it succeeds,
since a failed call still spends provider quota.

State is only touched between awaits, so the asyncio event loop provides
all the atomicity needed.
"""

import asyncio
import logging
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Awaitable, Callable

from reservation_extractor.core.config import CacheConfig, PipelineSettings, RateLimitConfig
from reservation_extractor.core.errors import RateLimitedError
from reservation_extractor.pydantic_models import ProviderRequest, ProviderResponse

logger = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    response: ProviderResponse
    expires_at: float


class RateLimiter:
    """Sliding-window limiter with FIFO queueing, adaptive ceiling and TTL cache."""

    def __init__(
        self,
        max_requests: int = RateLimitConfig.MAX_REQUESTS,
        window_seconds: float = RateLimitConfig.WINDOW_SECONDS,
        adaptive: bool = True,
        min_ceiling: int = RateLimitConfig.MIN_CEILING,
        recovery_threshold: int = RateLimitConfig.RECOVERY_THRESHOLD,
        backoff_base: float = RateLimitConfig.BACKOFF_BASE,
        backoff_max: float = RateLimitConfig.BACKOFF_MAX,
        queue_timeout: float = RateLimitConfig.QUEUE_TIMEOUT,
        poll_interval: float = RateLimitConfig.POLL_INTERVAL,
        cache_ttl: float = CacheConfig.TTL_SECONDS,
        cache_max_entries: int = CacheConfig.MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the limiter.

        Args:
            max_requests: Configured ceiling per window.
            window_seconds: Sliding window length.
            adaptive: Adapt the ceiling to provider rate-limit errors.
            min_ceiling: Floor for the adaptive ceiling.
            recovery_threshold: Successes needed to grow the ceiling by one.
            backoff_base: First backoff delay in seconds.
            backoff_max: Backoff cap in seconds.
            queue_timeout: Max seconds a request waits for admission.
            poll_interval: Seconds between admission checks while queued.
            cache_ttl: Seconds a cached response stays valid.
            cache_max_entries: LRU bound of the cache.
            clock: Monotonic time source (injectable for tests).
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.adaptive = adaptive
        self.min_ceiling = max(1, min(min_ceiling, max_requests))
        self.recovery_threshold = recovery_threshold
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.queue_timeout = queue_timeout
        self.poll_interval = poll_interval
        self.cache_ttl = cache_ttl
        self.cache_max_entries = cache_max_entries
        self._clock = clock

        self.ceiling = max_requests
        self._timestamps: deque[float] = deque()
        self._queue: deque[object] = deque()
        self._cache: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._consecutive_successes = 0
        self._consecutive_rate_limits = 0
        self._backoff_until = 0.0

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "RateLimiter":
        return cls(
            max_requests=settings.max_requests,
            adaptive=settings.adaptive,
            cache_ttl=settings.cache_ttl,
        )

    # -- Cache --

    def get_cached(self, cache_key: str) -> ProviderResponse | None:
        """Return a non-expired cached response, evicting it if expired."""
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._cache[cache_key]
            return None
        self._cache.move_to_end(cache_key)
        return entry.response

    def _store(self, cache_key: str, response: ProviderResponse):
        self._cache[cache_key] = _CacheEntry(response=response, expires_at=self._clock() + self.cache_ttl)
        self._cache.move_to_end(cache_key)
        while len(self._cache) > self.cache_max_entries:
            self._cache.popitem(last=False)

    def clear_cache(self):
        self._cache.clear()

    # -- Admission --

    def _prune(self, now: float):
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def _try_admit(self, ticket: object, now: float) -> bool:
        self._prune(now)
        if self._queue[0] is not ticket:
            return False
        if now < self._backoff_until:
            return False
        if len(self._timestamps) >= self.ceiling:
            return False
        self._timestamps.append(now)
        return True

    async def acquire(self):
        """Wait in FIFO order until the request may be sent.

        Raises:
            RateLimitedError: If not admitted within ``queue_timeout``.
        """
        ticket = object()
        self._queue.append(ticket)
        start = self._clock()
        deadline = start + self.queue_timeout
        try:
            while True:
                now = self._clock()
                if self._try_admit(ticket, now):
                    return
                if now >= deadline:
                    raise RateLimitedError(
                        f"Not admitted within {self.queue_timeout}s "
                        f"(ceiling={self.ceiling}, queued={len(self._queue)})",
                        wait_seconds=now - start,
                    )
                await asyncio.sleep(max(0.0, min(self.poll_interval, deadline - now)))
        finally:
            self._queue.remove(ticket)

    # -- Outcome accounting --

    def record(self, cache_key: str, response: ProviderResponse):
        """Update cache and adaptive state from a provider response."""
        if response.success:
            self._store(cache_key, response)
            self._consecutive_rate_limits = 0
            self._consecutive_successes += 1
            if (
                self.adaptive
                and self.ceiling < self.max_requests
                and self._consecutive_successes >= self.recovery_threshold
            ):
                self.ceiling += 1
                self._consecutive_successes = 0
                logger.info(f"Rate limit ceiling raised to {self.ceiling}")
            return

        self._consecutive_successes = 0
        if response.is_rate_limited:
            self._consecutive_rate_limits += 1
            if self.adaptive:
                self.ceiling = max(self.min_ceiling, self.ceiling // 2)
            delay = min(self.backoff_max, self.backoff_base * 2 ** (self._consecutive_rate_limits - 1))
            self._backoff_until = self._clock() + delay
            logger.warning(
                f"Provider {response.provider} rate limited: ceiling={self.ceiling}, backoff={delay:.1f}s"
            )

    async def call(
        self,
        request: ProviderRequest,
        send: Callable[[], Awaitable[ProviderResponse]],
        use_cache: bool = True,
    ) -> ProviderResponse:
        """Run ``send`` under rate limiting, serving from cache when possible.

        Args:
            request: The request (supplies the cache key).
            send: Coroutine factory performing the provider call.
            use_cache: Skip the cache lookup (diagnostic comparisons).

        Returns:
            The provider response, marked ``cached`` on a cache hit.

        Raises:
            RateLimitedError: If the request could not be admitted in time.
        """
        key = request.cache_key
        if use_cache:
            cached = self.get_cached(key)
            if cached is not None:
                logger.debug(f"Cache hit for {request.operation.value} ({key[:12]})")
                return cached.as_cached()

        await self.acquire()
        response = await send()
        self.record(key, response)
        return response

    def status(self) -> dict:
        """Snapshot for logs and diagnostics."""
        now = self._clock()
        self._prune(now)
        return {
            "recent_requests": len(self._timestamps),
            "ceiling": self.ceiling,
            "max_requests": self.max_requests,
            "queue_size": len(self._queue),
            "cache_size": len(self._cache),
            "backoff_remaining": round(max(0.0, self._backoff_until - now), 2),
        }
