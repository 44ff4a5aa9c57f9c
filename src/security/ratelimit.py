"""Sliding window rate limiter on top of a sorted-set window store.

Each allowed request is stored as one member of a per-identifier sorted
set, scored by its epoch-millisecond timestamp. On every check, entries at
or before ``now - window_ms`` are purged, the survivors are counted, and the
request is admitted only if the count is below the limit.

Store failures fail open: the request is allowed and the failure is logged.
Concurrent checks for the same identifier are not serialized, so a burst
can briefly admit slightly more than ``limit`` requests.

Returns standard rate limit metadata for response headers:
- X-RateLimit-Limit
- X-RateLimit-Remaining
- X-RateLimit-Reset
"""

import math
import secrets
import time
from dataclasses import dataclass

from src.logging.audit import get_audit_logger
from src.store.factory import get_window_store
from src.store.models import StoreError
from src.store.store import WindowStore

KEY_PREFIX = "ratelimit"


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int  # Epoch ms at which the oldest counted request leaves the window

    def retry_after_seconds(self, now_ms: int) -> int:
        return max(0, math.ceil((self.reset - now_ms) / 1000))


def now_ms() -> int:
    return int(time.time() * 1000)


def rate_limit_key(identifier: str) -> str:
    return f"{KEY_PREFIX}:{identifier}"


def _event_token(now: int) -> str:
    # Unique per request even when two requests share a millisecond
    return f"{now}-{secrets.token_hex(8)}"


class SlidingWindowLimiter:
    """Per-identifier sliding window limiter bound to one window store."""

    def __init__(self, store: WindowStore):
        self._store = store

    async def evaluate(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        """Decide whether one more request from ``identifier`` may proceed.

        Args:
            identifier: Rate-limited subject, typically the client IP.
            limit: Max requests per window.
            window_ms: Window length in milliseconds.

        Raises:
            ValueError: if limit or window_ms is not positive. Store
                failures never raise; they resolve to an allowed result.
        """
        if limit <= 0 or window_ms <= 0:
            raise ValueError(f"limit and window_ms must be positive (got {limit}, {window_ms})")

        key = rate_limit_key(identifier)
        now = now_ms()
        window_start = now - window_ms

        purged = await self._store.remove_range(key, 0, window_start)
        if not purged.ok:
            return self._fail_open(identifier, limit, now, window_ms, purged.error)

        counted = await self._store.count(key)
        if not counted.ok:
            return self._fail_open(identifier, limit, now, window_ms, counted.error)
        request_count = counted.value

        if request_count >= limit:
            oldest = await self._store.range_with_scores(key, 0, 0)
            if not oldest.ok:
                return self._fail_open(identifier, limit, now, window_ms, oldest.error)
            # Empty despite a full count means a concurrent purge won the race
            if oldest.value:
                reset = int(oldest.value[0].score) + window_ms
            else:
                reset = now + window_ms
            return RateLimitResult(success=False, limit=limit, remaining=0, reset=reset)

        added = await self._store.add(key, now, _event_token(now))
        if not added.ok:
            return self._fail_open(identifier, limit, now, window_ms, added.error)

        expiry = await self._store.set_expiry(key, math.ceil(window_ms / 1000))
        if not expiry.ok:
            return self._fail_open(identifier, limit, now, window_ms, expiry.error)

        return RateLimitResult(
            success=True,
            limit=limit,
            remaining=limit - (request_count + 1),
            reset=now + window_ms,
        )

    @staticmethod
    def _fail_open(identifier: str, limit: int, now: int, window_ms: int,
                   error: StoreError) -> RateLimitResult:
        get_audit_logger().error(
            "Rate limit store failure, allowing request",
            extra={"audit_data": {
                "identifier": identifier,
                "store_operation": error.operation,
                "error": str(error),
            }},
        )
        return RateLimitResult(success=True, limit=limit, remaining=limit, reset=now + window_ms)


async def check_rate_limit(identifier: str, limit: int, window_ms: int) -> RateLimitResult:
    """Evaluate ``identifier`` against the process-wide window store."""
    return await SlidingWindowLimiter(get_window_store()).evaluate(identifier, limit, window_ms)
