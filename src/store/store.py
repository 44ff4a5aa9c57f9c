"""Window store abstraction + in-memory implementation.

A window store keeps one sorted set per key (member -> numeric score) with
a TTL on the whole key. Backends implement the underscore primitives and
may raise anything; the public methods turn every failure into a
StoreResult so callers branch on values instead of catching exceptions.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable

from src.store.models import ScoredMember, StoreResult


class WindowStore(ABC):
    """Abstract base for sorted-set window stores."""

    async def remove_range(self, key: str, min_score: float, max_score: float) -> StoreResult[None]:
        """Delete members whose score lies in [min_score, max_score]."""
        return await self._run("ZREMRANGEBYSCORE", self._remove_range(key, min_score, max_score))

    async def count(self, key: str) -> StoreResult[int]:
        return await self._run("ZCARD", self._count(key))

    async def range_with_scores(self, key: str, start: int, end: int) -> StoreResult[list[ScoredMember]]:
        """Members ranked start..end (inclusive, 0-indexed) in ascending score order."""
        return await self._run("ZRANGE", self._range_with_scores(key, start, end))

    async def add(self, key: str, score: float, member: str) -> StoreResult[None]:
        return await self._run("ZADD", self._add(key, score, member))

    async def set_expiry(self, key: str, seconds: int) -> StoreResult[None]:
        return await self._run("EXPIRE", self._set_expiry(key, seconds))

    async def close(self) -> None:
        """Release connections. Override if the backend holds any."""
        pass

    @staticmethod
    async def _run(operation: str, call: Awaitable) -> StoreResult:
        try:
            value = await call
        except Exception as e:
            return StoreResult.failure(operation, e)
        return StoreResult.success(value)

    @abstractmethod
    async def _remove_range(self, key: str, min_score: float, max_score: float) -> None:
        ...

    @abstractmethod
    async def _count(self, key: str) -> int:
        ...

    @abstractmethod
    async def _range_with_scores(self, key: str, start: int, end: int) -> list[ScoredMember]:
        ...

    @abstractmethod
    async def _add(self, key: str, score: float, member: str) -> None:
        ...

    @abstractmethod
    async def _set_expiry(self, key: str, seconds: int) -> None:
        ...


class MemoryWindowStore(WindowStore):
    """Process-local store for development and tests.

    State is per process, so limits are not shared across workers.
    """

    def __init__(self):
        self._sets: dict[str, dict[str, float]] = {}
        self._expires_at: dict[str, float] = {}

    def _get(self, key: str) -> dict[str, float]:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and time.monotonic() >= expires_at:
            self._sets.pop(key, None)
            self._expires_at.pop(key, None)
        return self._sets.get(key, {})

    async def _remove_range(self, key: str, min_score: float, max_score: float) -> None:
        members = self._get(key)
        for member in [m for m, s in members.items() if min_score <= s <= max_score]:
            del members[member]

    async def _count(self, key: str) -> int:
        return len(self._get(key))

    async def _range_with_scores(self, key: str, start: int, end: int) -> list[ScoredMember]:
        ranked = sorted(self._get(key).items(), key=lambda item: (item[1], item[0]))
        # Redis semantics: inclusive end, negative indexes count from the tail
        stop = len(ranked) if end == -1 else end + 1
        return [ScoredMember(member=m, score=s) for m, s in ranked[start:stop]]

    async def _add(self, key: str, score: float, member: str) -> None:
        self._sweep()
        self._sets.setdefault(key, {})[member] = score

    async def _set_expiry(self, key: str, seconds: int) -> None:
        self._sweep()
        if key in self._sets:
            self._expires_at[key] = time.monotonic() + seconds

    def _sweep(self) -> None:
        """Drop every expired key, not only the one being touched."""
        now = time.monotonic()
        for key in [k for k, t in self._expires_at.items() if now >= t]:
            self._sets.pop(key, None)
            self._expires_at.pop(key, None)

    def clear(self) -> None:
        self._sets.clear()
        self._expires_at.clear()
