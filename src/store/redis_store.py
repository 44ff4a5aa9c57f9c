"""Redis-backed window store using the native protocol (redis.asyncio)."""

from src.store.models import ScoredMember
from src.store.store import WindowStore


class RedisWindowStore(WindowStore):
    """Sorted sets on a Redis server reachable via REDIS_URL."""

    def __init__(self, url: str, timeout: float = 2.0):
        self._url = url
        self._timeout = timeout
        self._redis = None

    def _get_redis(self):
        """Lazy-init the connection pool."""
        if self._redis is None:
            from redis.asyncio import Redis

            self._redis = Redis.from_url(
                self._url,
                decode_responses=True,
                socket_timeout=self._timeout,
                socket_connect_timeout=self._timeout,
            )
        return self._redis

    async def _remove_range(self, key: str, min_score: float, max_score: float) -> None:
        await self._get_redis().zremrangebyscore(key, min_score, max_score)

    async def _count(self, key: str) -> int:
        return int(await self._get_redis().zcard(key))

    async def _range_with_scores(self, key: str, start: int, end: int) -> list[ScoredMember]:
        rows = await self._get_redis().zrange(key, start, end, withscores=True)
        return [ScoredMember(member=str(member), score=float(score)) for member, score in rows]

    async def _add(self, key: str, score: float, member: str) -> None:
        await self._get_redis().zadd(key, {member: score})

    async def _set_expiry(self, key: str, seconds: int) -> None:
        await self._get_redis().expire(key, seconds)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
