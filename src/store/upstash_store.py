"""Upstash Redis REST-backed window store.

Each primitive is one HTTPS POST of a Redis command encoded as a JSON
array, e.g. ``["ZCARD", "ratelimit:1.2.3.4"]``. Upstash answers with
``{"result": ...}`` on success and ``{"error": "..."}`` otherwise.
"""

import httpx

from src.store.models import ScoredMember
from src.store.store import WindowStore


class UpstashError(Exception):
    """Upstash accepted the request but the command failed."""


class UpstashWindowStore(WindowStore):
    """Talks to Upstash over a pooled httpx client."""

    def __init__(self, url: str, token: str, timeout: float = 2.0):
        self._url = url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def _command(self, *args):
        client = await self._get_client()
        response = await client.post(
            self._url,
            json=list(args),
            headers={"Authorization": f"Bearer {self._token}"},
        )
        try:
            payload = response.json()
        except ValueError:
            response.raise_for_status()
            raise UpstashError(f"Non-JSON response from Upstash ({response.status_code})")

        if isinstance(payload, dict) and "error" in payload:
            raise UpstashError(payload["error"])
        response.raise_for_status()
        if not isinstance(payload, dict) or "result" not in payload:
            raise UpstashError(f"Unexpected Upstash payload: {payload!r}")
        return payload["result"]

    async def _remove_range(self, key: str, min_score: float, max_score: float) -> None:
        await self._command("ZREMRANGEBYSCORE", key, min_score, max_score)

    async def _count(self, key: str) -> int:
        return int(await self._command("ZCARD", key))

    async def _range_with_scores(self, key: str, start: int, end: int) -> list[ScoredMember]:
        flat = await self._command("ZRANGE", key, start, end, "WITHSCORES")
        if len(flat) % 2:
            raise UpstashError("ZRANGE WITHSCORES returned an odd number of items")
        # Reply is [member, score, member, score, ...]
        return [
            ScoredMember(member=str(flat[i]), score=float(flat[i + 1]))
            for i in range(0, len(flat), 2)
        ]

    async def _add(self, key: str, score: float, member: str) -> None:
        await self._command("ZADD", key, score, member)

    async def _set_expiry(self, key: str, seconds: int) -> None:
        await self._command("EXPIRE", key, seconds)

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
