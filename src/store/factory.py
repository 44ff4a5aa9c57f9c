"""Factory for window store backends."""

from src.config.settings import get_settings
from src.store.store import MemoryWindowStore, WindowStore

_store: WindowStore | None = None


def get_window_store() -> WindowStore:
    """Get the process-wide window store, creating it on first use."""
    global _store
    if _store is not None:
        return _store

    settings = get_settings()
    backend = settings.window_store_backend

    if backend == "upstash":
        from src.store.upstash_store import UpstashWindowStore
        _store = UpstashWindowStore(
            url=settings.upstash_redis_rest_url,
            token=settings.upstash_redis_rest_token,
            timeout=settings.store_timeout_seconds,
        )
    elif backend == "redis":
        # Lazy import to avoid loading redis-py for REST-only deployments
        from src.store.redis_store import RedisWindowStore
        _store = RedisWindowStore(
            url=settings.redis_url,
            timeout=settings.store_timeout_seconds,
        )
    elif backend == "memory":
        _store = MemoryWindowStore()
    else:
        raise ValueError(f"Unknown window store backend: {backend}")

    return _store


async def close_window_store() -> None:
    """Close the shared store on shutdown."""
    global _store
    if _store is not None:
        await _store.close()
        _store = None
