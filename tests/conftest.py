"""Shared fixtures for the Discord Member Stats Gateway test suite."""

from unittest.mock import AsyncMock

import pytest

import src.discord.client as discord_mod
import src.store.factory as store_factory_mod
from src.config.settings import get_settings
from src.store.models import ScoredMember, StoreResult
from src.store.store import MemoryWindowStore, WindowStore


class FailingWindowStore(WindowStore):
    """Every primitive raises, as if the store were unreachable."""

    def __init__(self, exc: Exception | None = None):
        self.exc = exc or ConnectionError("store unreachable")
        self.calls: list[str] = []

    async def _remove_range(self, key, min_score, max_score):
        self.calls.append("remove_range")
        raise self.exc

    async def _count(self, key):
        self.calls.append("count")
        raise self.exc

    async def _range_with_scores(self, key, start, end):
        self.calls.append("range_with_scores")
        raise self.exc

    async def _add(self, key, score, member):
        self.calls.append("add")
        raise self.exc

    async def _set_expiry(self, key, seconds):
        self.calls.append("set_expiry")
        raise self.exc


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Fresh window store and Discord client for every test."""
    monkeypatch.setattr(store_factory_mod, "_store", None)
    monkeypatch.setattr(discord_mod, "_discord_client", None)
    yield
    monkeypatch.setattr(store_factory_mod, "_store", None)
    monkeypatch.setattr(discord_mod, "_discord_client", None)


@pytest.fixture
def memory_store() -> MemoryWindowStore:
    return MemoryWindowStore()


@pytest.fixture
def failing_store() -> FailingWindowStore:
    return FailingWindowStore()


@pytest.fixture
def stub_store():
    """AsyncMock store preloaded with an empty, healthy window."""
    store = AsyncMock(spec=WindowStore)
    store.remove_range.return_value = StoreResult.success()
    store.count.return_value = StoreResult.success(0)
    store.range_with_scores.return_value = StoreResult.success([])
    store.add.return_value = StoreResult.success()
    store.set_expiry.return_value = StoreResult.success()
    return store


def oldest(score: float, member: str = "oldest") -> StoreResult:
    return StoreResult.success([ScoredMember(member=member, score=score)])


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(WINDOW_STORE_BACKEND="memory", RATE_LIMIT_MAX="3")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    get_settings.cache_clear()
