"""
Tests for CacheRouter: persistence registry and per-group store selection.
"""

from __future__ import annotations

import pytest

from tiercache.cache.adapters import create_adapter
from tiercache.cache.faults import CacheConfigFault
from tiercache.cache.router import CacheRouter
from tiercache.cache.stores import MemoryStore

from tests.conftest import FlakyStore


@pytest.fixture
def tiers():
    return create_adapter(MemoryStore()), create_adapter(MemoryStore())


class TestNonPersistentRegistry:

    def test_default_is_persistent(self):
        assert not CacheRouter().is_non_persistent_group("posts")

    def test_add(self):
        router = CacheRouter()
        router.add_non_persistent_groups(["counts", "plugins"])
        assert router.is_non_persistent_group("counts")
        assert router.non_persistent_groups() == ["counts", "plugins"]

    def test_idempotent(self):
        router = CacheRouter()
        router.add_non_persistent_groups("counts")
        router.add_non_persistent_groups(["counts"])
        assert router.non_persistent_groups() == ["counts"]


class TestSelection:

    def test_defaults(self, tiers):
        persistent, ephemeral = tiers
        router = CacheRouter(persistent, ephemeral)
        assert router.select_persistent("any") is persistent
        assert router.select_ephemeral("any") is ephemeral

    def test_unbound_raises(self):
        with pytest.raises(CacheConfigFault):
            CacheRouter().select_persistent("any")

    def test_override(self, tiers):
        persistent, ephemeral = tiers
        sessions = create_adapter(MemoryStore())
        router = CacheRouter()
        router.bind(persistent, ephemeral)
        router.register_persistent_store(sessions, ["sessions"])
        assert router.select_persistent("sessions") is sessions
        assert router.select_persistent("posts") is persistent
        assert router.persistent_stores() == [persistent, sessions]

    def test_stores_are_distinct(self, tiers):
        persistent, ephemeral = tiers
        router = CacheRouter(persistent, ephemeral)
        router.register_ephemeral_store(ephemeral, ["a", "b"])
        assert router.ephemeral_stores() == [ephemeral]


class TestClear:

    @pytest.mark.asyncio
    async def test_clear_attempts_every_store(self):
        failing = FlakyStore()
        failing.fail_clear = True
        other = FlakyStore()
        router = CacheRouter(create_adapter(failing), create_adapter(MemoryStore()))
        router.register_persistent_store(create_adapter(other), "sessions")

        assert await router.clear_persistent() is False
        assert "clear" in other.calls

    @pytest.mark.asyncio
    async def test_clear_ephemeral(self, tiers):
        persistent, ephemeral = tiers
        await ephemeral.set("k", 1)
        router = CacheRouter(persistent, ephemeral)
        assert await router.clear_ephemeral() is True
        assert await ephemeral.has("k") is False
