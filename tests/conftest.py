"""
Shared test fixtures and helpers for the tiercache test suite.
"""

from typing import Optional

import pytest

from tiercache.cache.core import CacheConfig
from tiercache.cache.service import ObjectCache
from tiercache.cache.stores import MemoryStore
from tiercache.faults import FaultEngine


# ============================================================================
# Store helpers
# ============================================================================


class FlakyStore(MemoryStore):
    """MemoryStore whose operations can be switched to fail or raise."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.fail_set = False
        self.fail_clear = False
        self.fail_delete = False
        self.raise_on: Optional[str] = None
        self.calls: list = []

    def _record(self, op: str) -> None:
        self.calls.append(op)
        if self.raise_on == op:
            raise ConnectionError(f"{op} exploded")

    async def get(self, key, default=None):
        self._record("get")
        return await super().get(key, default)

    async def set(self, key, value, ttl=None):
        self._record("set")
        if self.fail_set:
            return False
        return await super().set(key, value, ttl)

    async def has(self, key):
        self._record("has")
        return await super().has(key)

    async def delete(self, key):
        self._record("delete")
        if self.fail_delete:
            return False
        return await super().delete(key)

    async def get_many(self, keys, default=None):
        self._record("get_many")
        return await super().get_many(keys, default)

    async def set_many(self, values, ttl=None):
        self._record("set_many")
        if self.fail_set:
            return False
        return await super().set_many(values, ttl)

    async def delete_many(self, keys):
        self._record("delete_many")
        if self.fail_delete:
            return False
        return await super().delete_many(keys)

    async def clear(self):
        self._record("clear")
        if self.fail_clear:
            return False
        return await super().clear()


class PlainStore:
    """Simple store without atomic add/replace."""

    def __init__(self):
        self.data: dict = {}

    async def get(self, key, default=None):
        return self.data.get(key, default)

    async def set(self, key, value, ttl=None):
        self.data[key] = value
        return True

    async def delete(self, key):
        self.data.pop(key, None)
        return True

    async def has(self, key):
        return key in self.data

    async def clear(self):
        self.data.clear()
        return True

    async def get_many(self, keys, default=None):
        return {k: self.data.get(k, default) for k in keys}

    async def set_many(self, values, ttl=None):
        self.data.update(values)
        return True

    async def delete_many(self, keys):
        for k in keys:
            self.data.pop(k, None)
        return True


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def persistent_store():
    """Stand-in for the shared tier, inspected directly by tests."""
    return FlakyStore(max_size=1000)


@pytest.fixture
def ephemeral_store():
    return FlakyStore(max_size=1000)


@pytest.fixture
def fault_engine():
    return FaultEngine(max_history=10)


@pytest.fixture
def cache(persistent_store, ephemeral_store, fault_engine):
    return ObjectCache(persistent_store, ephemeral_store, fault_engine=fault_engine)


@pytest.fixture
def atomic_config():
    return CacheConfig(consistency="atomic")
