"""
Tiercache — Reference native stores.
"""

from .memory import MemoryStore
from .null import NullStore
from .pool import CacheItem, MemoryPool
from .redis import RedisStore

__all__ = [
    "MemoryStore",
    "NullStore",
    "RedisStore",
    "MemoryPool",
    "CacheItem",
]
