"""
Tiercache — Value serializers for stores that hold bytes.

JSON (default), pickle (any Python object, trusted data only) and msgpack
(compact, cross-language). Only out-of-process stores such as
``RedisStore`` use them; the cache facade itself never serializes.
"""

from __future__ import annotations

import json
import logging
import pickle
from typing import Any

from .faults import CacheConfigFault

logger = logging.getLogger("tiercache.cache.serializers")


class JsonCacheSerializer:
    """
    JSON serializer, safe and human-readable.

    Round-trips dict, list, str, int, float, bool and None. Tuples come
    back as lists; other types are stored as their ``str()``.
    """

    def serialize(self, value: Any) -> bytes:
        try:
            return json.dumps(value, default=str, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"JSON serialization failed: {e}")
            raise

    def deserialize(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"JSON deserialization failed: {e}")
            raise


class PickleCacheSerializer:
    """
    Pickle serializer, lossless for arbitrary Python objects.

    WARNING: Only use with trusted data. Pickle can execute
    arbitrary code during deserialization.
    """

    def serialize(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            logger.warning(f"Pickle serialization failed: {e}")
            raise

    def deserialize(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError) as e:
            logger.warning(f"Pickle deserialization failed: {e}")
            raise


class MsgpackCacheSerializer:
    """
    MessagePack serializer, compact binary.

    Requires the ``msgpack`` extra: pip install tiercache[msgpack]
    """

    def __init__(self):
        try:
            import msgpack
        except ImportError:
            raise CacheConfigFault(
                "msgpack serializer requires the 'msgpack' package; "
                "install with: pip install tiercache[msgpack]"
            )
        self._msgpack = msgpack

    def serialize(self, value: Any) -> bytes:
        try:
            return self._msgpack.packb(value, use_bin_type=True, default=str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Msgpack serialization failed: {e}")
            raise

    def deserialize(self, data: bytes) -> Any:
        try:
            return self._msgpack.unpackb(data, raw=False)
        except Exception as e:
            logger.warning(f"Msgpack deserialization failed: {e}")
            raise


_SERIALIZERS = {
    "json": JsonCacheSerializer,
    "pickle": PickleCacheSerializer,
    "msgpack": MsgpackCacheSerializer,
}


def get_serializer(name: str = "json"):
    """
    Factory for serializer instances.

    Args:
        name: "json", "pickle", or "msgpack"

    Raises:
        CacheConfigFault: unknown name, or msgpack not installed
    """
    cls = _SERIALIZERS.get(name)
    if cls is None:
        raise CacheConfigFault(
            f"unknown serializer {name!r}; options: {sorted(_SERIALIZERS)}",
            serializer=name,
        )
    return cls()
