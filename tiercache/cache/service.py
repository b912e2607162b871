"""
Tiercache — ObjectCache: the two-tier cache facade.

Composes a KeyGenerator, a CacheRouter and two tiers of store adapters
into the read-through / write-through protocol:

- Reads try the ephemeral tier first and fall back to the persistent
  tier, warming the ephemeral tier on a persistent hit.
- Writes go to the persistent tier first and are mirrored into the
  ephemeral tier only when the persistent write succeeded.
- Non-persistent groups never touch the persistent tier.

Every operation is total: store failures surface as ``False`` / ``MISS``,
never as exceptions. Only configuration errors raise, at construction.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .adapters import create_adapter
from .core import (
    DEFAULT_GROUP,
    MISS,
    CacheConfig,
    CacheLookup,
    CacheStats,
    ConsistencyLevel,
    StoreAdapter,
)
from .faults import CacheConfigFault
from .key_builder import KeyGenerator
from .router import CacheRouter

logger = logging.getLogger("tiercache.cache")

Groups = Union[str, Sequence[str]]


class _BatchEntry:
    """One key of a batch call, classified independently."""

    __slots__ = ("key", "group", "full_key", "non_persistent", "ephemeral", "persistent")

    def __init__(self, key, group, full_key, non_persistent, ephemeral, persistent):
        self.key = key
        self.group = group
        self.full_key = full_key
        self.non_persistent = non_persistent
        self.ephemeral = ephemeral
        self.persistent = persistent


class ObjectCache:
    """
    Two-tier object cache with tenant-aware keys.

    Usage::

        cache = ObjectCache(RedisStore(url), MemoryStore())
        await cache.initialize()

        cache.add_global_groups(["users"])
        cache.add_non_persistent_groups(["counts"])

        await cache.set("alloptions", options, group="options", ttl=300)
        options = await cache.get("alloptions", group="options")
        if options is MISS:
            ...

        cache.switch_site_context(2)

    Raw native stores are wrapped with ``create_adapter``; adapters are
    used as given.
    """

    __slots__ = (
        "_persistent",
        "_ephemeral",
        "_key_generator",
        "_router",
        "_config",
        "_fault_engine",
        "_consistency",
        "_stats",
        "_start_time",
        "_started",
    )

    def __init__(
        self,
        persistent: Any,
        ephemeral: Any,
        *,
        key_generator: Optional[KeyGenerator] = None,
        router: Optional[CacheRouter] = None,
        config: Optional[CacheConfig] = None,
        fault_engine: Optional[Any] = None,
    ):
        """
        Args:
            persistent: Store (or adapter) of the shared, durable tier
            ephemeral: Store (or adapter) of the process-local tier
            key_generator: Defaults to one built from ``config``
            router: Defaults to an empty router
            config: Initial tenant context, group registries, consistency
            fault_engine: Receives faults emitted by the adapters

        Raises:
            CacheConfigFault: a store is missing or unusable, or the
                consistency level cannot be honoured by the stores
        """
        if persistent is None:
            raise CacheConfigFault("no persistent store bound")
        if ephemeral is None:
            raise CacheConfigFault("no ephemeral store bound")

        self._config = config or CacheConfig()
        self._fault_engine = fault_engine
        try:
            self._consistency = ConsistencyLevel(self._config.consistency)
        except ValueError:
            raise CacheConfigFault(f"unknown consistency level {self._config.consistency!r}")

        self._persistent = self._adapt(persistent, "persistent")
        self._ephemeral = self._adapt(ephemeral, "ephemeral")

        self._key_generator = key_generator or KeyGenerator(
            site_id=self._config.site_id,
            network_id=self._config.network_id,
        )
        self._key_generator.add_global_groups(self._config.global_groups)
        self._key_generator.add_network_groups(self._config.network_groups)

        self._router = router or CacheRouter()
        self._router.add_non_persistent_groups(self._config.non_persistent_groups)
        self._router.bind(self._persistent, self._ephemeral)

        self._stats = CacheStats(backend=f"{self._persistent.name}+{self._ephemeral.name}")
        self._start_time = time.monotonic()
        self._started: List[StoreAdapter] = []

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Initialize every store not yet initialized, once."""
        for adapter in self._all_adapters():
            if any(adapter is s for s in self._started):
                continue
            await adapter.initialize()
            self._started.append(adapter)
            logger.info(f"Cache store initialized: {adapter.name}")

    async def shutdown(self) -> None:
        """Shut down every initialized store, in reverse order."""
        while self._started:
            adapter = self._started.pop()
            await adapter.shutdown()
            logger.info(f"Cache store shut down: {adapter.name}")

    # ── Single-key operations ────────────────────────────────────────

    async def get(self, key: str, group: str = "", force: bool = False, default: Any = MISS) -> Any:
        """
        Read-through get.

        Args:
            key: Raw cache key
            group: Cache group, "" for the default group
            force: Skip the ephemeral tier for persistent groups
            default: Returned on a miss

        Returns:
            The cached value, or ``default`` (``MISS`` unless given)
        """
        found = await self.lookup(key, group, force)
        return found.value if found.found else default

    async def lookup(self, key: str, group: str = "", force: bool = False) -> CacheLookup:
        """Like ``get`` but reports the found flag explicitly."""
        group = self._group(group)
        full_key = self._key_generator.generate(key, group)
        non_persistent = self._router.is_non_persistent_group(group)
        ephemeral = self._router.select_ephemeral(group)

        if non_persistent or not force:
            value = await ephemeral.get(full_key)
            if value is not MISS:
                self._stats.hits += 1
                return CacheLookup(value, True)
            if non_persistent:
                self._stats.misses += 1
                return CacheLookup(MISS, False)

        value = await self._router.select_persistent(group).get(full_key)
        if value is MISS:
            self._stats.misses += 1
            return CacheLookup(MISS, False)

        # Warm the ephemeral tier; the entry keeps no TTL there
        await ephemeral.set(full_key, value)
        logger.debug(f"Backfilled '{full_key}' into {ephemeral.name}")
        self._stats.hits += 1
        return CacheLookup(value, True)

    async def set(self, key: str, value: Any, group: str = "", ttl: int = 0) -> bool:
        """
        Write-through set.

        Returns the result of the tier of record: the persistent store for
        persistent groups (ephemeral mirror result ignored), the ephemeral
        store for non-persistent groups.
        """
        group = self._group(group)
        full_key = self._key_generator.generate(key, group)
        ephemeral = self._router.select_ephemeral(group)

        if self._router.is_non_persistent_group(group):
            ok = await ephemeral.set(full_key, value, ttl)
        else:
            ok = await self._router.select_persistent(group).set(full_key, value, ttl)
            if ok:
                await ephemeral.set(full_key, value, ttl)
        if ok:
            self._stats.sets += 1
        return ok

    async def add(self, key: str, value: Any, group: str = "", ttl: int = 0) -> bool:
        """Write only if the key is absent from the tier of record."""
        return await self._conditional_set("add", key, value, group, ttl)

    async def replace(self, key: str, value: Any, group: str = "", ttl: int = 0) -> bool:
        """Write only if the key is present in the tier of record."""
        return await self._conditional_set("replace", key, value, group, ttl)

    async def increment(self, key: str, offset: int = 1, group: str = "") -> Union[int, float, bool]:
        """
        Add ``offset`` to a cached number.

        A non-numeric value counts as 0. The result never drops below 0
        and is written back without a TTL, so any prior expiration is lost.

        Returns:
            The new value, or False if the key is missing or the write failed
        """
        return await self._apply_delta(key, offset, group)

    async def decrement(self, key: str, offset: int = 1, group: str = "") -> Union[int, float, bool]:
        """Subtract ``offset``; see ``increment``."""
        return await self._apply_delta(key, -offset, group)

    async def delete(self, key: str, group: str = "") -> bool:
        """
        Remove a key from both tiers.

        A key absent from the tier of record counts as deleted without a
        delete call there. For persistent groups the ephemeral copy is
        invalidated whenever the result is True, including when the
        persistent entry was already gone.
        """
        group = self._group(group)
        full_key = self._key_generator.generate(key, group)
        non_persistent = self._router.is_non_persistent_group(group)
        ephemeral = self._router.select_ephemeral(group)
        store = ephemeral if non_persistent else self._router.select_persistent(group)

        if await store.has(full_key):
            if not await store.delete(full_key):
                return False
            self._stats.deletes += 1
        if not non_persistent:
            await ephemeral.delete(full_key)
        return True

    async def has(self, key: str, group: str = "") -> bool:
        """Existence in the tier of record only; the ephemeral tier is not a fast path."""
        group = self._group(group)
        full_key = self._key_generator.generate(key, group)
        return await self._authoritative(group).has(full_key)

    async def flush(self) -> bool:
        """
        Clear the persistent tier, then the ephemeral tier.

        The ephemeral tier is left untouched when the persistent clear
        fails. True only if both tiers cleared.
        """
        if not await self._router.clear_persistent():
            logger.warning("Flush aborted: persistent tier clear failed")
            return False
        return await self._router.clear_ephemeral()

    # ── Batch operations ─────────────────────────────────────────────

    async def get_many(
        self,
        keys: Iterable[str],
        groups: Groups = "",
        force: bool = False,
        default: Any = MISS,
    ) -> Dict[str, Any]:
        """
        Read-through get for many keys.

        ``groups`` is one group for all keys or a list aligned with ``keys``.
        One ``get_many`` is issued per distinct store and tier, and
        persistent hits are backfilled into the ephemeral tier in one
        ``set_many`` per store.

        Returns:
            Raw key -> value, ``default`` for misses. The result is keyed
            by raw key only: a key requested under several groups appears
            once, with the value of its last occurrence.
        """
        entries = self._classify(keys, groups)
        found: Dict[int, Any] = {}

        # Ephemeral first, unless forced for persistent groups
        first = [e for e in entries if e.non_persistent or not force]
        for store, batch in _partition(first, "ephemeral"):
            values = await store.get_many([e.full_key for e in batch])
            for e in batch:
                value = values.get(e.full_key, MISS)
                if value is not MISS:
                    found[id(e)] = value

        pending = [e for e in entries if not e.non_persistent and id(e) not in found]
        backfill: List[_BatchEntry] = []
        for store, batch in _partition(pending, "persistent"):
            values = await store.get_many([e.full_key for e in batch])
            for e in batch:
                value = values.get(e.full_key, MISS)
                if value is not MISS:
                    found[id(e)] = value
                    backfill.append(e)

        for store, batch in _partition(backfill, "ephemeral"):
            await store.set_many({e.full_key: found[id(e)] for e in batch})

        result: Dict[str, Any] = {}
        for e in entries:
            if id(e) in found:
                self._stats.hits += 1
                result[e.key] = found[id(e)]
            else:
                self._stats.misses += 1
                result[e.key] = default
        return result

    async def set_many(self, values: Mapping[str, Any], groups: Groups = "", ttl: int = 0) -> bool:
        """
        Write-through set for many keys.

        Non-persistent entries go to the ephemeral tier only. Persistent
        entries are written per persistent store and mirrored into the
        ephemeral tier when that store's batch succeeded.

        Returns:
            True only if every tier-of-record batch succeeded
        """
        entries = self._classify(values, groups)
        ok = True
        mirror: List[_BatchEntry] = []

        for store, batch in _partition([e for e in entries if not e.non_persistent], "persistent"):
            if await store.set_many({e.full_key: values[e.key] for e in batch}, ttl):
                mirror.extend(batch)
            else:
                ok = False

        direct = [e for e in entries if e.non_persistent]
        for store, batch in _partition(direct, "ephemeral"):
            if not await store.set_many({e.full_key: values[e.key] for e in batch}, ttl):
                ok = False

        for store, batch in _partition(mirror, "ephemeral"):
            await store.set_many({e.full_key: values[e.key] for e in batch}, ttl)

        if ok:
            self._stats.sets += len(entries)
        return ok

    async def delete_many(self, keys: Iterable[str], groups: Groups = "") -> bool:
        """
        Delete many keys from both tiers.

        One ``delete_many`` per store of record; the ephemeral copies of
        persistent entries are removed when their persistent batch
        succeeded.
        """
        entries = self._classify(keys, groups)
        ok = True
        mirror: List[_BatchEntry] = []

        for store, batch in _partition([e for e in entries if not e.non_persistent], "persistent"):
            if await store.delete_many([e.full_key for e in batch]):
                mirror.extend(batch)
            else:
                ok = False

        for store, batch in _partition([e for e in entries if e.non_persistent], "ephemeral"):
            if not await store.delete_many([e.full_key for e in batch]):
                ok = False

        for store, batch in _partition(mirror, "ephemeral"):
            await store.delete_many([e.full_key for e in batch])

        if ok:
            self._stats.deletes += len(entries)
        return ok

    # ── Registries and tenant context ────────────────────────────────

    def add_global_groups(self, groups: Union[str, Iterable[str]]) -> None:
        self._key_generator.add_global_groups(groups)

    def add_network_groups(self, groups: Union[str, Iterable[str]]) -> None:
        self._key_generator.add_network_groups(groups)

    def add_non_persistent_groups(self, groups: Union[str, Iterable[str]]) -> None:
        self._router.add_non_persistent_groups(groups)

    def switch_site_context(self, site_id: int) -> None:
        self._key_generator.switch_site_context(site_id)

    def switch_network_context(self, network_id: int) -> None:
        self._key_generator.switch_network_context(network_id)

    def switch_context(self, site_id: int, network_id: Optional[int] = None) -> None:
        """Switch site and, when given, network in one call."""
        self._key_generator.switch_site_context(site_id)
        if network_id is not None:
            self._key_generator.switch_network_context(network_id)

    def build_key(self, key: str, group: str = "") -> str:
        """The fully-qualified key a call with these arguments would use."""
        return self._key_generator.generate(key, self._group(group))

    def register_persistent_store(self, store: Any, groups: Union[str, Iterable[str]]) -> StoreAdapter:
        """
        Serve the persistent tier of ``groups`` from another store.

        Call ``initialize()`` again afterwards if the cache is already
        running; already-initialized stores are skipped.
        """
        adapter = self._adapt(store, "persistent")
        self._router.register_persistent_store(adapter, groups)
        return adapter

    def register_ephemeral_store(self, store: Any, groups: Union[str, Iterable[str]]) -> StoreAdapter:
        """Serve the ephemeral tier of ``groups`` from another store."""
        adapter = self._adapt(store, "ephemeral")
        self._router.register_ephemeral_store(adapter, groups)
        return adapter

    # ── Accessors ────────────────────────────────────────────────────

    def cache_hits(self) -> int:
        return self._stats.hits

    def cache_misses(self) -> int:
        return self._stats.misses

    def global_groups(self) -> List[str]:
        return self._key_generator.global_groups()

    def network_groups(self) -> List[str]:
        return self._key_generator.network_groups()

    def non_persistent_groups(self) -> List[str]:
        return self._router.non_persistent_groups()

    def stats(self) -> CacheStats:
        """Facade-level counters (hits, misses, sets, deletes)."""
        self._stats.uptime_seconds = time.monotonic() - self._start_time
        return self._stats

    @property
    def key_generator(self) -> KeyGenerator:
        return self._key_generator

    @property
    def router(self) -> CacheRouter:
        return self._router

    @property
    def persistent(self) -> StoreAdapter:
        return self._persistent

    @property
    def ephemeral(self) -> StoreAdapter:
        return self._ephemeral

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def consistency(self) -> ConsistencyLevel:
        return self._consistency

    def __repr__(self) -> str:
        return (
            f"<ObjectCache persistent={self._persistent.name} "
            f"ephemeral={self._ephemeral.name} consistency={self._consistency.value}>"
        )

    # ── Private helpers ──────────────────────────────────────────────

    def _adapt(self, store: Any, tier: str) -> StoreAdapter:
        adapter = create_adapter(store, fault_engine=self._fault_engine)
        if self._fault_engine is not None and getattr(adapter, "fault_engine", False) is None:
            adapter.fault_engine = self._fault_engine
        if self._consistency is ConsistencyLevel.ATOMIC and not adapter.supports_atomic:
            raise CacheConfigFault(
                f"{tier} store {adapter.name} has no atomic add/replace; "
                f"required by consistency level 'atomic'",
                tier=tier,
                store=adapter.name,
            )
        return adapter

    def _all_adapters(self) -> List[StoreAdapter]:
        return self._router.persistent_stores() + self._router.ephemeral_stores()

    @staticmethod
    def _group(group: Optional[str]) -> str:
        return group or DEFAULT_GROUP

    def _authoritative(self, group: str) -> StoreAdapter:
        if self._router.is_non_persistent_group(group):
            return self._router.select_ephemeral(group)
        return self._router.select_persistent(group)

    async def _conditional_set(self, op: str, key: str, value: Any, group: str, ttl: int) -> bool:
        group = self._group(group)
        full_key = self._key_generator.generate(key, group)
        non_persistent = self._router.is_non_persistent_group(group)
        ephemeral = self._router.select_ephemeral(group)
        store = ephemeral if non_persistent else self._router.select_persistent(group)

        if self._consistency is ConsistencyLevel.ATOMIC:
            ok = await (store.add if op == "add" else store.replace)(full_key, value, ttl)
        else:
            # Check and write are two store calls: two concurrent callers
            # may both pass the check and both write.
            exists = await store.has(full_key)
            if exists == (op == "add"):
                return False
            ok = await store.set(full_key, value, ttl)

        if ok:
            if not non_persistent:
                await ephemeral.set(full_key, value, ttl)
            self._stats.sets += 1
        return ok

    async def _apply_delta(self, key: str, delta: int, group: str) -> Union[int, float, bool]:
        group = self._group(group)
        current = await self.lookup(key, group)
        if not current.found:
            return False
        new_value = max(_as_number(current.value) + delta, 0)
        if not await self.set(key, new_value, group):
            return False
        return new_value

    def _classify(self, keys: Iterable[str], groups: Groups) -> List[_BatchEntry]:
        keys = list(keys)
        entries = []
        for key, group in zip(keys, align_groups(groups, len(keys))):
            entries.append(_BatchEntry(
                key,
                group,
                self._key_generator.generate(key, group),
                self._router.is_non_persistent_group(group),
                self._router.select_ephemeral(group),
                self._router.select_persistent(group),
            ))
        return entries


def align_groups(groups: Groups, count: int) -> List[str]:
    """
    One group per key: a single group applies to every key; a list is
    padded with the default group or truncated to ``count``.
    """
    if isinstance(groups, str):
        return [groups or DEFAULT_GROUP] * count
    aligned = [g or DEFAULT_GROUP for g in list(groups)[:count]]
    aligned.extend([DEFAULT_GROUP] * (count - len(aligned)))
    return aligned


def _partition(entries: Iterable[_BatchEntry], tier: str) -> List[Tuple[StoreAdapter, List[_BatchEntry]]]:
    """Group entries by the store serving ``tier`` for them, in first-seen order."""
    buckets: Dict[int, Tuple[StoreAdapter, List[_BatchEntry]]] = {}
    for e in entries:
        store = getattr(e, tier)
        buckets.setdefault(id(store), (store, []))[1].append(e)
    return list(buckets.values())


def _as_number(value: Any) -> Union[int, float]:
    """Numeric value of a cached entry; anything non-numeric is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return 0
        # nan/inf strings are not numbers
        return number if number == number and number not in (float("inf"), float("-inf")) else 0
    return 0
