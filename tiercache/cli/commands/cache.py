"""
Tiercache CLI commands.

Commands:
    key       Print the fully-qualified key for a raw key and group.
    check     Validate cache configuration and test Redis connectivity.
    inspect   Show the resolved cache configuration as JSON.
    flush     Flush both tiers of the configured cache.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional, Sequence

import click
import redis as _redis

from tiercache.cache.core import CacheConfig
from tiercache.cache.key_builder import KeyGenerator
from tiercache.cache.providers import build_cache_config, create_object_cache
from tiercache.config import ConfigLoader

from ..utils.colors import _CHECK, _CROSS, error, kv, section, success


def load_cache_config(config_path: Optional[str] = None) -> CacheConfig:
    """Resolve the cache section from config files, .env and environment."""
    env_file = ".env" if Path(".env").exists() else None
    loader = ConfigLoader.load(
        paths=[config_path] if config_path else None,
        env_file=env_file,
    )
    return build_cache_config(loader.get_cache_config())


def cmd_cache_key(
    key: str,
    group: str,
    site: Optional[int],
    network: Optional[int],
    global_groups: Sequence[str],
    network_groups: Sequence[str],
    config_path: Optional[str] = None,
) -> str:
    """Build the key a cache call would use, without touching any store."""
    config = load_cache_config(config_path)
    keygen = KeyGenerator(
        site_id=config.site_id if site is None else site,
        network_id=config.network_id if network is None else network,
    )
    keygen.add_global_groups(config.global_groups)
    keygen.add_global_groups(global_groups)
    keygen.add_network_groups(config.network_groups)
    keygen.add_network_groups(network_groups)
    full_key = keygen.generate(key, group or "default")
    click.echo(full_key)
    return full_key


def cmd_cache_check(config_path: Optional[str] = None, verbose: bool = False) -> bool:
    """Validate cache configuration; ping Redis when it is the persistent tier."""
    config = load_cache_config(config_path)

    section("Cache Configuration Check")
    kv("Persistent", config.persistent_backend)
    kv("Ephemeral", config.ephemeral_backend)
    kv("Consistency", config.consistency)
    kv("Tenant", f"site={config.site_id} network={config.network_id}")
    kv("Max Size", str(config.max_size))
    kv("Eviction Policy", config.eviction_policy)
    if verbose:
        kv("Global Groups", ", ".join(config.global_groups) or "-")
        kv("Network Groups", ", ".join(config.network_groups) or "-")
        kv("Non-persistent", ", ".join(config.non_persistent_groups) or "-")

    ok = True
    if config.persistent_backend == "redis":
        click.echo()
        kv("Redis URL", config.redis_url)
        kv("Key Prefix", repr(config.key_prefix))
        kv("Serializer", config.serializer)
        click.echo()
        click.echo("  Testing Redis connection...")
        try:
            r = _redis.from_url(config.redis_url, socket_timeout=3)
            r.ping()
            success(f"  {_CHECK} Redis connection OK")
            r.close()
        except Exception as e:
            error(f"  {_CROSS} Redis connection failed: {e}")
            ok = False

    click.echo()
    if ok:
        success(f"{_CHECK} Cache configuration valid")
    return ok


def cmd_cache_inspect(config_path: Optional[str] = None, verbose: bool = False) -> None:
    """Display the resolved cache config as JSON."""
    config = load_cache_config(config_path)
    indent = 2 if verbose else None
    click.echo(json.dumps(config.to_dict(), indent=indent, default=str))


def cmd_cache_flush(config_path: Optional[str] = None, verbose: bool = False) -> bool:
    """
    Flush the configured cache.

    Only stores reachable from this process are affected: a memory tier
    here is a fresh, empty instance.
    """
    config = load_cache_config(config_path)
    cache = create_object_cache(config)

    async def _flush() -> bool:
        await cache.initialize()
        try:
            return await cache.flush()
        finally:
            await cache.shutdown()

    flushed = asyncio.run(_flush())
    if flushed:
        success(f"{_CHECK} Cache flushed")
    else:
        error(f"{_CROSS} Cache flush failed")
    return flushed
