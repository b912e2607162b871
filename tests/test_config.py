"""
Tests for configuration loading and the cache factories.
"""

import json

import pytest

from tiercache.cache.core import CacheConfig
from tiercache.cache.faults import CacheConfigFault
from tiercache.cache.providers import build_cache_config, create_object_cache, create_store
from tiercache.cache.service import ObjectCache
from tiercache.cache.stores import MemoryStore, NullStore, RedisStore
from tiercache.config import ConfigLoader


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the caller's TIERCACHE_* variables and config files."""
    import os

    for name in list(os.environ):
        if name.startswith("TIERCACHE_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


# ============================================================================
# ConfigLoader
# ============================================================================


class TestConfigLoader:

    def test_defaults(self):
        loader = ConfigLoader.load()
        cache_config = loader.get_cache_config()
        assert cache_config["persistent_backend"] == "memory"
        assert cache_config["consistency"] == "relaxed"
        assert cache_config["site_id"] == 1

    def test_yaml_file(self, tmp_path):
        (tmp_path / "tiercache.yaml").write_text(
            "cache:\n"
            "  site_id: 3\n"
            "  non_persistent_groups: [counts, plugins]\n"
        )
        cache_config = ConfigLoader.load().get_cache_config()
        assert cache_config["site_id"] == 3
        assert cache_config["non_persistent_groups"] == ["counts", "plugins"]

    def test_json_file(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"cache": {"persistent_backend": "null"}}))
        loader = ConfigLoader.load(paths=[str(path)])
        assert loader.get("cache.persistent_backend") == "null"

    def test_glob_merges_in_order(self, tmp_path):
        (tmp_path / "a.yaml").write_text("cache:\n  site_id: 1\n  network_id: 5\n")
        (tmp_path / "b.yaml").write_text("cache:\n  site_id: 2\n")
        loader = ConfigLoader.load(paths=[str(tmp_path / "a.yaml"), str(tmp_path / "b.yaml")])
        assert loader.get("cache.site_id") == 2
        assert loader.get("cache.network_id") == 5

    def test_empty_yaml(self, tmp_path):
        (tmp_path / "tiercache.yaml").write_text("")
        assert ConfigLoader.load().to_dict() == {}

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / "tiercache.yaml").write_text("cache:\n  redis_url: redis://file:6379/0\n")
        monkeypatch.setenv("TIERCACHE_CACHE__REDIS_URL", "redis://env:6379/1")
        monkeypatch.setenv("TIERCACHE_CACHE__SITE_ID", "4")
        cache_config = ConfigLoader.load().get_cache_config()
        assert cache_config["redis_url"] == "redis://env:6379/1"
        assert cache_config["site_id"] == 4

    def test_env_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text(
            "TIERCACHE_CACHE__CONSISTENCY=atomic\n"
            "TIERCACHE_CACHE__SITE_ID=7\n"
            "UNRELATED=1\n"
        )
        monkeypatch.setenv("TIERCACHE_CACHE__SITE_ID", "8")
        loader = ConfigLoader.load(env_file=".env")
        assert loader.get("cache.consistency") == "atomic"
        assert loader.get("cache.site_id") == 8
        assert loader.get("unrelated") is None

    def test_missing_env_file(self):
        assert ConfigLoader.load(env_file="nope.env").to_dict() == {}

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("TIERCACHE_CACHE__SITE_ID", "4")
        loader = ConfigLoader.load(overrides={"cache": {"site_id": 9}})
        assert loader.get("cache.site_id") == 9

    @pytest.mark.parametrize("raw, parsed", [
        ("true", True),
        ("Off", False),
        ("42", 42),
        ("1", 1),
        ("0.5", 0.5),
        ('["a", "b"]', ["a", "b"]),
        ("{bad json", "{bad json"),
        ("redis://localhost:6379/0", "redis://localhost:6379/0"),
    ])
    def test_parse_value(self, raw, parsed):
        assert ConfigLoader()._parse_value(raw) == parsed

    def test_get_path(self):
        loader = ConfigLoader.load(overrides={"cache": {"site_id": 2}})
        assert loader.get("cache.site_id") == 2
        assert loader.get("cache.missing", "d") == "d"
        assert loader.get("cache.site_id.deeper") is None

    def test_non_mapping_cache_section(self, tmp_path):
        (tmp_path / "tiercache.yaml").write_text("cache: redis\n")
        assert ConfigLoader.load().get_cache_config()["persistent_backend"] == "memory"


# ============================================================================
# CacheConfig / build_cache_config
# ============================================================================


class TestBuildCacheConfig:

    def test_defaults(self):
        config = build_cache_config({})
        assert config == CacheConfig()
        assert config.to_dict()["global_groups"] == []

    def test_coercion(self):
        config = build_cache_config({
            "site_id": "3",
            "max_size": "50",
            "sweep_interval": "1",
            "global_groups": "users, userlogins,",
            "network_groups": ["sites"],
        })
        assert config.site_id == 3
        assert config.max_size == 50
        assert config.sweep_interval == 1.0
        assert config.global_groups == ("users", "userlogins")
        assert config.network_groups == ("sites",)

    @pytest.mark.parametrize("field, value", [
        ("persistent_backend", "memcached"),
        ("ephemeral_backend", "redis"),
        ("serializer", "yaml"),
        ("consistency", "eventual"),
        ("eviction_policy", "lfu"),
        ("max_size", 0),
    ])
    def test_invalid(self, field, value):
        with pytest.raises(CacheConfigFault):
            build_cache_config({field: value})

    def test_round_trip_through_loader(self, monkeypatch):
        monkeypatch.setenv("TIERCACHE_CACHE__NON_PERSISTENT_GROUPS", "counts,plugins")
        config = build_cache_config(ConfigLoader.load().get_cache_config())
        assert config.non_persistent_groups == ("counts", "plugins")


# ============================================================================
# Factories
# ============================================================================


class TestFactories:

    def test_create_store(self):
        config = CacheConfig(max_size=5, key_prefix="x:")
        memory = create_store("memory", config)
        assert isinstance(memory, MemoryStore)
        assert isinstance(create_store("NULL", config), NullStore)
        redis_store = create_store("redis", config)
        assert isinstance(redis_store, RedisStore)

    def test_create_store_unknown(self):
        with pytest.raises(CacheConfigFault):
            create_store("memcached", CacheConfig())

    @pytest.mark.asyncio
    async def test_create_object_cache(self):
        config = CacheConfig(site_id=2, non_persistent_groups=("counts",))
        cache = create_object_cache(config)
        assert isinstance(cache, ObjectCache)
        assert cache.non_persistent_groups() == ["counts"]
        await cache.initialize()
        try:
            await cache.set("k", 1, "posts")
            assert await cache.get("k", "posts") == 1
            assert cache.build_key("k", "posts") == "site.2.posts.k"
        finally:
            await cache.shutdown()

    def test_create_object_cache_validates(self):
        with pytest.raises(CacheConfigFault):
            create_object_cache(CacheConfig(consistency="eventual"))
