"""
Config system - Layered configuration with merge precedence.

Sources, later wins:
    config files (YAML / JSON) < .env file < TIERCACHE_* environment < overrides
"""

from typing import Any, Dict, Optional
from pathlib import Path
import json
import logging
import os

import yaml
from dotenv import dotenv_values

logger = logging.getLogger("tiercache.config")


DEFAULT_CONFIG_FILES = ("tiercache.yaml", "tiercache.yml", "tiercache.json")


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "TIERCACHE_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "TIERCACHE_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources with proper merge strategy.

        Merge order (later overrides earlier):
        1. Config files (``paths``, glob patterns supported; defaults to
           ``tiercache.yaml`` / ``tiercache.json`` in the working directory)
        2. ``.env`` file
        3. Environment variables (``TIERCACHE_*`` prefix, ``__`` nests)
        4. Manual overrides

        Args:
            paths: List of config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if not paths:
            paths = [p for p in DEFAULT_CONFIG_FILES if Path(p).exists()][:1]

        for pattern in paths:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        from glob import glob

        matched = glob(pattern)
        if not matched:
            logger.debug(f"No config file matches '{pattern}'")
        for path_str in matched:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                logger.warning(f"Ignoring config file with unknown suffix: {path}")

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
            self._merge_dict(self.config_data, data)
        logger.debug(f"Loaded config file {path}")

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._merge_dict(self.config_data, data)
        logger.debug(f"Loaded config file {path}")

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            logger.debug(f".env file not found: {env_path}")
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self):
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert TIERCACHE_CACHE__REDIS_URL to nested dict."""
        # Remove prefix
        key = key[len(self.env_prefix):]

        # Split by double underscore for nested keys
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        # Boolean
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        # Number
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        # JSON
        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        parts = path.split(".")
        current = self.config_data

        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()

    def get_cache_config(self) -> dict:
        """
        Get cache configuration with defaults.

        Returns:
            Cache configuration dictionary
        """
        default_cache_config = {
            "persistent_backend": "memory",
            "ephemeral_backend": "memory",
            "site_id": 1,
            "network_id": 1,
            "global_groups": [],
            "network_groups": [],
            "non_persistent_groups": [],
            "consistency": "relaxed",
            "max_size": 10000,
            "eviction_policy": "lru",
            "sweep_interval": 30.0,
            "redis_url": "redis://localhost:6379/0",
            "redis_max_connections": 10,
            "redis_socket_timeout": 5.0,
            "redis_socket_connect_timeout": 5.0,
            "redis_retry_on_timeout": True,
            "key_prefix": "tc:",
            "serializer": "json",
        }

        user_config = self.get("cache", {}) or {}
        if not isinstance(user_config, dict):
            logger.warning("Ignoring non-mapping 'cache' config section")
            user_config = {}
        return {**default_cache_config, **user_config}
