"""
Tiercache — Tenant-aware cache key generation.

Deterministic, collision-free key generation with scope isolation:

    global.<group>.<key>
    network.<network_id>.<group>.<key>
    site.<site_id>.<group>.<key>

The scope of a group is decided by the global and network group
registries (global wins over network, site is the default). The site
and network ids come from the current tenant context. The whole key is
sanitized last, so a raw key containing separators cannot forge a
different scope prefix.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Union


# Characters not supported by common backing stores, or risky in keys.
# Space is not strictly forbidden but causes issues easily.
_SANITIZE_TABLE = str.maketrans({
    "{": None,
    "}": None,
    "(": None,
    ")": None,
    "/": None,
    "\\": None,
    "@": None,
    ":": ".",
    " ": None,
})


def sanitize(key: str) -> str:
    """Strip or replace characters forbidden in backing-store keys."""
    return key.translate(_SANITIZE_TABLE)


def as_group_list(groups: Union[str, Iterable[str]]) -> List[str]:
    """Accept a single group name or an iterable of names."""
    if isinstance(groups, str):
        return [groups]
    return list(groups)


@dataclass
class TenantContext:
    """The active site and network ids."""
    site_id: int
    network_id: int


class KeyGenerator:
    """
    Builds fully-qualified store keys from (key, group, tenant context).

    Owns the tenant context and the global/network group registries.
    Registries only grow; registering a group twice is a no-op.

    Example::

        keygen = KeyGenerator(site_id=2, network_id=1)
        keygen.add_network_groups(["site-options"])
        keygen.generate("alloptions", "site-options")
        # -> "network.1.site-options.alloptions"
    """

    __slots__ = ("_context", "_global_groups", "_network_groups")

    def __init__(self, site_id: int = 1, network_id: int = 1):
        self._context = TenantContext(site_id=int(site_id), network_id=int(network_id))
        # Insertion-ordered flag maps
        self._global_groups: Dict[str, bool] = {}
        self._network_groups: Dict[str, bool] = {}

    def generate(self, key: str, group: str) -> str:
        """Build the sanitized, scope-prefixed key for ``key`` in ``group``."""
        if group in self._global_groups:
            full_key = f"global.{group}.{key}"
        elif group in self._network_groups:
            full_key = f"network.{self._context.network_id}.{group}.{key}"
        else:
            full_key = f"site.{self._context.site_id}.{group}.{key}"
        return sanitize(full_key)

    def add_global_groups(self, groups: Union[str, Iterable[str]]) -> None:
        for group in as_group_list(groups):
            self._global_groups[group] = True

    def add_network_groups(self, groups: Union[str, Iterable[str]]) -> None:
        for group in as_group_list(groups):
            self._network_groups[group] = True

    def switch_site_context(self, site_id: int) -> None:
        """Takes effect for subsequent ``generate`` calls only."""
        self._context.site_id = int(site_id)

    def switch_network_context(self, network_id: int) -> None:
        """Takes effect for subsequent ``generate`` calls only."""
        self._context.network_id = int(network_id)

    def is_global_group(self, group: str) -> bool:
        return group in self._global_groups

    def is_network_group(self, group: str) -> bool:
        return group in self._network_groups

    def global_groups(self) -> List[str]:
        return list(self._global_groups)

    def network_groups(self) -> List[str]:
        return list(self._network_groups)

    @property
    def context(self) -> TenantContext:
        """A copy of the current tenant context."""
        return TenantContext(self._context.site_id, self._context.network_id)

    def __repr__(self) -> str:
        return (
            f"<KeyGenerator site={self._context.site_id} "
            f"network={self._context.network_id} "
            f"global={len(self._global_groups)} network_groups={len(self._network_groups)}>"
        )
