"""
Tiercache CLI.

The ``tiercache`` command inspects and operates the cache configured for
the current directory.

Usage:
    tiercache key <key> --group <group>
    tiercache check
    tiercache inspect
    tiercache flush
"""

from tiercache import __version__

__cli_name__ = "tiercache"
