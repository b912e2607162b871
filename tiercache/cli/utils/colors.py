"""
Tiercache CLI — styled output primitives built on Click.

    success(), error(), warning()
    section()   — section divider with title
    kv()        — key-value pair, aligned

All output degrades gracefully on non-colour terminals (click.style
handles NO_COLOR / TERM=dumb).
"""

from __future__ import annotations

import shutil
from typing import Optional

import click

_L_H = "─"      # ─
_CHECK = "✓"    # ✓
_CROSS = "✗"    # ✗


def _tw() -> int:
    """Terminal width, clamped to a sane range."""
    return max(40, min(shutil.get_terminal_size((80, 24)).columns, 120))


def success(message: str) -> None:
    """Print success message in green."""
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    """Print error message in red."""
    click.echo(click.style(message, fg="red"), err=True)


def warning(message: str) -> None:
    """Print warning message in yellow."""
    click.echo(click.style(message, fg="yellow"))


def section(title: str, *, width: Optional[int] = None, fg: str = "cyan") -> None:
    """
    Print a section header with a ruled line.

        ── Cache Configuration Check ──────────────
    """
    w = width or _tw()
    dashes = max(4, w - len(title) - 6)
    click.echo(click.style(f"{_L_H}{_L_H} {title} {_L_H * dashes}", fg=fg, bold=True))


def kv(key: str, value: str, *, key_width: int = 20, indent: int = 2) -> None:
    """
    Print an aligned key-value pair.

        Persistent:         redis
    """
    prefix = " " * indent
    k = click.style(f"{key}:", fg="white")
    v = click.style(str(value), fg="cyan")
    padding = " " * max(1, key_width - len(key) - 1)
    click.echo(f"{prefix}{k}{padding}{v}")
