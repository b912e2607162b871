"""Tiercache CLI - Main Entry Point.

Commands:
    key      - Print the fully-qualified key for a raw key and group
    check    - Validate cache configuration and connectivity
    inspect  - Show the resolved cache configuration
    flush    - Flush both cache tiers
"""

import logging
import sys
from typing import Optional, Tuple

import click

from . import __version__, __cli_name__
from .utils.colors import _CROSS, error, warning


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), default=None,
              help='Config file (YAML or JSON); defaults to ./tiercache.yaml')
@click.pass_context
def cli(ctx, verbose: bool, config_path: Optional[str]):
    """Two-tier object cache tooling.

    \b
    Quick start:
      tiercache inspect
      tiercache key alloptions --group options --site 2
      tiercache check
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['config_path'] = config_path


@cli.command('key')
@click.argument('key')
@click.option('--group', '-g', default='', help='Cache group (default: "default")')
@click.option('--site', type=int, default=None, help='Site id (default: from config)')
@click.option('--network', type=int, default=None, help='Network id (default: from config)')
@click.option('--global-group', 'global_groups', multiple=True, help='Treat group as global')
@click.option('--network-group', 'network_groups', multiple=True, help='Treat group as network-scoped')
@click.pass_context
def key(ctx, key: str, group: str, site: Optional[int], network: Optional[int],
        global_groups: Tuple[str, ...], network_groups: Tuple[str, ...]):
    """
    Print the fully-qualified key a cache call would use.

    Examples:
      tiercache key alloptions --group options
      tiercache key key5 --group network_options --network-group network_options --site 2
    """
    from .commands.cache import cmd_cache_key

    try:
        cmd_cache_key(
            key,
            group,
            site,
            network,
            global_groups,
            network_groups,
            config_path=ctx.obj['config_path'],
        )
    except Exception as e:
        error(f"  {_CROSS} key failed: {e}")
        sys.exit(1)


@cli.command('check')
@click.pass_context
def check(ctx):
    """
    Validate cache configuration and test backend connectivity.

    Examples:
      tiercache check
    """
    from .commands.cache import cmd_cache_check

    try:
        ok = cmd_cache_check(config_path=ctx.obj['config_path'], verbose=ctx.obj['verbose'])
    except Exception as e:
        error(f"  {_CROSS} cache check failed: {e}")
        sys.exit(1)
    if not ok:
        sys.exit(1)


@cli.command('inspect')
@click.pass_context
def inspect(ctx):
    """
    Display the resolved cache configuration as JSON.

    Examples:
      tiercache inspect
      tiercache -v inspect
    """
    from .commands.cache import cmd_cache_inspect

    try:
        cmd_cache_inspect(config_path=ctx.obj['config_path'], verbose=ctx.obj['verbose'])
    except Exception as e:
        error(f"  {_CROSS} cache inspect failed: {e}")
        sys.exit(1)


@cli.command('flush')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def flush(ctx, yes: bool):
    """
    Flush the persistent tier, then the ephemeral tier.

    Examples:
      tiercache flush --yes
    """
    from .commands.cache import cmd_cache_flush

    if not yes and not click.confirm("Flush every entry of the configured cache?"):
        warning("Aborted")
        return

    try:
        ok = cmd_cache_flush(config_path=ctx.obj['config_path'], verbose=ctx.obj['verbose'])
    except Exception as e:
        error(f"  {_CROSS} cache flush failed: {e}")
        sys.exit(1)
    if not ok:
        sys.exit(1)


def main():
    """Entry point for `tiercache` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
