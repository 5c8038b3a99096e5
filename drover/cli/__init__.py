"""
Click-based CLI for drover.

This module provides the main Click command group and serves as the
entry point for the drover CLI.

Usage:
    from drover.cli import cli
    cli()  # Invokes the CLI
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

import click

from ..core.bootstrap import bootstrap
from .context import DroverContext

try:
    __version__ = version("drover")
except PackageNotFoundError:
    __version__ = "0.1.0"


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="drover")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """drover - incremental build orchestration for Python plans

    Runs a plan of targets (Python callables) and imports, rebuilding
    only what is stale and caching results in .drover/.

    \b
    Quick Start:
        drover init                Initialize drover in current directory
        drover make plan.py        Build stale targets of plan.py:plan

    \b
    Information:
        drover outdated plan.py    List targets that would rebuild
        drover show <node>         Show metadata of a node
        drover progress            Status of every target

    \b
    Maintenance:
        drover clean [node...]     Remove cached entries
        drover config              View or set configuration
    """
    ctx.ensure_object(dict)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)
    else:
        obj = DroverContext.create()
        bootstrap(obj.config.logging)
        ctx.obj = obj


def register_commands() -> None:
    """Register all CLI commands with the main group."""
    from .commands import COMMANDS

    for cmd in COMMANDS:
        cli.add_command(cmd)


# Register commands at module load time
register_commands()


__all__ = [
    "DroverContext",
    "__version__",
    "cli",
    "register_commands",
]
