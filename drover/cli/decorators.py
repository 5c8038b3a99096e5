"""
Click decorators for drover CLI commands.

Provides requirement decorators that validate preconditions before
command execution:
- require_init: Ensures drover is initialized (.drover directory exists)
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import click

if TYPE_CHECKING:
    from .context import DroverContext

F = TypeVar("F", bound=Callable[..., Any])


def require_init(f: F) -> F:
    """Decorator to require drover initialization.

    Commands decorated with this will fail with a helpful error message
    if the .drover directory does not exist.

    Usage:
        @click.command()
        @click.pass_obj
        @require_init
        def progress(ctx: DroverContext):
            ...

    Note:
        This decorator should be applied AFTER @click.pass_obj so that
        the DroverContext is available.
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        ctx_maybe: Any = args[0] if args else kwargs.get("ctx")

        if ctx_maybe is None:
            raise click.ClickException(
                "Internal error: DroverContext not available. "
                "Ensure @click.pass_obj is applied before @require_init."
            )
        ctx: DroverContext = ctx_maybe

        if not ctx.is_initialized:
            click.echo("Error: drover is not initialized in this directory.")
            click.echo("")
            click.echo("Run 'drover init' first to set up drover.")
            raise SystemExit(1)

        return f(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
