"""
Native Click implementation of the clean command.

Usage: drover clean [NODE_ID...] [--yes]
"""

import click

from ...engine import api
from ..context import DroverContext
from ..decorators import require_init
from ._common import cli_errors, open_run_context, presenter


@click.command("clean")
@click.argument("node_ids", nargs=-1)
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask before removing everything.")
@click.pass_obj
@require_init
def clean(ctx: DroverContext, node_ids: tuple[str, ...], yes: bool) -> None:
    """Remove cached values, fingerprints and metadata.

    With no NODE_IDs the whole cache is cleared. Removed targets are
    rebuilt by the next make.
    """
    if not node_ids and not yes:
        click.confirm("Remove all cached entries?", abort=True)

    with cli_errors(), open_run_context(ctx) as run_ctx:
        removed = api.clean(list(node_ids) or None, run_ctx)

    out = presenter()
    if not removed:
        out.print("Nothing to remove.")
        return
    out.print_success(f"Removed {len(removed)} node(s): {', '.join(removed)}")
    for node_id in node_ids:
        if node_id not in removed:
            out.print_warning(f"No cached entries for '{node_id}'")
