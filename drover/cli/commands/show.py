"""
Native Click implementation of the show command.

Usage: drover show NODE_ID [--json] [--value]
"""

from __future__ import annotations

import json

import click

from ...engine import api
from ...presenters.run_report import RunReportPresenter
from ..context import DroverContext
from ..decorators import require_init
from ._common import cli_errors, open_run_context, presenter


@click.command("show")
@click.argument("node_id")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print metadata as JSON.")
@click.option("--value", "show_value", is_flag=True, default=False, help="Print the cached value.")
@click.pass_obj
@require_init
def show(ctx: DroverContext, node_id: str, as_json: bool, show_value: bool) -> None:
    """Show the recorded metadata of a node.

    Includes the error, warnings and captured output of its latest
    attempt, its fingerprints and whether its cached value is present.
    """
    with cli_errors(), open_run_context(ctx) as run_ctx:
        metadata = api.diagnose(node_id, run_ctx)
        if metadata is None:
            raise click.ClickException(f"No metadata recorded for '{node_id}'")

        if as_json:
            data = metadata.model_dump(mode="json")
            data["missing"] = metadata.missing
            click.echo(json.dumps(data, indent=2))
        else:
            RunReportPresenter(presenter()).show_metadata(metadata)

        if show_value:
            try:
                value = api.load(node_id, run_ctx)
            except KeyError as e:
                raise click.ClickException(f"No cached value for '{node_id}'") from e
            click.echo(repr(value))
