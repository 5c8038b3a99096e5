"""
Native Click implementation of the progress command.

Usage: drover progress
"""

import click

from ...engine import api
from ...presenters.run_report import RunReportPresenter
from ..context import DroverContext
from ..decorators import require_init
from ._common import cli_errors, open_run_context, presenter


@click.command("progress")
@click.pass_obj
@require_init
def progress(ctx: DroverContext) -> None:
    """Show the latest status of every target (built, skipped, failed, running)."""
    with cli_errors(), open_run_context(ctx) as run_ctx:
        statuses = api.progress(run_ctx)
    RunReportPresenter(presenter()).show_progress(statuses)
