"""
Native Click implementations of the make and outdated commands.

Usage:
    drover make PLAN [--target ID]... [--force ID]... [--jobs N]
    drover outdated PLAN [--target ID]...
"""

from __future__ import annotations

import click

from ...engine import api
from ...presenters.run_report import RunReportPresenter
from ..context import DroverContext
from ._common import cli_errors, load_plan, open_run_context, presenter

PLAN_HELP = "PLAN is 'path/to/plan.py[:attr]' or 'package.module[:attr]' (attr defaults to 'plan')."


@click.command("make", epilog=PLAN_HELP)
@click.argument("plan_ref", metavar="PLAN")
@click.option("--target", "-t", "targets", multiple=True, help="Only build this target (repeatable).")
@click.option("--force", "-f", "force", multiple=True, help="Rebuild this node regardless of its trigger.")
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=None, help="Targets built in parallel.")
@click.option(
    "--keep-going/--no-keep-going",
    default=None,
    help="Build downstream of failed targets using their last-good values.",
)
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only report failures.")
@click.pass_obj
def make(
    ctx: DroverContext,
    plan_ref: str,
    targets: tuple[str, ...],
    force: tuple[str, ...],
    jobs: int | None,
    keep_going: bool | None,
    quiet: bool,
) -> None:
    """Build the stale targets of a plan.

    Exits with status 1 if any target failed, 2 for a malformed plan
    and 3 if the cache is unavailable.

    \b
    Examples:

        drover make plan.py                 # Build everything stale

        drover make plan.py -t report -j 4  # Build 'report' and its inputs

        drover make pipeline.plans:nightly  # Plan from an importable module
    """
    if ctx.config_error:
        presenter().print_warning(ctx.config_error)
    if jobs is not None:
        ctx.config.execution.jobs = jobs
    if keep_going is not None:
        ctx.config.execution.keep_going = keep_going

    with cli_errors():
        plan, commands = load_plan(plan_ref, ctx.cwd)
        with open_run_context(ctx) as run_ctx:
            report = api.make(
                plan,
                run_ctx,
                targets=list(targets) or None,
                force=force,
                commands=commands,
            )

    RunReportPresenter(presenter()).show_report(report, quiet=quiet or ctx.config.output.quiet)
    if not report.success:
        raise SystemExit(1)


@click.command("outdated", epilog=PLAN_HELP)
@click.argument("plan_ref", metavar="PLAN")
@click.option("--target", "-t", "targets", multiple=True, help="Only consider this target (repeatable).")
@click.pass_obj
def outdated(ctx: DroverContext, plan_ref: str, targets: tuple[str, ...]) -> None:
    """List the targets make would rebuild, without building anything."""
    with cli_errors():
        plan, commands = load_plan(plan_ref, ctx.cwd)
        with open_run_context(ctx) as run_ctx:
            stale = api.outdated(plan, run_ctx, targets=list(targets) or None, commands=commands)

    RunReportPresenter(presenter()).show_outdated(stale)
