"""
Native Click implementation of the init command.

Usage: drover init
"""

from pathlib import Path

import click

from ..context import DroverContext

# Default config template with comments
DEFAULT_CONFIG_TEMPLATE = """\
# drover configuration file

[execution]
# Number of targets built in parallel
jobs = 1
# Retries after a failed attempt (attempts = retries + 1)
retries = 0
# Per-attempt limits in seconds (0 = no limit)
# timeout_cpu = 0
# timeout_elapsed = 0
# Seconds to wait between attempts
retry_backoff = 0.0
# Build downstream of failures using last-good values
keep_going = false
# Default trigger (always, any, command, depends, file, missing)
trigger = "any"
# Drop values once all successors are built (lookahead) or keep them
memory_strategy = "lookahead"

[hash]
# Short fingerprint for display and key names (blake3, sha256, sha512, md5)
short = "blake3"
short_length = 16
# Long fingerprint for staleness bookkeeping
long = "sha256"

[cache]
# Cache database, relative to the project root
path = ".drover/cache.db"

[output]
# Suppress the run report after make
quiet = false

[logging]
# Log level (debug, info, warning, error)
level = "warning"
# Output debug logs to stderr
console = false
# Output debug logs to ~/.drover/drover.log
file = true
"""


def _add_to_gitignore(gitignore_path: Path, gitignore_content: str) -> None:
    """Append .drover/ to .gitignore file."""
    with open(gitignore_path, "a") as f:
        if not gitignore_content.endswith("\n"):
            f.write("\n")
        f.write(".drover/\n")


@click.command("init")
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    default=False,
    help="Automatically add .drover/ to .gitignore without prompting.",
)
@click.option(
    "--no",
    "-n",
    is_flag=True,
    default=False,
    help="Skip adding .drover/ to .gitignore without prompting.",
)
@click.pass_obj
def init(ctx: DroverContext, yes: bool, no: bool) -> None:
    """Initialize drover in current directory.

    Creates a .drover directory for the build cache, a config.toml
    with default settings, and optionally adds .drover/ to .gitignore.

    \b
    Examples:

        drover init       # Initialize drover, prompt for gitignore

        drover init -y    # Initialize and auto-add to gitignore

        drover init -n    # Initialize without modifying gitignore
    """
    drover_dir = ctx.drover_dir
    if drover_dir.exists():
        click.echo(f".drover directory already exists at {drover_dir}")
        return

    drover_dir.mkdir()
    click.echo(f"Created {drover_dir}")

    config_path = drover_dir / "config.toml"
    config_path.write_text(DEFAULT_CONFIG_TEMPLATE)
    click.echo(f"Created {config_path}")

    gitignore_path = ctx.cwd / ".gitignore"
    if not gitignore_path.exists():
        click.echo("No .gitignore found. Done.")
        return

    gitignore_content = gitignore_path.read_text()
    if ".drover" in gitignore_content:
        click.echo(".drover is already in .gitignore. Done.")
        return

    click.echo("")
    if yes:
        _add_to_gitignore(gitignore_path, gitignore_content)
        click.echo("Added .drover/ to .gitignore")
    elif no:
        click.echo("Skipped .gitignore update.")
    elif ctx.is_interactive and click.confirm("Add .drover/ to .gitignore?", default=True):
        _add_to_gitignore(gitignore_path, gitignore_content)
        click.echo("Added .drover/ to .gitignore")
    else:
        click.echo("Skipped .gitignore update.")

    click.echo("Done.")
