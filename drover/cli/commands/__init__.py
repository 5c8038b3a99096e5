"""
Click command implementations for drover CLI.

Each module corresponds to a drover command (e.g., make.py implements
'drover make'). Commands are registered with the main CLI group via
the register_commands() function in drover.cli.
"""

from .clean import clean
from .config import config
from .init import init
from .make import make, outdated
from .progress import progress
from .show import show

COMMANDS = [
    clean,
    config,
    init,
    make,
    outdated,
    progress,
    show,
]

__all__ = [
    "COMMANDS",
    "clean",
    "config",
    "init",
    "make",
    "outdated",
    "progress",
    "show",
]
