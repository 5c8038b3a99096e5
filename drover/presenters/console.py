"""
Console presenter for terminal output.

Implements human-readable output formatting for the CLI.
"""

import sys
from typing import Any

from ..core.interfaces.presenter import IPresenter

_COLORS = {
    "done": "\033[92m",
    "skipped": "\033[2m",
    "failed": "\033[91m",
    "running": "\033[93m",
}


class ConsolePresenter(IPresenter):
    """
    Console output presenter.

    Formats output for human-readable terminal display.
    """

    def __init__(self, use_color: bool = True, file=None) -> None:
        """
        Initialize console presenter.

        Args:
            use_color: Whether to use ANSI color codes
            file: Output file (defaults to sys.stdout at print time)
        """
        self._use_color = use_color
        self._file = file

    @property
    def _out(self):
        return self._file or sys.stdout

    @property
    def _color(self) -> bool:
        isatty = getattr(self._out, "isatty", None)
        return self._use_color and bool(isatty and isatty())

    def print(self, message: str) -> None:
        """Print a message to output."""
        print(message, file=self._out)

    def print_error(self, message: str) -> None:
        """Print an error message to stderr."""
        if self._color:
            print(f"\033[91mError: {message}\033[0m", file=sys.stderr)
        else:
            print(f"Error: {message}", file=sys.stderr)

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        if self._color:
            print(f"\033[93mWarning: {message}\033[0m", file=sys.stderr)
        else:
            print(f"Warning: {message}", file=sys.stderr)

    def print_success(self, message: str) -> None:
        """Print a success message."""
        if self._color:
            print(f"\033[92m{message}\033[0m", file=self._out)
        else:
            print(message, file=self._out)

    def print_table(self, headers: list[str], rows: list[list[str]]) -> None:
        """
        Print a formatted table.

        Args:
            headers: Column headers
            rows: Table rows
        """
        if not rows:
            return

        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row):
                if i < len(widths):
                    widths[i] = max(widths[i], len(str(cell)))

        header_line = "  ".join(str(h).ljust(widths[i]) for i, h in enumerate(headers))
        if self._color:
            print(f"\033[1m{header_line}\033[0m", file=self._out)
        else:
            print(header_line, file=self._out)

        print("-" * len(header_line), file=self._out)

        for row in rows:
            row_line = "  ".join(
                str(cell).ljust(widths[i]) if i < len(widths) else str(cell)
                for i, cell in enumerate(row)
            )
            print(row_line.rstrip(), file=self._out)

    def status(self, status: str) -> str:
        """Status label, colored when the terminal supports it."""
        color = _COLORS.get(status)
        if self._color and color:
            return f"{color}{status}\033[0m"
        return status

    def print_key_value(self, key: str, value: Any, indent: int = 0) -> None:
        """Print a key-value pair."""
        prefix = "  " * indent
        if self._color:
            print(f"{prefix}\033[1m{key}:\033[0m {value}", file=self._out)
        else:
            print(f"{prefix}{key}: {value}", file=self._out)

    def print_section(self, title: str) -> None:
        """Print a section header."""
        if self._color:
            print(f"\n\033[1m{title}\033[0m", file=self._out)
        else:
            print(f"\n{title}", file=self._out)
        print("-" * len(title), file=self._out)
