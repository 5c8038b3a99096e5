"""
Per-attempt capture of warnings and standard output.

Attempts run in their own threads while other attempts and the
scheduler keep running, so capture cannot simply swap sys.stdout for the
duration of a build. Instead a routing stream and a routing
``warnings.showwarning`` hook are installed while at least one attempt
is capturing; each forwards to the capture buffer registered for the
current thread and passes everything else through to the original.
"""

from __future__ import annotations

import io
import sys
import threading
import warnings
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

_lock = threading.Lock()
_local = threading.local()
_installs = 0
_saved_stdout: TextIO | None = None
_saved_showwarning: Any = None
_always_filter: tuple | None = None


class AttemptCapture:
    """Warnings and stdout produced by one attempt."""

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self._stdout = io.StringIO()

    def write(self, text: str) -> None:
        self._stdout.write(text)

    def add_warning(self, message: Warning | str, category: type[Warning]) -> None:
        self.warnings.append(f"{category.__name__}: {message}")

    @property
    def stdout(self) -> str:
        return self._stdout.getvalue()

    @property
    def messages(self) -> list[str]:
        """Non-empty stdout lines."""
        return [line for line in self.stdout.splitlines() if line.strip()]


def current_capture() -> AttemptCapture | None:
    return getattr(_local, "capture", None)


class _RoutingStream(io.TextIOBase):
    """sys.stdout replacement that writes to the current thread's capture."""

    def __init__(self, fallback: TextIO):
        super().__init__()
        self._fallback = fallback

    def write(self, s: str) -> int:
        capture = current_capture()
        if capture is not None:
            capture.write(s)
            return len(s)
        return self._fallback.write(s)

    def flush(self) -> None:
        self._fallback.flush()

    def writable(self) -> bool:
        return True

    def isatty(self) -> bool:
        return self._fallback.isatty()

    @property
    def encoding(self) -> str:  # type: ignore[override]
        return getattr(self._fallback, "encoding", "utf-8")

    def fileno(self) -> int:
        return self._fallback.fileno()


def _showwarning(message, category, filename, lineno, file=None, line=None):
    capture = current_capture()
    if capture is not None:
        capture.add_warning(message, category)
        return
    _saved_showwarning(message, category, filename, lineno, file, line)


def _install(always_warn: bool) -> None:
    global _installs, _saved_stdout, _saved_showwarning, _always_filter
    with _lock:
        _installs += 1
        if _installs > 1:
            return
        _saved_stdout = sys.stdout
        _saved_showwarning = warnings.showwarning
        sys.stdout = _RoutingStream(sys.stdout)
        warnings.showwarning = _showwarning
        if always_warn:
            # Repeated attempts must see warnings the registry already saw
            warnings.simplefilter("always")
            _always_filter = warnings.filters[0]


def _uninstall() -> None:
    global _installs, _saved_stdout, _saved_showwarning, _always_filter
    with _lock:
        _installs -= 1
        if _installs > 0:
            return
        if isinstance(sys.stdout, _RoutingStream):
            sys.stdout = _saved_stdout  # type: ignore[assignment]
        if warnings.showwarning is _showwarning:
            warnings.showwarning = _saved_showwarning
        if _always_filter is not None and _always_filter in warnings.filters:
            warnings.filters.remove(_always_filter)
        _saved_stdout = None
        _saved_showwarning = None
        _always_filter = None


@contextmanager
def capturing(always_warn: bool = True) -> Iterator[AttemptCapture]:
    """
    Capture warnings and stdout of the calling thread.

    Args:
        always_warn: Report every warning, including repeats from the
            same location (retries would otherwise lose them)

    Yields:
        The AttemptCapture receiving this thread's output
    """
    capture = AttemptCapture()
    _install(always_warn)
    previous = current_capture()
    _local.capture = capture
    try:
        yield capture
    finally:
        _local.capture = previous
        _uninstall()
