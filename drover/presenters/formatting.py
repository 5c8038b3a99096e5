"""
Shared formatting utilities for drover CLI output.
"""

from __future__ import annotations

from datetime import datetime


def format_duration(seconds: float | None) -> str:
    """Format duration in human-readable format.

    Examples:
        >>> format_duration(None)
        '?'
        >>> format_duration(45.5)
        '45.5s'
        >>> format_duration(125)
        '2m 5s'
    """
    if seconds is None:
        return "?"
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        mins = int(seconds // 60)
        secs = seconds % 60
        return f"{mins}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        mins = int((seconds % 3600) // 60)
        return f"{hours}h {mins}m"


def format_timestamp(ts: float | None) -> str:
    """Format a Unix timestamp as local "YYYY-MM-DD HH:MM:SS"."""
    if ts is None:
        return "?"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def truncate_string(text: str, max_len: int = 60) -> str:
    """Truncate text to max_len characters, marking the cut with '...'."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
