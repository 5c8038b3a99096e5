"""
Process-wide services for drover.
"""

from .logging import DroverLogger, NullLogger

__all__ = ["DroverLogger", "NullLogger"]
