"""
Database-backed services.
"""

from .hashing import DefaultHashingService

__all__ = ["DefaultHashingService"]
