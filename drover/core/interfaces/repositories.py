"""
Repository protocol definitions for data access layer.

These protocols define focused interfaces for data access operations,
following the Interface Segregation Principle (ISP).
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class HashCacheRepository(Protocol):
    """Repository for caching file hashes keyed by path, size and mtime."""

    def get_cached_hashes(self, path: str) -> dict[str, str]:
        """Get all cached hashes for a file if still valid."""
        ...

    def cache_hashes(self, path: str, hashes: dict[str, str], size: int, mtime: float) -> None:
        """Store multiple hashes for a file."""
        ...

    def clear(self) -> int:
        """Remove every entry, returning how many were removed."""
        ...
