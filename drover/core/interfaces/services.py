"""
Service protocol definitions for business logic layer.

These protocols define focused interfaces for services that
coordinate between repositories.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class HashingService(Protocol):
    """Service for computing and caching file hashes."""

    def compute_hash(self, path: str, algorithm: str = "blake3") -> str | None:
        """Compute a hash for a file, or None if it does not exist."""
        ...

    def compute_hashes(
        self, path: str, algorithms: list[str] | None = None
    ) -> dict[str, str] | None:
        """Compute several hashes for a file in a single pass."""
        ...

    def clear_cache(self) -> int:
        """Forget every memoized file hash."""
        ...
