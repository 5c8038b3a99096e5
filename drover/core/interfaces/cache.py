"""
Cache backend protocol.

The engine only needs keyed byte storage split into namespaces. Any
backend providing these operations can hold drover's build state.
"""

from typing import Protocol, runtime_checkable

# Namespaces used by the engine
OBJECTS = "objects"
KERNELS = "kernels"
META = "meta"
PROGRESS = "progress"

NAMESPACES = (OBJECTS, KERNELS, META, PROGRESS)


@runtime_checkable
class CacheBackend(Protocol):
    """Keyed byte storage grouped by namespace."""

    def get(self, namespace: str, key: str) -> bytes | None:
        """Get stored bytes, or None if absent."""
        ...

    def put(self, namespace: str, key: str, value: bytes) -> None:
        """Store bytes, replacing any existing entry."""
        ...

    def exists(self, namespace: str, key: str) -> bool:
        """Check whether an entry exists."""
        ...

    def hash(self, namespace: str, key: str) -> str | None:
        """Get the digest of the stored bytes, or None if absent."""
        ...

    def delete(self, namespace: str, key: str) -> bool:
        """Delete an entry. Returns True if it existed."""
        ...

    def list_keys(self, namespace: str) -> list[str]:
        """List all keys in a namespace."""
        ...

    def clear(self, namespace: str | None = None) -> None:
        """Remove all entries in a namespace, or everywhere if None."""
        ...
