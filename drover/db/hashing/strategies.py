"""
Hash algorithm strategy implementations.

Each strategy encapsulates the logic for a specific hash algorithm,
following the Strategy pattern for extensibility.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Any

import blake3


class HashStrategy(ABC):
    """
    Abstract base class for hash algorithm strategies.

    Implementations must provide:
    - algorithm_name: Unique identifier for the algorithm
    - create_hasher(): Factory method for hasher instances
    """

    @property
    @abstractmethod
    def algorithm_name(self) -> str:
        """Return algorithm identifier (e.g., 'blake3', 'sha256')."""
        pass

    @abstractmethod
    def create_hasher(self) -> Any:
        """Create a new hasher instance."""
        pass

    def update(self, hasher: Any, data: bytes) -> None:
        """Update hasher with data. Default implementation works for most hashers."""
        hasher.update(data)

    def hexdigest(self, hasher: Any) -> str:
        """Get hex digest from hasher. Default implementation works for most hashers."""
        return hasher.hexdigest()


class Blake3Strategy(HashStrategy):
    """BLAKE3 hashing strategy - fast, default for short fingerprints."""

    @property
    def algorithm_name(self) -> str:
        return "blake3"

    def create_hasher(self) -> Any:
        return blake3.blake3()


class SHA256Strategy(HashStrategy):
    """SHA-256 hashing strategy - default for long fingerprints."""

    @property
    def algorithm_name(self) -> str:
        return "sha256"

    def create_hasher(self) -> Any:
        return hashlib.sha256()


class SHA512Strategy(HashStrategy):
    """SHA-512 hashing strategy."""

    @property
    def algorithm_name(self) -> str:
        return "sha512"

    def create_hasher(self) -> Any:
        return hashlib.sha512()


class MD5Strategy(HashStrategy):
    """MD5 hashing strategy - short fingerprints only, not collision resistant."""

    @property
    def algorithm_name(self) -> str:
        return "md5"

    def create_hasher(self) -> Any:
        return hashlib.md5()
