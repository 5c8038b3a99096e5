"""
Hash algorithm registry.

Maps algorithm names from the [hash] config section to strategies and
hashes in-memory data for fingerprints.
"""

from collections.abc import Iterable
from typing import Any

from ...core.exceptions import ConfigValidationError
from .strategies import (
    Blake3Strategy,
    HashStrategy,
    MD5Strategy,
    SHA256Strategy,
    SHA512Strategy,
)


class HashAlgorithmRegistry:
    """
    Registry for hash algorithm strategies.

    Example:
        registry = HashAlgorithmRegistry()
        digest = registry.compute_hash("sha256", b"payload")

        # Several algorithms over the same bytes
        digests = registry.compute_hashes(["blake3", "sha256"], [b"pay", b"load"])
    """

    def __init__(self, register_defaults: bool = True):
        """
        Initialize the registry.

        Args:
            register_defaults: If True, register built-in algorithms
        """
        self._strategies: dict[str, HashStrategy] = {}
        if register_defaults:
            self._register_defaults()

    def _register_defaults(self) -> None:
        """Register built-in hash algorithms."""
        self.register(Blake3Strategy())
        self.register(SHA256Strategy())
        self.register(SHA512Strategy())
        self.register(MD5Strategy())

    def register(self, strategy: HashStrategy) -> None:
        """Register a hash strategy under its algorithm name."""
        self._strategies[strategy.algorithm_name] = strategy

    def get(self, algorithm: str) -> HashStrategy | None:
        """Get strategy by algorithm name, or None if not registered."""
        return self._strategies.get(algorithm)

    def require(self, algorithm: str) -> HashStrategy:
        """
        Get strategy by algorithm name.

        Raises:
            ConfigValidationError: If the algorithm is not registered
        """
        strategy = self.get(algorithm)
        if strategy is None:
            raise ConfigValidationError(
                f"Unknown hash algorithm: {algorithm}. "
                f"Available: {', '.join(self.available_algorithms)}",
                key="hash",
                value=algorithm,
            )
        return strategy

    def create_hasher(self, algorithm: str) -> Any:
        """
        Create a hasher for the given algorithm.

        Raises:
            ConfigValidationError: If algorithm not registered
        """
        return self.require(algorithm).create_hasher()

    def compute_hash(self, algorithm: str, data: bytes) -> str:
        """
        Compute hash of data using the specified algorithm.

        Args:
            algorithm: Algorithm name
            data: Data to hash

        Returns:
            Hex-encoded hash digest
        """
        return self.compute_hashes([algorithm], [data])[algorithm]

    def compute_hashes(self, algorithms: Iterable[str], chunks: Iterable[bytes]) -> dict[str, str]:
        """
        Compute several digests over the same byte chunks in one pass.

        Args:
            algorithms: Algorithm names
            chunks: Byte chunks fed to every hasher in order

        Returns:
            Dict of {algorithm: hex digest}
        """
        hashers: dict[str, tuple[HashStrategy, Any]] = {}
        for algo in algorithms:
            strategy = self.require(algo)
            hashers[algo] = (strategy, strategy.create_hasher())
        for chunk in chunks:
            for strategy, hasher in hashers.values():
                strategy.update(hasher, chunk)
        return {algo: strategy.hexdigest(hasher) for algo, (strategy, hasher) in hashers.items()}

    @property
    def available_algorithms(self) -> list[str]:
        """List available algorithm names."""
        return list(self._strategies.keys())

    def __contains__(self, algorithm: str) -> bool:
        """Check if algorithm is registered."""
        return algorithm in self._strategies
