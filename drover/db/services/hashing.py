"""
Default hashing service implementation.

Provides file hashing with caching support.
"""

import os

from ...core.exceptions import FileFingerprintError
from ...core.interfaces.repositories import HashCacheRepository
from ...core.interfaces.services import HashingService
from ..hashing import HashAlgorithmRegistry

CHUNK_SIZE = 8192 * 1024  # 8MB


class DefaultHashingService(HashingService):
    """
    Default implementation of hashing service.

    Uses hash algorithm registry for pluggable hash algorithms
    and hash cache repository for performance optimization.
    A missing file hashes to None; a file that exists but cannot be
    read raises FileFingerprintError.
    """

    def __init__(
        self, hash_cache: HashCacheRepository, registry: HashAlgorithmRegistry | None = None
    ):
        """
        Initialize hashing service.

        Args:
            hash_cache: Repository for caching hashes
            registry: Hash algorithm registry (defaults to standard registry)
        """
        self._hash_cache = hash_cache
        self._registry = registry or HashAlgorithmRegistry()

    def compute_hash(self, path: str, algorithm: str = "blake3") -> str | None:
        """
        Compute a single hash for a file.

        Returns:
            Hash digest, or None if file doesn't exist.
        """
        hashes = self.compute_hashes(path, [algorithm])
        return hashes[algorithm] if hashes is not None else None

    def compute_hashes(
        self, path: str, algorithms: list[str] | None = None
    ) -> dict[str, str] | None:
        """
        Compute multiple hashes for a file in a single pass.

        Args:
            path: File path
            algorithms: List of algorithms. Defaults to ['blake3'].

        Returns:
            Dict of {algorithm: digest}, or None if file doesn't exist.

        Raises:
            FileFingerprintError: If the file exists but cannot be read
        """
        if algorithms is None:
            algorithms = ["blake3"]

        try:
            stat = os.stat(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise FileFingerprintError(f"Cannot stat file: {e}", path=path, cause=e) from e

        cached = self._hash_cache.get_cached_hashes(path)
        needed = [algo for algo in algorithms if algo not in cached]

        if needed:
            try:
                with open(path, "rb") as f:
                    new_hashes = self._registry.compute_hashes(
                        needed, iter(lambda: f.read(CHUNK_SIZE), b"")
                    )
            except FileNotFoundError:
                return None
            except OSError as e:
                raise FileFingerprintError(f"Cannot read file: {e}", path=path, cause=e) from e

            cached.update(new_hashes)
            self._hash_cache.cache_hashes(path, new_hashes, stat.st_size, stat.st_mtime)

        return {algo: cached[algo] for algo in algorithms}

    def clear_cache(self) -> int:
        """Forget every memoized file hash. Returns the number of entries removed."""
        return self._hash_cache.clear()
