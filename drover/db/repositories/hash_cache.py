"""
SQLAlchemy hash cache repository implementation.

Handles caching of file hashes to avoid redundant computations.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...core.exceptions import BackendUnavailableError
from ...core.interfaces.repositories import HashCacheRepository
from ..models import HashCache

# Files modified this close to the time they were hashed may have been
# rewritten within the filesystem's timestamp granularity.
RACY_WINDOW = 1.0


class SQLAlchemyHashCacheRepository(HashCacheRepository):
    """
    SQLAlchemy implementation of hash cache repository.

    Caches file hashes with metadata (size, mtime) to detect
    when recalculation is needed. Entries hashed within RACY_WINDOW
    seconds of the file's mtime are never trusted. Driver errors are
    wrapped in BackendUnavailableError, like the cache backend's.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        lock: threading.RLock | None = None,
        db_path: str | None = None,
    ):
        """
        Initialize repository.

        Args:
            session_factory: Factory for short-lived sessions
            lock: Lock serializing database access across threads
            db_path: Database location, for error context
        """
        self._session_factory = session_factory
        self._lock = lock or threading.RLock()
        self._db_path = db_path

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        with self._lock:
            try:
                with self._session_factory() as session, session.begin():
                    yield session
            except SQLAlchemyError as e:
                raise BackendUnavailableError(
                    f"Hash cache {operation} failed: {e}",
                    db_path=self._db_path,
                    cause=e,
                ) from e

    @staticmethod
    def _is_valid(entry: HashCache, size: int, mtime: float) -> bool:
        return (
            entry.size == size
            and abs(entry.mtime - mtime) < 1e-6
            and entry.cached_at - entry.mtime > RACY_WINDOW
        )

    def get_cached_hashes(self, path: str) -> dict[str, str]:
        """
        Get all cached hashes for a file if still valid.

        Returns:
            Dict of {algorithm: digest} or empty dict if stale/missing.

        Raises:
            BackendUnavailableError: If the database cannot be read
        """
        try:
            stat = os.stat(path)
        except OSError:
            return {}

        with self._transaction("read") as session:
            entries = session.execute(select(HashCache).where(HashCache.path == path)).scalars()
            return {
                entry.algorithm: entry.digest
                for entry in entries
                if self._is_valid(entry, stat.st_size, stat.st_mtime)
            }

    def cache_hashes(self, path: str, hashes: dict[str, str], size: int, mtime: float) -> None:
        """
        Store multiple hashes for a file.

        Args:
            path: File path
            hashes: Dict of {algorithm: digest}
            size: File size in bytes
            mtime: File modification time
        """
        now = time.time()
        with self._transaction("write") as session:
            for algo, digest in hashes.items():
                existing = session.get(HashCache, (path, algo))
                if existing:
                    existing.digest = digest
                    existing.size = size
                    existing.mtime = mtime
                    existing.cached_at = now
                else:
                    session.add(
                        HashCache(
                            path=path,
                            algorithm=algo,
                            digest=digest,
                            size=size,
                            mtime=mtime,
                            cached_at=now,
                        )
                    )

    def clear(self) -> int:
        """Remove every hash cache entry. Returns the number removed."""
        with self._transaction("delete") as session:
            return session.execute(delete(HashCache)).rowcount or 0
