"""
SQLAlchemy cache backend.

Implements the CacheBackend protocol over the cache_entries table. Every
operation runs in its own short transaction under the context's lock, so
a put is committed before the call returns.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.exceptions import BackendUnavailableError
from ..core.interfaces.cache import CacheBackend
from .hashing import HashAlgorithmRegistry
from .models import CacheEntry


class SQLAlchemyCacheBackend(CacheBackend):
    """
    Namespaced key-value storage in SQLite.

    Driver errors are wrapped in BackendUnavailableError, which aborts
    the run.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        lock: threading.RLock | None = None,
        registry: HashAlgorithmRegistry | None = None,
        algorithm: str = "sha256",
        db_path: str | None = None,
    ):
        """
        Initialize the backend.

        Args:
            session_factory: Factory for short-lived sessions
            lock: Lock serializing database access across threads
            registry: Hash registry used for stored-value digests
            algorithm: Digest algorithm for hash()
            db_path: Database location, for error context
        """
        self._session_factory = session_factory
        self._lock = lock or threading.RLock()
        self._registry = registry or HashAlgorithmRegistry()
        self._algorithm = algorithm
        self._db_path = db_path

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        with self._lock:
            try:
                with self._session_factory() as session, session.begin():
                    yield session
            except SQLAlchemyError as e:
                raise BackendUnavailableError(
                    f"Cache {operation} failed: {e}",
                    db_path=self._db_path,
                    cause=e,
                ) from e

    def get(self, namespace: str, key: str) -> bytes | None:
        with self._transaction("read") as session:
            entry = session.get(CacheEntry, (namespace, key))
            return bytes(entry.value) if entry is not None else None

    def put(self, namespace: str, key: str, value: bytes) -> None:
        digest = self._registry.compute_hash(self._algorithm, value)
        with self._transaction("write") as session:
            entry = session.get(CacheEntry, (namespace, key))
            if entry is None:
                session.add(
                    CacheEntry(
                        namespace=namespace,
                        key=key,
                        value=value,
                        digest=digest,
                        size=len(value),
                        updated_at=time.time(),
                    )
                )
            else:
                entry.value = value
                entry.digest = digest
                entry.size = len(value)
                entry.updated_at = time.time()

    def exists(self, namespace: str, key: str) -> bool:
        with self._transaction("read") as session:
            found = session.execute(
                select(CacheEntry.key).where(
                    CacheEntry.namespace == namespace, CacheEntry.key == key
                )
            ).first()
            return found is not None

    def hash(self, namespace: str, key: str) -> str | None:
        with self._transaction("read") as session:
            return session.execute(
                select(CacheEntry.digest).where(
                    CacheEntry.namespace == namespace, CacheEntry.key == key
                )
            ).scalar_one_or_none()

    def delete(self, namespace: str, key: str) -> bool:
        with self._transaction("delete") as session:
            result = session.execute(
                delete(CacheEntry).where(CacheEntry.namespace == namespace, CacheEntry.key == key)
            )
            return bool(result.rowcount)

    def list_keys(self, namespace: str) -> list[str]:
        with self._transaction("read") as session:
            rows = session.execute(
                select(CacheEntry.key)
                .where(CacheEntry.namespace == namespace)
                .order_by(CacheEntry.key)
            ).scalars()
            return list(rows)

    def clear(self, namespace: str | None = None) -> None:
        with self._transaction("delete") as session:
            stmt = delete(CacheEntry)
            if namespace is not None:
                stmt = stmt.where(CacheEntry.namespace == namespace)
            session.execute(stmt)
