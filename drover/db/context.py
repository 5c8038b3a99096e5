"""
Database context for drover.

Provides a lightweight context manager that exposes the cache backend
and the file hashing service over one SQLite database.
"""

import threading
from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.exceptions import BackendUnavailableError
from .cache import SQLAlchemyCacheBackend
from .engine import create_drover_engine, create_session_factory, init_database
from .hashing import HashAlgorithmRegistry
from .repositories import SQLAlchemyHashCacheRepository
from .services import DefaultHashingService


class DatabaseContext:
    """
    Context manager providing access to the cache database.

    Usage:
        with DatabaseContext(db_path) as db:
            db.cache.put("objects", "b", payload)
            digest = db.hashing.compute_hash("data.csv", "sha256")

        # Or via factory:
        with create_database_context(drover_dir) as db:
            ...
    """

    def __init__(self, db_path: Path, digest_algorithm: str = "sha256"):
        """
        Initialize DatabaseContext.

        Args:
            db_path: Path to SQLite database file
            digest_algorithm: Algorithm for stored-value digests
        """
        self.db_path = db_path
        self.lock = threading.RLock()
        self._digest_algorithm = digest_algorithm
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None
        self._hash_registry = HashAlgorithmRegistry()

        # Initialized on connect
        self._cache: SQLAlchemyCacheBackend | None = None
        self._hash_cache_repo: SQLAlchemyHashCacheRepository | None = None
        self._hashing_service: DefaultHashingService | None = None

    def connect(self) -> None:
        """
        Connect to the database and initialize schema if needed.

        Raises:
            BackendUnavailableError: If the database cannot be opened
        """
        try:
            self._engine = create_drover_engine(self.db_path)
            init_database(self._engine)
        except (SQLAlchemyError, OSError) as e:
            self.close()
            raise BackendUnavailableError(
                f"Cannot open cache database: {e}", db_path=str(self.db_path), cause=e
            ) from e

        self._session_factory = create_session_factory(self._engine)
        self._cache = SQLAlchemyCacheBackend(
            self._session_factory,
            lock=self.lock,
            registry=self._hash_registry,
            algorithm=self._digest_algorithm,
            db_path=str(self.db_path),
        )
        self._hash_cache_repo = SQLAlchemyHashCacheRepository(
            self._session_factory, self.lock, db_path=str(self.db_path)
        )
        self._hashing_service = DefaultHashingService(self._hash_cache_repo, self._hash_registry)

    def close(self) -> None:
        """Close database connection."""
        if self._engine:
            self._engine.dispose()
            self._engine = None
        self._session_factory = None
        self._cache = None
        self._hash_cache_repo = None
        self._hashing_service = None

    def __enter__(self) -> "DatabaseContext":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _not_connected(self) -> BackendUnavailableError:
        return BackendUnavailableError(
            "DatabaseContext not connected. Use as context manager.",
            db_path=str(self.db_path),
        )

    @property
    def cache(self) -> SQLAlchemyCacheBackend:
        """Namespaced key-value backend holding build state."""
        if self._cache is None:
            raise self._not_connected()
        return self._cache

    @property
    def hash_cache(self) -> SQLAlchemyHashCacheRepository:
        """Hash cache repository for file hash caching."""
        if self._hash_cache_repo is None:
            raise self._not_connected()
        return self._hash_cache_repo

    @property
    def hashing(self) -> DefaultHashingService:
        """Hashing service for computing and caching file hashes."""
        if self._hashing_service is None:
            raise self._not_connected()
        return self._hashing_service

    @property
    def hash_registry(self) -> HashAlgorithmRegistry:
        """Hash algorithm registry for in-memory digests."""
        return self._hash_registry


def create_database_context(db_path: Path, digest_algorithm: str = "sha256") -> DatabaseContext:
    """
    Create a DatabaseContext for the given cache database.

    This is the primary entry point for database access.

    Returns:
        DatabaseContext instance (use as context manager)
    """
    return DatabaseContext(db_path, digest_algorithm)
