"""
Per-run context for the drover engine.

RunContext is the explicit state object every engine component receives:
configuration, the cache backend, the file hashing service and the
logger. It replaces ambient global run state; nothing in the engine
reads configuration from anywhere else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..db.context import DatabaseContext, create_database_context
from ..db.hashing import HashAlgorithmRegistry
from ..services.logging import NullLogger
from .di import resolve_or_default
from .interfaces.cache import CacheBackend
from .interfaces.logger import ILogger
from .interfaces.services import HashingService
from .models.config import DroverConfig

DROVER_DIR_NAME = ".drover"


@dataclass
class RunContext:
    """
    Explicit context threaded through every engine component.

    Attributes:
        config: Effective configuration for the run
        cache: Namespaced build-state storage
        hashing: File hashing service (cached by path/size/mtime)
        root: Directory that relative plan paths resolve against
        logger: Internal diagnostics logger
        registry: Hash algorithms for in-memory digests
        db: Owning database context, closed with the RunContext
    """

    config: DroverConfig
    cache: CacheBackend
    hashing: HashingService
    root: Path
    logger: ILogger = field(default_factory=NullLogger)
    registry: HashAlgorithmRegistry = field(default_factory=HashAlgorithmRegistry)
    db: DatabaseContext | None = None

    @classmethod
    def open(
        cls,
        root: Path | None = None,
        config: DroverConfig | None = None,
        logger: ILogger | None = None,
    ) -> RunContext:
        """
        Create a RunContext backed by the SQLite cache under ``root``.

        Args:
            root: Project directory (defaults to cwd)
            config: Configuration (defaults to settings loaded from root)
            logger: Logger (defaults to the container's ILogger)

        Raises:
            BackendUnavailableError: If the cache database cannot be opened
        """
        root = (root or Path.cwd()).resolve()
        if config is None:
            from .settings import load_settings

            config = load_settings(start_dir=str(root)).to_config()

        db_path = Path(config.cache.path)
        if not db_path.is_absolute():
            db_path = root / db_path

        db = create_database_context(db_path, digest_algorithm=config.hash.long)
        db.connect()
        return cls(
            config=config,
            cache=db.cache,
            hashing=db.hashing,
            root=root,
            logger=logger or resolve_or_default(ILogger, NullLogger),
            registry=db.hash_registry,
            db=db,
        )

    @property
    def drover_dir(self) -> Path:
        return self.root / DROVER_DIR_NAME

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve a plan path against the context root."""
        p = Path(path)
        return p if p.is_absolute() else self.root / p

    def close(self) -> None:
        if self.db is not None:
            self.db.close()

    def __enter__(self) -> RunContext:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
