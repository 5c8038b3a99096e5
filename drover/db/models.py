"""
SQLAlchemy ORM models for the drover cache database.

Build state lives in a single namespaced key-value table; file digests
are memoized separately so unchanged files are not re-read every run.
"""

from sqlalchemy import Float, Index, Integer, LargeBinary, PrimaryKeyConstraint, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CacheEntry(Base):
    """Stored bytes for one (namespace, key) pair."""

    __tablename__ = "cache_entries"

    namespace: Mapped[str] = mapped_column(String, nullable=False)
    key: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    digest: Mapped[str] = mapped_column(String, nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("namespace", "key"),
        Index("idx_cache_entries_namespace", "namespace"),
    )


class HashCache(Base):
    """Local cache for file path to hash mapping."""

    __tablename__ = "hash_cache"

    path: Mapped[str] = mapped_column(Text, nullable=False)
    algorithm: Mapped[str] = mapped_column(String, nullable=False)
    digest: Mapped[str] = mapped_column(String, nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    mtime: Mapped[float] = mapped_column(Float, nullable=False)
    cached_at: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("path", "algorithm"),
        Index("idx_hash_cache_path", "path"),
        Index("idx_hash_cache_updated", "cached_at"),
    )
