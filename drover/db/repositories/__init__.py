"""
Repository implementations backed by SQLAlchemy.
"""

from .hash_cache import SQLAlchemyHashCacheRepository

__all__ = ["SQLAlchemyHashCacheRepository"]
