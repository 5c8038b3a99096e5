"""
Database layer for drover.

SQLite via SQLAlchemy: the namespaced cache backend and the file hash
cache.
"""

from .cache import SQLAlchemyCacheBackend
from .context import DatabaseContext, create_database_context

__all__ = ["DatabaseContext", "SQLAlchemyCacheBackend", "create_database_context"]
