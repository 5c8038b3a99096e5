"""
Protocol definitions for drover's service interfaces.

These protocols define the contracts that implementations must follow,
enabling dependency inversion and loose coupling throughout the codebase.
"""

from .cache import KERNELS, META, NAMESPACES, OBJECTS, PROGRESS, CacheBackend
from .logger import ILogger
from .presenter import IPresenter
from .repositories import HashCacheRepository
from .services import HashingService

__all__ = [
    "KERNELS",
    "META",
    "NAMESPACES",
    "OBJECTS",
    "PROGRESS",
    "CacheBackend",
    "HashCacheRepository",
    "HashingService",
    "ILogger",
    "IPresenter",
]
