"""
Cached listing of cache namespaces.

A run asks "is this entry cached?" for every node. The Inventory answers
from one listing per namespace, taken lazily at first use and kept
current as the engine writes and deletes entries. A negative answer is
confirmed against the backend before it is returned, so an out-of-date
listing can only cost an extra query.
"""

from __future__ import annotations

import threading

from ..core.interfaces.cache import CacheBackend


class Inventory:
    """Per-run listing of cache keys by namespace."""

    def __init__(self, cache: CacheBackend):
        self._cache = cache
        self._lock = threading.Lock()
        self._listings: dict[str, set[str]] = {}
        self.queries = 0

    def _listing(self, namespace: str) -> set[str]:
        with self._lock:
            listing = self._listings.get(namespace)
        if listing is None:
            keys = set(self._cache.list_keys(namespace))
            with self._lock:
                listing = self._listings.setdefault(namespace, keys)
        return listing

    def contains(self, namespace: str, key: str) -> bool:
        """Whether the backend holds (namespace, key)."""
        listing = self._listing(namespace)
        with self._lock:
            if key in listing:
                return True
        self.queries += 1
        found = self._cache.exists(namespace, key)
        if found:
            self.add(namespace, key)
        return found

    def keys(self, namespace: str) -> set[str]:
        listing = self._listing(namespace)
        with self._lock:
            return set(listing)

    def add(self, namespace: str, key: str) -> None:
        with self._lock:
            listing = self._listings.get(namespace)
            if listing is not None:
                listing.add(key)

    def discard(self, namespace: str, key: str) -> None:
        with self._lock:
            listing = self._listings.get(namespace)
            if listing is not None:
                listing.discard(key)

    def reset(self) -> None:
        """Forget all listings; the next query re-lists."""
        with self._lock:
            self._listings.clear()
