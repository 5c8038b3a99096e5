"""
In-memory values for one run.

Targets receive their predecessors' values from RunMemory. Values are
loaded explicitly (from the plan for imports, from the cache for
targets) and evicted explicitly; with the ``lookahead`` strategy a
target's value is dropped once every successor has settled.
"""

from __future__ import annotations

import threading
from typing import Any

from .fingerprint import FingerprintStore
from .graph import DependencyGraph


class RunMemory:
    """Explicit key-value store of node values scoped to one run."""

    def __init__(self, store: FingerprintStore, graph: DependencyGraph, strategy: str = "lookahead"):
        self._store = store
        self._graph = graph
        self._strategy = strategy
        self._lock = threading.Lock()
        self._values: dict[str, Any] = {}
        self._settled: set[str] = set()

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._values

    def put(self, node_id: str, value: Any) -> None:
        with self._lock:
            self._values[node_id] = value

    def load(self, node_id: str) -> Any:
        """
        Get a node's value, loading a target's value from the cache if needed.

        Raises:
            KeyError: If the value is neither loaded nor cached
        """
        with self._lock:
            if node_id in self._values:
                return self._values[node_id]
        value = self._store.load_value(node_id)
        self.put(node_id, value)
        return value

    def evict(self, node_id: str) -> None:
        with self._lock:
            self._values.pop(node_id, None)

    def inputs_for(self, node_id: str) -> dict[str, Any]:
        """
        Values of a node's predecessors, by id.

        Raises:
            KeyError: If a predecessor's value is unavailable
        """
        return {pid: self.load(pid) for pid in sorted(self._graph.predecessors(node_id))}

    def settle(self, node_id: str) -> None:
        """Record that a node is finished and evict values nothing still needs."""
        with self._lock:
            self._settled.add(node_id)
        if self._strategy != "lookahead":
            return
        for pid in self._graph.predecessors(node_id) | {node_id}:
            if not self._graph.node(pid).is_target:
                continue
            successors = self._graph.successors(pid)
            with self._lock:
                done = pid in self._settled and successors <= self._settled
            if done and successors:
                self.evict(pid)

    @property
    def loaded(self) -> set[str]:
        with self._lock:
            return set(self._values)
