"""
Dependency graph for a plan.

Validates the plan once (duplicate ids, unknown predecessors, command
parameters that cannot be bound, cycles) and answers ordering and
reachability queries for the rest of the run. Self references are
removed before cycle detection and never reported.
"""

from __future__ import annotations

import heapq
import inspect
from collections import deque
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from ..core.exceptions import CyclicDependencyError, PlanError
from ..core.models.node import Node


def _command_parameters(command: Callable[..., Any]) -> list[inspect.Parameter] | None:
    try:
        return list(inspect.signature(command).parameters.values())
    except (TypeError, ValueError):
        # Builtins without an introspectable signature
        return None


def check_binding(node: Node) -> None:
    """
    Verify every required parameter of a target's command has a predecessor.

    Raises:
        PlanError: If a required parameter matches no predecessor id
    """
    params = _command_parameters(node.command)  # type: ignore[arg-type]
    if params is None:
        return
    for param in params:
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        if param.name in node.predecessors or param.default is not param.empty:
            continue
        raise PlanError(
            f"Command parameter '{param.name}' does not name a predecessor",
            node_id=node.id,
            context={"predecessors": sorted(node.predecessors)},
        )


def bind_arguments(node: Node, values: Mapping[str, Any]) -> tuple[tuple[Any, ...], dict[str, Any]]:
    """
    Map predecessor values onto a target command's parameters.

    Parameters are matched to predecessors by name. A ``**kwargs``
    parameter receives every remaining predecessor whose id is a valid
    identifier.

    Args:
        node: Target node
        values: Predecessor values by id

    Returns:
        (args, kwargs) to call the command with
    """
    params = _command_parameters(node.command)  # type: ignore[arg-type]
    available = {pid: values[pid] for pid in node.predecessors if pid in values}
    if params is None:
        return (), {k: v for k, v in available.items() if k.isidentifier()}

    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for param in params:
        if param.name not in available:
            continue
        if param.kind is param.POSITIONAL_ONLY:
            args.append(available[param.name])
        elif param.kind in (param.POSITIONAL_OR_KEYWORD, param.KEYWORD_ONLY):
            kwargs[param.name] = available[param.name]

    if any(p.kind is p.VAR_KEYWORD for p in params):
        named = {p.name for p in params}
        for pid, value in sorted(available.items()):
            if pid not in named and pid.isidentifier():
                kwargs[pid] = value
    return tuple(args), kwargs


class DependencyGraph:
    """
    Immutable DAG of plan nodes.

    Example:
        graph = DependencyGraph([
            Node.import_object("a", 1),
            Node.target("b", lambda a: a + 1, ["a"]),
        ])
        graph.topological_order()  # ["a", "b"]
        graph.descendants("a")     # {"b"}
    """

    def __init__(self, nodes: Iterable[Node]):
        """
        Build and validate the graph.

        Raises:
            PlanError: Duplicate id, unknown predecessor, unbindable command
            CyclicDependencyError: The predecessor relation has a cycle
        """
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise PlanError(f"Duplicate node id '{node.id}'", node_id=node.id)
            self._nodes[node.id] = node.without_self_reference()

        self._successors: dict[str, set[str]] = {nid: set() for nid in self._nodes}
        for node in self._nodes.values():
            unknown = sorted(p for p in node.predecessors if p not in self._nodes)
            if unknown:
                raise PlanError(
                    f"Node '{node.id}' depends on unknown node(s): {', '.join(unknown)}",
                    node_id=node.id,
                )
            for pred in node.predecessors:
                self._successors[pred].add(node.id)
            if node.is_target:
                check_binding(node)

        self._order = self._toposort()

    def _toposort(self) -> list[str]:
        """Kahn's algorithm with ties broken by id, so the order is stable."""
        in_degree = {nid: len(node.predecessors) for nid, node in self._nodes.items()}
        heap = [nid for nid, degree in in_degree.items() if degree == 0]
        heapq.heapify(heap)

        order: list[str] = []
        while heap:
            nid = heapq.heappop(heap)
            order.append(nid)
            for succ in self._successors[nid]:
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    heapq.heappush(heap, succ)

        if len(order) != len(self._nodes):
            remaining = set(self._nodes) - set(order)
            raise CyclicDependencyError(
                f"Plan has circular dependencies involving: {', '.join(sorted(remaining))}",
                nodes=list(remaining),
            )
        return order

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return (self._nodes[nid] for nid in self._order)

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, node_id: str) -> Node:
        """
        Get a node by id.

        Raises:
            PlanError: If the id is not in the plan
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise PlanError(f"Unknown node '{node_id}'", node_id=node_id) from None

    @property
    def ids(self) -> list[str]:
        return list(self._order)

    @property
    def targets(self) -> list[Node]:
        return [n for n in self if n.is_target]

    def topological_order(self) -> list[str]:
        """Node ids with every node after all of its predecessors."""
        return list(self._order)

    def predecessors(self, node_id: str) -> frozenset[str]:
        return self.node(node_id).predecessors

    def successors(self, node_id: str) -> frozenset[str]:
        self.node(node_id)
        return frozenset(self._successors[node_id])

    def _walk(self, start: Iterable[str], step: Callable[[str], Iterable[str]]) -> set[str]:
        seen: set[str] = set()
        queue = deque(start)
        while queue:
            nid = queue.popleft()
            for nxt in step(nid):
                if nxt not in seen:
                    seen.add(nxt)
                    queue.append(nxt)
        return seen

    def descendants(self, node_id: str) -> set[str]:
        """All nodes reachable downstream of node_id (excluding itself)."""
        self.node(node_id)
        return self._walk([node_id], lambda nid: self._successors[nid])

    def ancestors(self, node_id: str) -> set[str]:
        """All nodes node_id transitively depends on (excluding itself)."""
        return self._walk([node_id], lambda nid: self._nodes[nid].predecessors)

    def subgraph(self, targets: Iterable[str]) -> DependencyGraph:
        """
        Restrict the graph to the given nodes and their ancestors.

        Raises:
            PlanError: If a requested id is not in the plan
        """
        keep: set[str] = set()
        for tid in targets:
            self.node(tid)
            keep.add(tid)
            keep |= self.ancestors(tid)
        return DependencyGraph(self._nodes[nid] for nid in self._order if nid in keep)
