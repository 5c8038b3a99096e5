"""
Library entry points.

Each function accepts an explicit RunContext; when none is given, one is
opened from settings for the current directory and closed on return.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from ..core.context import RunContext
from ..core.interfaces.cache import KERNELS, META, NAMESPACES, OBJECTS, PROGRESS
from ..core.models.metadata import NodeMetadata
from ..core.models.node import Node, NodeSpec
from ..core.models.run import RunReport
from .fingerprint import FingerprintStore
from .graph import DependencyGraph
from .metadata import MetadataStore
from .scheduler import Scheduler

Plan = Iterable[Node | NodeSpec] | DependencyGraph


@contextmanager
def _context(ctx: RunContext | None, root: Path | None = None) -> Iterator[RunContext]:
    if ctx is not None:
        yield ctx
        return
    with RunContext.open(root) as owned:
        yield owned


def build_graph(
    plan: Plan,
    commands: Mapping[str, Callable[..., Any]] | None = None,
    targets: Sequence[str] | None = None,
) -> DependencyGraph:
    """
    Validate a plan into a DependencyGraph.

    Args:
        plan: Nodes, NodeSpecs (resolved against ``commands``) or a graph
        commands: Callables by name for NodeSpec entries
        targets: Restrict to these targets and their ancestors

    Raises:
        PlanError: Malformed plan
        CyclicDependencyError: Cyclic predecessor relation
    """
    if isinstance(plan, DependencyGraph):
        graph = plan
    else:
        nodes = [
            entry.to_node(commands or {}) if isinstance(entry, NodeSpec) else entry
            for entry in plan
        ]
        graph = DependencyGraph(nodes)
    if targets:
        graph = graph.subgraph(targets)
    return graph


def make(
    plan: Plan,
    ctx: RunContext | None = None,
    *,
    targets: Sequence[str] | None = None,
    force: Iterable[str] = (),
    commands: Mapping[str, Callable[..., Any]] | None = None,
) -> RunReport:
    """
    Build the stale targets of a plan.

    Args:
        plan: The plan to run
        ctx: Run context (opened from settings when omitted)
        targets: Only build these targets and what they depend on
        force: Rebuild these nodes regardless of their trigger
        commands: Callables for NodeSpec entries

    Returns:
        RunReport of built, skipped and failed targets

    Raises:
        ConfigurationError: Malformed plan, raised before anything runs
        BackendError: Cache failure, aborts the run
    """
    graph = build_graph(plan, commands, targets)
    with _context(ctx) as run_ctx:
        return Scheduler(run_ctx, graph).run(force=force)


def outdated(
    plan: Plan,
    ctx: RunContext | None = None,
    *,
    targets: Sequence[str] | None = None,
    commands: Mapping[str, Callable[..., Any]] | None = None,
) -> list[str]:
    """Targets that make() would rebuild, in dependency order. Builds nothing."""
    graph = build_graph(plan, commands, targets)
    with _context(ctx) as run_ctx:
        return Scheduler(run_ctx, graph).outdated()


def diagnose(node_id: str, ctx: RunContext | None = None) -> NodeMetadata | None:
    """
    Full metadata of a node, including diagnostics of its latest attempt.

    ``missing`` is set when the node has no cached value.
    """
    with _context(ctx) as run_ctx:
        store = FingerprintStore(run_ctx)
        metadata = MetadataStore(store).get(node_id)
        if metadata is None:
            return None
        metadata.missing = metadata.kind == "target" and not store.has_value(node_id)
        return metadata


def progress(ctx: RunContext | None = None) -> dict[str, str]:
    """Status of every target at the end of its latest run (or ``running``)."""
    with _context(ctx) as run_ctx:
        return MetadataStore(FingerprintStore(run_ctx)).progress()


def load(node_id: str, ctx: RunContext | None = None) -> Any:
    """
    Cached value of a built target.

    Raises:
        KeyError: If the target has no cached value
    """
    with _context(ctx) as run_ctx:
        return FingerprintStore(run_ctx).load_value(node_id)


def cached(ctx: RunContext | None = None) -> list[str]:
    """Ids of targets with a cached value."""
    with _context(ctx) as run_ctx:
        return sorted(FingerprintStore(run_ctx).inventory.keys(OBJECTS))


def clean(ids: Iterable[str] | None = None, ctx: RunContext | None = None) -> list[str]:
    """
    Remove cached entries.

    Args:
        ids: Nodes to remove, or None for everything (including the
            file hash memo)

    Returns:
        Ids that had at least one entry removed
    """
    with _context(ctx) as run_ctx:
        if ids is None:
            store = FingerprintStore(run_ctx)
            removed = set()
            for namespace in NAMESPACES:
                removed |= store.inventory.keys(namespace)
            run_ctx.cache.clear()
            run_ctx.hashing.clear_cache()
            return sorted(removed)

        store = FingerprintStore(run_ctx)
        removed_ids = []
        for node_id in ids:
            found = False
            for namespace in (OBJECTS, KERNELS, META, PROGRESS):
                found = store.delete(node_id, namespace) or found
            if found:
                removed_ids.append(node_id)
        return removed_ids
