"""
Scheduler for a plan run.

Walks the dependency graph on the calling thread, resolving imports and
deciding staleness of each target as soon as its predecessors have
settled, and hands stale targets to a bounded thread pool. A target is
only evaluated after every predecessor's result has been committed, so
a rebuilt predecessor is always visible to its successors' ``depends``
check.
"""

from __future__ import annotations

import heapq
import time
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any

from ..core.context import RunContext
from ..core.exceptions import BackendError, FingerprintError
from ..core.interfaces.logger import ILogger
from ..core.models.metadata import ErrorInfo
from ..core.models.node import Fingerprint, Node, NodeKind, Trigger
from ..core.models.run import UPSTREAM_FAILURE, NodeStatus, Outcome, RunReport
from .executor import Executor
from .fingerprint import FingerprintStore
from .graph import DependencyGraph
from .memory import RunMemory
from .metadata import MetadataStore
from .staleness import StalenessEvaluator, effective_trigger

UPSTREAM_VALUE_UNAVAILABLE = "upstream value unavailable"


def import_value(node: Node, ctx: RunContext) -> Any:
    """Value an import passes to the commands that depend on it. File paths are resolved."""
    if node.kind is NodeKind.IMPORT_FILE:
        return str(ctx.resolve_path(node.path))  # type: ignore[arg-type]
    if node.kind is NodeKind.IMPORT_FUNCTION:
        return node.func
    return node.value


class Scheduler:
    """
    Runs the stale part of a plan.

    Example:
        with RunContext.open() as ctx:
            report = Scheduler(ctx, DependencyGraph(plan)).run()
            report.built     # targets rebuilt this run
            report.skipped   # targets already up to date
    """

    def __init__(
        self,
        ctx: RunContext,
        graph: DependencyGraph,
        logger: ILogger | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            ctx: Run context (config, cache, logger)
            graph: Validated plan graph
            logger: Logger override (defaults to ctx.logger)
        """
        self._ctx = ctx
        self._graph = graph
        self._logger = logger or ctx.logger
        self._config = ctx.config.execution

        self.store = FingerprintStore(ctx)
        self.metadata = MetadataStore(self.store)
        self.evaluator = StalenessEvaluator(self.store, ctx.config)
        self.executor = Executor(ctx, self.store, self.metadata, self._logger)
        self.memory = RunMemory(self.store, graph, self._config.memory_strategy)

        self.status: dict[str, NodeStatus] = {nid: NodeStatus.PENDING for nid in graph.ids}
        self.report = RunReport()
        self._current: dict[str, Fingerprint] = {}
        self._reasons: dict[str, str] = {}
        self._waiting: dict[str, set[str]] = {n.id: set(n.predecessors) for n in graph}
        self._ready: list[str] = []

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, force: Iterable[str] = ()) -> RunReport:
        """
        Build every stale target in dependency order.

        Args:
            force: Node ids to rebuild regardless of their trigger

        Returns:
            RunReport with the final status of every target

        Raises:
            BackendError: If the cache fails; running attempts are awaited
                and reported as in progress before the error propagates
        """
        forced = set(force)
        for nid in forced:
            self._graph.node(nid)

        started = time.monotonic()
        for nid, preds in self._waiting.items():
            if not preds:
                heapq.heappush(self._ready, nid)

        running: dict[Future[Outcome], str] = {}
        pool = ThreadPoolExecutor(max_workers=self._config.jobs, thread_name_prefix="drover")
        try:
            while self._ready or running:
                while self._ready:
                    nid = heapq.heappop(self._ready)
                    future = self._dispatch(nid, nid in forced, pool)
                    if future is not None:
                        running[future] = nid

                if not running:
                    continue

                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda f: running[f]):
                    nid = running.pop(future)
                    self._finish(nid, future.result())
        except BackendError as e:
            self._logger.error("Aborting run: %s", e)
            for future in running:
                future.cancel()
            pool.shutdown(wait=True, cancel_futures=True)
            self.report.in_progress = sorted(
                nid for future, nid in running.items() if not future.cancelled()
            )
            self.report.duration = time.monotonic() - started
            e.context.setdefault("in_progress", self.report.in_progress)
            raise
        finally:
            pool.shutdown(wait=True)

        self.report.duration = time.monotonic() - started
        self._logger.info(
            "Run finished: %d built, %d skipped, %d failed",
            len(self.report.built),
            len(self.report.skipped),
            len(self.report.failed),
        )
        return self.report

    def _settle(self, nid: str, status: NodeStatus, reason: str | None = None) -> None:
        self.status[nid] = status
        node = self._graph.node(nid)
        if node.is_target or status is NodeStatus.FAILED:
            self.report.record(nid, status, reason)
        if node.is_target:
            self.metadata.set_progress(nid, status.value)
        self.memory.settle(nid)
        for succ in sorted(self._graph.successors(nid)):
            waiting = self._waiting[succ]
            waiting.discard(nid)
            if not waiting and self.status[succ] is NodeStatus.PENDING:
                self.status[succ] = NodeStatus.READY
                heapq.heappush(self._ready, succ)

    def _fail(self, node: Node, trigger: Trigger, error: ErrorInfo) -> None:
        """Record a failure that happened before the target could run."""
        self.metadata.record_failure(
            node, trigger, Outcome(node_id=node.id, success=False, error=error)
        )
        self._current_last_good(node.id)
        self._settle(node.id, NodeStatus.FAILED, error.message)

    def _current_last_good(self, nid: str) -> None:
        kernel = self.store.load_kernel(nid)
        if kernel is not None:
            self._current[nid] = kernel

    def _dispatch(self, nid: str, forced: bool, pool: ThreadPoolExecutor) -> Future[Outcome] | None:
        """Resolve an import or evaluate a target; return a future if it must run."""
        node = self._graph.node(nid)
        failed = sorted(p for p in node.predecessors if self.status[p] is NodeStatus.FAILED)
        if failed and not self._config.keep_going:
            self._logger.info("Skipping %s: upstream failure in %s", nid, ", ".join(failed))
            self._settle(nid, NodeStatus.FAILED, UPSTREAM_FAILURE)
            return None

        if node.is_import:
            self._resolve_import(node)
            return None

        trigger = effective_trigger(node, self._ctx.config)
        try:
            fingerprint = self.store.fingerprint_of(node)
            dependency = self.store.dependency_fingerprint_of(node, self._current)
            decision = self.evaluator.decide(
                node, self.metadata.get(nid), fingerprint, dependency, forced=forced
            )
        except FingerprintError as e:
            self._logger.warning("Cannot fingerprint %s: %s", nid, e)
            self._fail(node, trigger, ErrorInfo(type=type(e).__name__, message=e.message))
            return None

        if not decision.stale:
            kernel = self.store.load_kernel(nid)
            if kernel is not None:
                self._current[nid] = kernel
                self._logger.debug("Target %s is up to date", nid)
                self._settle(nid, NodeStatus.SKIPPED)
                return None
            decision = decision.model_copy(update={"stale": True, "reason": "missing"})

        try:
            inputs = self.memory.inputs_for(nid)
        except KeyError as e:
            self._logger.warning("Cannot build %s: no value for %s", nid, e)
            self._fail(
                node,
                trigger,
                ErrorInfo(type="ExecutionFailure", message=UPSTREAM_VALUE_UNAVAILABLE),
            )
            return None

        self._logger.info("Building %s (%s)", nid, decision.reason)
        self._reasons[nid] = decision.reason or ""
        self.status[nid] = NodeStatus.RUNNING
        self.metadata.set_progress(nid, NodeStatus.RUNNING.value)
        return pool.submit(self.executor.build, node, inputs, trigger, fingerprint, dependency)

    def _resolve_import(self, node: Node) -> None:
        try:
            fingerprint = self.store.fingerprint_of(node, self._current)
        except FingerprintError as e:
            self._logger.warning("Cannot fingerprint import %s: %s", node.id, e)
            self._settle(node.id, NodeStatus.FAILED, e.message)
            return
        self._current[node.id] = fingerprint
        self.memory.put(node.id, import_value(node, self._ctx))
        self.metadata.record_import(node, fingerprint)
        self._settle(node.id, NodeStatus.DONE)

    def _finish(self, nid: str, outcome: Outcome) -> None:
        if outcome.success and outcome.fingerprint is not None:
            self._current[nid] = outcome.fingerprint
            self.memory.put(nid, outcome.value)
            self._settle(nid, NodeStatus.DONE, self._reasons.get(nid))
            return

        message = outcome.error.message if outcome.error else "failed"
        self._logger.warning("Target %s failed after %d attempt(s): %s", nid, outcome.attempts, message)
        self._current_last_good(nid)
        self._settle(nid, NodeStatus.FAILED, message)

    # -------------------------------------------------------------------------
    # Dry run
    # -------------------------------------------------------------------------

    def outdated(self) -> list[str]:
        """
        Targets a run would rebuild, without building anything.

        A target downstream of an outdated target is itself outdated.
        """
        current: dict[str, Fingerprint] = {}
        stale: set[str] = set()
        for node in self._graph:
            if node.predecessors & stale:
                stale.add(node.id)
                continue
            try:
                if node.is_import:
                    current[node.id] = self.store.fingerprint_of(node, current)
                    continue
                decision = self.evaluator.decide(
                    node,
                    self.metadata.get(node.id),
                    self.store.fingerprint_of(node),
                    self.store.dependency_fingerprint_of(node, current),
                )
            except FingerprintError as e:
                self._logger.debug("Cannot fingerprint %s: %s", node.id, e)
                stale.add(node.id)
                continue
            kernel = None if decision.stale else self.store.load_kernel(node.id)
            if kernel is None:
                stale.add(node.id)
            else:
                current[node.id] = kernel
        return [nid for nid in self._graph.ids if nid in stale and self._graph.node(nid).is_target]
