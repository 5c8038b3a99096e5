"""
Single-target execution under a retry/timeout envelope.

Each attempt runs the target's command in its own daemon thread. The
calling thread polls the attempt's wall-clock time and, where the
platform exposes per-thread CPU clocks, its CPU time. On a breach the
attempt is abandoned: AttemptTimeout is raised asynchronously in the
attempt thread and a TimeoutFailure is recorded. Retries are fresh
attempts with the same per-attempt ceilings.
"""

from __future__ import annotations

import ctypes
import threading
import time
import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..core.context import RunContext
from ..core.exceptions import AttemptTimeout, DroverException, ExecutionFailure, TimeoutFailure
from ..core.interfaces.logger import ILogger
from ..core.models.metadata import ErrorInfo, Timings
from ..core.models.node import Fingerprint, Node, Trigger
from ..core.models.run import Outcome
from .capture import AttemptCapture, capturing
from .fingerprint import FingerprintStore
from .graph import bind_arguments
from .metadata import MetadataStore

POLL_INTERVAL = 0.01


@dataclass(frozen=True)
class Limits:
    """Resolved execution limits of one node."""

    attempts: int
    timeout_cpu: float | None = None
    timeout_elapsed: float | None = None

    @classmethod
    def for_node(cls, node: Node, ctx: RunContext) -> Limits:
        execution = ctx.config.execution
        retries = node.retries if node.retries is not None else execution.retries
        return cls(
            attempts=retries + 1,
            timeout_cpu=node.timeout_cpu if node.timeout_cpu is not None else execution.timeout_cpu,
            timeout_elapsed=(
                node.timeout_elapsed
                if node.timeout_elapsed is not None
                else execution.timeout_elapsed
            ),
        )


@dataclass
class _Attempt:
    """State shared between the caller and one attempt thread."""

    started: threading.Event = field(default_factory=threading.Event)
    done: threading.Event = field(default_factory=threading.Event)
    value: Any = None
    error: BaseException | None = None
    traceback: str | None = None
    capture: AttemptCapture | None = None
    cpu: float = 0.0


def _thread_cpu_clock(thread: threading.Thread) -> int | None:
    getter = getattr(time, "pthread_getcpuclockid", None)
    if getter is None or thread.ident is None:
        return None
    try:
        return getter(thread.ident)
    except OSError:
        return None


def _raise_in_thread(thread: threading.Thread, exc_type: type[BaseException]) -> bool:
    """Schedule exc_type to be raised in another thread. Returns False if it already exited."""
    if thread.ident is None:
        return False
    count = ctypes.pythonapi.PyThreadState_SetAsyncExc(
        ctypes.c_ulong(thread.ident), ctypes.py_object(exc_type)
    )
    if count > 1:
        # Should not happen; undo so no other thread is affected
        ctypes.pythonapi.PyThreadState_SetAsyncExc(ctypes.c_ulong(thread.ident), None)
        return False
    return count == 1


def _error_info(exc: BaseException, tb: str | None = None) -> ErrorInfo:
    message = exc.message if isinstance(exc, DroverException) else str(exc)
    return ErrorInfo(type=type(exc).__name__, message=message, traceback=tb)


class Executor:
    """
    Runs targets and commits their results.

    Example:
        executor = Executor(ctx, store, metadata)
        outcome = executor.run(node, {"a": 1}, attempts_allowed=3,
                               timeout_cpu=None, timeout_elapsed=5.0)
    """

    def __init__(
        self,
        ctx: RunContext,
        store: FingerprintStore,
        metadata: MetadataStore,
        logger: ILogger | None = None,
    ):
        self._ctx = ctx
        self._store = store
        self._metadata = metadata
        self._logger = logger or ctx.logger
        self._backoff = ctx.config.execution.retry_backoff

    def run(
        self,
        node: Node,
        inputs: Mapping[str, Any],
        attempts_allowed: int,
        timeout_cpu: float | None,
        timeout_elapsed: float | None,
    ) -> Outcome:
        """
        Run a target until it succeeds or its attempts are exhausted.

        Args:
            node: Target to run
            inputs: Predecessor values by id
            attempts_allowed: Maximum number of attempts (retries + 1)
            timeout_cpu: CPU-time ceiling per attempt in seconds
            timeout_elapsed: Wall-clock ceiling per attempt in seconds

        Returns:
            Outcome of the final attempt, with its diagnostics only
        """
        attempts_allowed = max(1, attempts_allowed)
        attempt = 0
        while True:
            attempt += 1
            outcome = self._attempt(node, inputs, attempt, timeout_cpu, timeout_elapsed)
            if outcome.success:
                self._logger.debug("Target %s succeeded on attempt %d", node.id, attempt)
                break
            self._logger.debug(
                "Target %s attempt %d/%d failed: %s",
                node.id,
                attempt,
                attempts_allowed,
                outcome.error.message if outcome.error else "?",
            )
            if attempt >= attempts_allowed:
                break
            if self._backoff:
                time.sleep(self._backoff)

        outcome.attempts = attempt
        outcome.timings = outcome.timings.model_copy(update={"attempts": attempt})
        if outcome.success:
            self._fingerprint_result(node, outcome)
        return outcome

    def _attempt(
        self,
        node: Node,
        inputs: Mapping[str, Any],
        number: int,
        timeout_cpu: float | None,
        timeout_elapsed: float | None,
    ) -> Outcome:
        args, kwargs = bind_arguments(node, inputs)
        state = _Attempt()

        def body() -> None:
            try:
                with capturing() as capture:
                    state.capture = capture
                    state.started.set()
                    cpu_start = time.thread_time()
                    try:
                        state.value = node.command(*args, **kwargs)  # type: ignore[misc]
                    finally:
                        state.cpu = time.thread_time() - cpu_start
            except AttemptTimeout:
                pass
            except BaseException as e:  # noqa: BLE001
                state.error = e
                state.traceback = traceback.format_exc()
            finally:
                state.started.set()
                state.done.set()

        thread = threading.Thread(target=body, name=f"drover-{node.id}-{number}", daemon=True)
        started_at = time.time()
        t0 = time.monotonic()
        thread.start()
        state.started.wait()
        clock = _thread_cpu_clock(thread) if timeout_cpu else None

        breach: tuple[str, float] | None = None
        while not state.done.wait(POLL_INTERVAL):
            if timeout_elapsed and time.monotonic() - t0 > timeout_elapsed:
                breach = ("elapsed", timeout_elapsed)
                break
            if clock is not None and timeout_cpu:
                try:
                    used = time.clock_gettime(clock)
                except OSError:
                    clock = None
                    continue
                state.cpu = used
                if used > timeout_cpu:
                    breach = ("cpu", timeout_cpu)
                    break

        elapsed = time.monotonic() - t0
        if breach is None and timeout_cpu and state.cpu > timeout_cpu and state.error is None:
            # No per-thread clock to poll; the ceiling is checked on completion
            breach = ("cpu", timeout_cpu)

        capture = state.capture
        timings = Timings(
            started_at=started_at,
            finished_at=time.time(),
            elapsed=elapsed,
            cpu=state.cpu,
            attempts=number,
        )
        warnings_ = list(capture.warnings) if capture else []
        messages = capture.messages if capture else []

        if breach is not None:
            limit, seconds = breach
            if not state.done.is_set():
                _raise_in_thread(thread, AttemptTimeout)
            failure = TimeoutFailure(
                f"Attempt exceeded the {limit} time limit of {seconds}s",
                limit=limit,
                seconds=seconds,
                node_id=node.id,
                attempt=number,
            )
            self._logger.warning("Target %s timed out (%s > %ss)", node.id, limit, seconds)
            return Outcome(
                node_id=node.id,
                success=False,
                timings=timings,
                error=_error_info(failure),
                warnings=warnings_,
                messages=messages,
            )

        if state.error is not None:
            return Outcome(
                node_id=node.id,
                success=False,
                timings=timings,
                error=_error_info(state.error, state.traceback),
                warnings=warnings_,
                messages=messages,
            )

        return Outcome(
            node_id=node.id,
            success=True,
            value=state.value,
            timings=timings,
            warnings=warnings_,
            messages=messages,
        )

    def _fingerprint_result(self, node: Node, outcome: Outcome) -> None:
        """Fingerprint a successful value and output file; failures are final."""
        try:
            outcome.fingerprint = self._store.value_fingerprint(outcome.value)
            if node.produces_file:
                file_fp = self._store.file_fingerprint(node.output_file)
                if file_fp.is_absent:
                    raise ExecutionFailure(
                        f"Command did not produce output file '{node.output_file}'",
                        node_id=node.id,
                        context={"path": node.output_file},
                    )
                outcome.file_fingerprint = file_fp
        except Exception as e:
            if isinstance(e, DroverException) and not e.recoverable:
                raise
            outcome.success = False
            outcome.value = None
            outcome.error = _error_info(e, traceback.format_exc())

    def build(
        self,
        node: Node,
        inputs: Mapping[str, Any],
        trigger: Trigger,
        fingerprint: Fingerprint,
        dependency_fingerprint: Fingerprint,
    ) -> Outcome:
        """
        Run a target and write its value, kernel and metadata.

        On failure only the diagnostic metadata fields are written.

        Raises:
            BackendError: If the cache cannot be written
        """
        limits = Limits.for_node(node, self._ctx)
        outcome = self.run(node, inputs, limits.attempts, limits.timeout_cpu, limits.timeout_elapsed)

        if outcome.success:
            try:
                self._store.store_value(node.id, outcome.value)
            except DroverException as e:
                if not e.recoverable:
                    raise
                outcome.success = False
                outcome.error = _error_info(e)

        if outcome.success and outcome.fingerprint is not None:
            self._store.store_kernel(node.id, outcome.fingerprint)
            self._metadata.record_success(node, trigger, fingerprint, dependency_fingerprint, outcome)
        else:
            self._metadata.record_failure(node, trigger, outcome)
        return outcome
