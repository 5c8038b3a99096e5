"""
Unit tests for the Executor retry/timeout envelope.
"""

import threading
import time
import warnings

import pytest

from drover.core.models.node import Node, Trigger
from drover.engine.executor import Executor, Limits
from drover.engine.metadata import MetadataStore


@pytest.fixture
def metadata(store):
    return MetadataStore(store)


@pytest.fixture
def executor(run_ctx, store, metadata):
    return Executor(run_ctx, store, metadata)


class Flaky:
    """Fails until the given attempt number, counting calls."""

    def __init__(self, succeed_on):
        self.calls = 0
        self.succeed_on = succeed_on

    def __call__(self):
        self.calls += 1
        print(f"attempt {self.calls}")
        warnings.warn(f"attempt {self.calls} is flaky", UserWarning, stacklevel=1)
        if self.calls < self.succeed_on:
            raise RuntimeError(f"boom {self.calls}")
        return self.calls


class TestRetries:
    def test_success_first_time(self, executor):
        node = Node.target("t", lambda: 42)
        outcome = executor.run(node, {}, attempts_allowed=3, timeout_cpu=None, timeout_elapsed=None)
        assert outcome.success
        assert outcome.value == 42
        assert outcome.attempts == 1
        assert outcome.fingerprint is not None

    def test_retry_until_success(self, executor):
        command = Flaky(succeed_on=2)
        outcome = executor.run(
            Node.target("t", command), {}, attempts_allowed=3, timeout_cpu=None, timeout_elapsed=None
        )
        assert outcome.success
        assert command.calls == 2
        assert outcome.attempts == 2

    def test_attempts_are_bounded(self, executor):
        command = Flaky(succeed_on=10)
        outcome = executor.run(
            Node.target("t", command), {}, attempts_allowed=2, timeout_cpu=None, timeout_elapsed=None
        )
        assert not outcome.success
        assert command.calls == 2
        assert outcome.error.type == "RuntimeError"
        assert outcome.error.message == "boom 2"
        assert "Traceback" in outcome.error.traceback

    def test_only_final_attempt_diagnostics_are_kept(self, executor):
        command = Flaky(succeed_on=3)
        outcome = executor.run(
            Node.target("t", command), {}, attempts_allowed=3, timeout_cpu=None, timeout_elapsed=None
        )
        assert outcome.messages == ["attempt 3"]
        assert outcome.warnings == ["UserWarning: attempt 3 is flaky"]

    def test_inputs_are_bound(self, executor):
        node = Node.target("t", lambda a, b: a - b, ["a", "b"])
        outcome = executor.run(node, {"a": 5, "b": 3}, 1, None, None)
        assert outcome.value == 2


class TestTimeouts:
    def test_elapsed_timeout_counts_as_failed_attempt(self, executor):
        starts = []

        def slow():
            starts.append(time.monotonic())
            for _ in range(500):
                time.sleep(0.01)
            return "too late"

        outcome = executor.run(
            Node.target("t", slow), {}, attempts_allowed=3, timeout_cpu=None, timeout_elapsed=0.2
        )
        assert not outcome.success
        assert len(starts) == 3
        assert outcome.attempts == 3
        assert outcome.error.type == "TimeoutFailure"
        assert "elapsed" in outcome.error.message

    def test_cpu_timeout(self, executor):
        def spin():
            deadline = time.monotonic() + 5
            total = 0
            while time.monotonic() < deadline:
                total += 1
            return total

        outcome = executor.run(
            Node.target("t", spin), {}, attempts_allowed=1, timeout_cpu=0.2, timeout_elapsed=None
        )
        assert not outcome.success
        assert outcome.error.type == "TimeoutFailure"
        assert "cpu" in outcome.error.message
        assert outcome.timings.cpu > 0.2

    def test_timeout_does_not_affect_fast_commands(self, executor):
        outcome = executor.run(Node.target("t", lambda: 1), {}, 1, 5.0, 5.0)
        assert outcome.success


class TestBuild:
    def test_build_commits_value_kernel_and_metadata(self, executor, store, metadata):
        node = Node.target("t", lambda: {"x": 1})
        fingerprint = store.fingerprint_of(node)
        deps = store.digest(b"")
        outcome = executor.build(node, {}, Trigger.ANY, fingerprint, deps)

        assert outcome.success
        assert store.load_value("t") == {"x": 1}
        assert store.load_kernel("t") == store.value_fingerprint({"x": 1})
        meta = metadata.get("t")
        assert meta.status == "built"
        assert meta.fingerprint == fingerprint.long
        assert meta.dependency_fingerprint == deps.long

    def test_failed_build_keeps_last_good_fields(self, executor, store, metadata):
        good = Node.target("t", lambda: 1)
        executor.build(good, {}, Trigger.ANY, store.fingerprint_of(good), store.digest(b""))
        recorded = metadata.get("t").fingerprint

        def broken():
            raise ValueError("nope")

        bad = Node.target("t", broken)
        outcome = executor.build(bad, {}, Trigger.ANY, store.fingerprint_of(bad), store.digest(b""))

        assert not outcome.success
        meta = metadata.get("t")
        assert meta.status == "failed"
        assert meta.error.message == "nope"
        assert meta.fingerprint == recorded
        assert store.load_value("t") == 1

    def test_missing_output_file_fails(self, executor, store):
        node = Node.target("t", lambda: None, output_file="never-written.txt")
        outcome = executor.build(node, {}, Trigger.ANY, store.fingerprint_of(node), store.digest(b""))
        assert not outcome.success
        assert "did not produce" in outcome.error.message

    def test_unpicklable_value_fails(self, executor, store):
        def make_lock():
            return threading.Lock()

        node = Node.target("t", make_lock)
        outcome = executor.build(node, {}, Trigger.ANY, store.fingerprint_of(node), store.digest(b""))
        assert not outcome.success
        assert outcome.error.type == "SerializationError"


class TestLimits:
    def test_node_overrides_config(self, make_ctx):
        ctx = make_ctx(execution={"retries": 1, "timeout_elapsed": 10})
        node = Node.target("t", lambda: 1, retries=3)
        limits = Limits.for_node(node, ctx)
        assert limits.attempts == 4
        assert limits.timeout_elapsed == 10
        assert limits.timeout_cpu is None
