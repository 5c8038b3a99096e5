"""
Unit tests for the Scheduler and the make/outdated entry points.

Covers rebuild decisions across runs, failure propagation, keep-going,
parallel execution and run aborts on cache failure.
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError

from drover.core.exceptions import BackendUnavailableError, PlanError
from drover.core.models.node import Node
from drover.engine import api
from drover.engine.graph import DependencyGraph
from drover.engine.scheduler import UPSTREAM_VALUE_UNAVAILABLE, Scheduler


def add_one(A):
    return A + 1


def parity(a):
    return a % 2


def describe(p):
    return f"parity={p}"


def times_ten(E_input):
    return E_input * 10


def times_twenty(E_input):
    return E_input * 20


class Unreducible:
    def __reduce__(self):
        raise ValueError("cannot reduce")


def make_unreducible():
    return Unreducible()


def count_tags(tags):
    return len(tags)


def plan_ab(a_value):
    return [Node.import_object("A", a_value), Node.target("B", add_one, ["A"])]


class TestIncrementalRuns:
    def test_first_run_builds_then_rebuilds_on_import_change(self, run_ctx):
        report = api.make(plan_ab(1), run_ctx)
        assert report.built == ["B"]
        assert api.load("B", run_ctx) == 2

        assert api.outdated(plan_ab(5), run_ctx) == ["B"]
        report = api.make(plan_ab(5), run_ctx)
        assert report.built == ["B"]
        assert report.reasons["B"] == "depends"
        assert api.load("B", run_ctx) == 6

    def test_set_import_is_stable_across_equal_values(self, run_ctx):
        def plan(tags):
            return [Node.import_object("tags", tags), Node.target("n", count_tags, ["tags"])]

        api.make(plan({"alpha", "beta", "gamma"}), run_ctx)
        report = api.make(plan({"gamma", "beta", "alpha"}), run_ctx)
        assert report.built == []
        assert report.skipped == ["n"]

    def test_second_run_is_a_no_op(self, run_ctx):
        api.make(plan_ab(1), run_ctx)
        report = api.make(plan_ab(1), run_ctx)
        assert report.built == []
        assert report.skipped == ["B"]
        assert api.outdated(plan_ab(1), run_ctx) == []

    def test_unchanged_value_stops_propagation(self, run_ctx):
        def plan(a):
            return [
                Node.import_object("a", a),
                Node.target("p", parity, ["a"]),
                Node.target("d", describe, ["p"]),
            ]

        api.make(plan(1), run_ctx)
        report = api.make(plan(3), run_ctx)
        assert report.built == ["p"]
        assert report.skipped == ["d"]
        assert api.load("d", run_ctx) == "parity=1"

    def test_changed_value_propagates(self, run_ctx):
        def plan(a):
            return [
                Node.import_object("a", a),
                Node.target("p", parity, ["a"]),
                Node.target("d", describe, ["p"]),
            ]

        api.make(plan(1), run_ctx)
        report = api.make(plan(2), run_ctx)
        assert report.built == ["p", "d"]
        assert api.load("d", run_ctx) == "parity=0"

    def test_outdated_includes_downstream_of_stale(self, run_ctx):
        def plan(a):
            return [
                Node.import_object("a", a),
                Node.target("p", parity, ["a"]),
                Node.target("d", describe, ["p"]),
            ]

        api.make(plan(1), run_ctx)
        assert api.outdated(plan(3), run_ctx) == ["p", "d"]

    def test_command_trigger_override(self, run_ctx):
        def plan(value, command):
            return [
                Node.import_object("E_input", value),
                Node.target("E", command, ["E_input"], trigger="command"),
            ]

        api.make(plan(1, times_ten), run_ctx)
        assert api.make(plan(2, times_ten), run_ctx).built == []
        report = api.make(plan(2, times_twenty), run_ctx)
        assert report.built == ["E"]
        assert report.reasons["E"] == "command"
        assert api.load("E", run_ctx) == 40

    def test_force(self, run_ctx):
        api.make(plan_ab(1), run_ctx)
        report = api.make(plan_ab(1), run_ctx, force=["B"])
        assert report.built == ["B"]
        assert report.reasons["B"] == "forced"

    def test_force_unknown_node(self, run_ctx):
        with pytest.raises(PlanError):
            api.make(plan_ab(1), run_ctx, force=["nope"])

    def test_self_reference_is_ignored(self, run_ctx):
        plan = [Node.import_object("a", 1), Node.target("s", lambda a: a * 3, ["s", "a"])]
        report = api.make(plan, run_ctx)
        assert report.success
        assert api.load("s", run_ctx) == 3

    def test_targets_restrict_the_run(self, run_ctx):
        plan = [
            Node.import_object("a", 1),
            Node.target("x", lambda a: a + 1, ["a"]),
            Node.target("y", lambda a: a + 2, ["a"]),
        ]
        report = api.make(plan, run_ctx, targets=["x"])
        assert report.built == ["x"]
        assert "y" not in report.statuses

    def test_file_import(self, run_ctx):
        data = run_ctx.root / "input.txt"
        data.write_text("one")

        def read_upper(source):
            with open(source) as f:
                return f.read().upper()

        plan = [Node.import_file("source", "input.txt"), Node.target("upper", read_upper, ["source"])]
        api.make(plan, run_ctx)
        assert api.load("upper", run_ctx) == "ONE"

        data.write_text("two, longer")
        report = api.make(plan, run_ctx)
        assert report.built == ["upper"]
        assert api.load("upper", run_ctx) == "TWO, LONGER"


class TestFailures:
    def test_failure_propagates_downstream(self, make_ctx):
        ctx = make_ctx(execution={"retries": 1})
        attempts = []

        def always_fails():
            attempts.append(1)
            raise RuntimeError("C is broken")

        downstream = []

        def uses_c(C):
            downstream.append(C)
            return C

        plan = [
            Node.target("C", always_fails),
            Node.target("D", uses_c, ["C"]),
            Node.target("F", lambda: "independent"),
        ]
        report = api.make(plan, ctx)

        assert len(attempts) == 2
        assert downstream == []
        assert report.failed == ["C", "D"]
        assert report.reasons["D"] == "upstream failure"
        assert report.built == ["F"]
        assert not report.success

        meta = api.diagnose("C", ctx)
        assert meta.status == "failed"
        assert meta.error.message == "C is broken"
        assert meta.missing is True
        assert api.progress(ctx) == {"C": "failed", "D": "failed", "F": "done"}

    def test_keep_going_without_last_good_value(self, make_ctx):
        ctx = make_ctx(execution={"keep_going": True})

        def broken():
            raise RuntimeError("no")

        plan = [Node.target("C", broken), Node.target("D", lambda C: C, ["C"])]
        report = api.make(plan, ctx)
        assert report.failed == ["C", "D"]
        assert report.reasons["D"] == UPSTREAM_VALUE_UNAVAILABLE

    def test_keep_going_uses_last_good_value(self, make_ctx):
        ctx = make_ctx(execution={"keep_going": True})
        state = {"fail": False}

        def sometimes():
            if state["fail"]:
                raise RuntimeError("flaky upstream")
            return 10

        plan = [
            Node.target("C", sometimes, trigger="always"),
            Node.target("D", lambda C: C + 1, ["C"]),
        ]
        api.make(plan, ctx)

        state["fail"] = True
        report = api.make(plan, ctx, force=["D"])
        assert report.failed == ["C"]
        assert report.built == ["D"]
        assert api.load("D", ctx) == 11
        assert api.load("C", ctx) == 10

    def test_unserializable_value_fails_only_its_target(self, run_ctx):
        plan = [
            Node.target("bad", make_unreducible),
            Node.target("ok", lambda: 1),
        ]
        report = api.make(plan, run_ctx)
        assert report.failed == ["bad"]
        assert report.built == ["ok"]
        assert api.diagnose("bad", run_ctx).error.type == "SerializationError"

    def test_unfingerprintable_import_fails_its_dependents(self, run_ctx):
        plan = [
            Node.import_object("lock", threading.Lock()),
            Node.target("t", lambda lock: 1, ["lock"]),
        ]
        report = api.make(plan, run_ctx)
        assert report.failed == ["lock", "t"]
        assert report.reasons["t"] == "upstream failure"


class TestParallelism:
    def test_independent_targets_run_concurrently(self, make_ctx):
        ctx = make_ctx(execution={"jobs": 2})
        barrier = threading.Barrier(2, timeout=5)

        def left():
            barrier.wait()
            return "left"

        def right():
            barrier.wait()
            return "right"

        report = api.make([Node.target("left", left), Node.target("right", right)], ctx)
        assert report.success
        assert sorted(report.built) == ["left", "right"]

    def test_successor_sees_committed_predecessor(self, make_ctx):
        ctx = make_ctx(execution={"jobs": 4})
        plan = [Node.import_object("seed", 1)]
        for i in range(6):
            plan.append(Node.target(f"n{i}", lambda seed, i=i: seed + i, ["seed"]))
        plan.append(
            Node.target("total", lambda **parts: sum(parts.values()), [f"n{i}" for i in range(6)])
        )
        report = api.make(plan, ctx)
        assert report.success
        assert api.load("total", ctx) == 6 + 15


class TestMemory:
    def test_lookahead_releases_consumed_values(self, run_ctx):
        graph = DependencyGraph(
            [
                Node.import_object("a", 1),
                Node.target("b", lambda a: a + 1, ["a"]),
                Node.target("c", lambda b: b + 1, ["b"]),
            ]
        )
        scheduler = Scheduler(run_ctx, graph)
        scheduler.run()
        assert "b" not in scheduler.memory.loaded
        assert scheduler.memory.load("b") == 2


class TestBackendFailure:
    def test_cache_failure_aborts_the_run(self, run_ctx, monkeypatch):
        graph = DependencyGraph([Node.target("t", lambda: 1)])
        scheduler = Scheduler(run_ctx, graph)

        def unavailable(*args, **kwargs):
            raise BackendUnavailableError("disk gone")

        monkeypatch.setattr(scheduler.store, "store_value", unavailable)
        with pytest.raises(BackendUnavailableError) as exc_info:
            scheduler.run()
        assert exc_info.value.exit_code == 3
        assert "in_progress" in exc_info.value.context

    def test_hash_cache_failure_aborts_the_run(self, run_ctx, monkeypatch):
        (run_ctx.root / "input.txt").write_text("data")
        graph = DependencyGraph(
            [
                Node.import_file("source", "input.txt"),
                Node.target("t", lambda source: source, ["source"]),
            ]
        )

        def broken_session():
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(run_ctx.db.hash_cache, "_session_factory", broken_session)
        with pytest.raises(BackendUnavailableError) as exc_info:
            Scheduler(run_ctx, graph).run()
        assert exc_info.value.context["in_progress"] == []
