"""
Unit tests for the library entry points: diagnose, load, cached, clean.
"""

import pytest

from drover.core.models.node import Node, NodeSpec
from drover.core.exceptions import PlanError
from drover.engine import api


def double(a):
    return a * 2


@pytest.fixture
def built(run_ctx):
    plan = [Node.import_object("a", 4), Node.target("b", double, ["a"])]
    api.make(plan, run_ctx)
    return plan


def test_diagnose(run_ctx, built):
    meta = api.diagnose("b", run_ctx)
    assert meta.status == "built"
    assert meta.missing is False
    assert "def double" in meta.command
    assert meta.timings.attempts == 1
    assert api.diagnose("unknown", run_ctx) is None


def test_cached(run_ctx, built):
    assert api.cached(run_ctx) == ["b"]


def test_clean_one_node(run_ctx, built):
    assert api.clean(["b", "unknown"], run_ctx) == ["b"]
    with pytest.raises(KeyError):
        api.load("b", run_ctx)
    assert api.outdated(built, run_ctx) == ["b"]


def test_clean_everything(run_ctx, built):
    removed = api.clean(ctx=run_ctx)
    assert "b" in removed
    assert api.cached(run_ctx) == []
    assert api.progress(run_ctx) == {}


def test_node_specs_resolve_against_commands(run_ctx):
    plan = [
        NodeSpec(id="a", kind="import-object", value=3),
        NodeSpec(id="b", command="double", predecessors=["a"]),
    ]
    report = api.make(plan, run_ctx, commands={"double": double})
    assert report.built == ["b"]
    assert api.load("b", run_ctx) == 6


def test_node_spec_with_unknown_command(run_ctx):
    with pytest.raises(PlanError, match="not registered"):
        api.make([NodeSpec(id="b", command="missing")], run_ctx)


def test_make_opens_its_own_context(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    report = api.make([Node.target("t", lambda: 1)])
    assert report.built == ["t"]
    assert (tmp_path / ".drover" / "cache.db").exists()
    assert api.load("t") == 1
