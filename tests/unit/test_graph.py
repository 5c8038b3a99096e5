"""
Unit tests for DependencyGraph validation and queries.
"""

import pytest

from drover.core.exceptions import CyclicDependencyError, PlanError
from drover.core.models.node import Node
from drover.engine.graph import DependencyGraph, bind_arguments


def add(a, b):
    return a + b


def passthrough(x):
    return x


class TestValidation:
    """Plans are validated once, before anything runs."""

    def test_duplicate_id_is_rejected(self):
        with pytest.raises(PlanError, match="Duplicate"):
            DependencyGraph([Node.import_object("a", 1), Node.import_object("a", 2)])

    def test_unknown_predecessor_is_rejected(self):
        with pytest.raises(PlanError) as exc_info:
            DependencyGraph([Node.target("b", passthrough, ["x"])])
        assert exc_info.value.context["node_id"] == "b"

    def test_unbindable_parameter_is_rejected(self):
        """A required parameter must name a predecessor."""
        with pytest.raises(PlanError, match="'b'"):
            DependencyGraph([Node.import_object("a", 1), Node.target("sum", add, ["a"])])

    def test_parameters_with_defaults_need_no_predecessor(self):
        def scaled(a, factor=2):
            return a * factor

        graph = DependencyGraph([Node.import_object("a", 1), Node.target("s", scaled, ["a"])])
        assert "s" in graph

    def test_cycle_is_rejected(self):
        plan = [
            Node.target("x", lambda y: y, ["y"]),
            Node.target("y", lambda x: x, ["x"]),
        ]
        with pytest.raises(CyclicDependencyError) as exc_info:
            DependencyGraph(plan)
        assert exc_info.value.context["nodes"] == ["x", "y"]

    def test_self_reference_is_pruned(self):
        graph = DependencyGraph(
            [Node.import_object("a", 1), Node.target("s", lambda a: a, ["s", "a"])]
        )
        assert graph.predecessors("s") == frozenset({"a"})
        assert graph.successors("s") == frozenset()

    def test_configuration_errors_are_fatal(self):
        with pytest.raises(PlanError) as exc_info:
            DependencyGraph([Node.import_object("a", 1), Node.import_object("a", 1)])
        assert exc_info.value.recoverable is False
        assert exc_info.value.exit_code == 2


class TestQueries:
    """Ordering and reachability."""

    @pytest.fixture
    def diamond(self):
        return DependencyGraph(
            [
                Node.target("d", lambda b, c: b + c, ["b", "c"]),
                Node.target("c", lambda a: a * 2, ["a"]),
                Node.target("b", lambda a: a + 1, ["a"]),
                Node.import_object("a", 1),
            ]
        )

    def test_topological_order_is_stable(self, diamond):
        assert diamond.topological_order() == ["a", "b", "c", "d"]

    def test_descendants_and_ancestors(self, diamond):
        assert diamond.descendants("a") == {"b", "c", "d"}
        assert diamond.descendants("b") == {"d"}
        assert diamond.ancestors("d") == {"a", "b", "c"}

    def test_targets_exclude_imports(self, diamond):
        assert [n.id for n in diamond.targets] == ["b", "c", "d"]

    def test_subgraph_keeps_ancestors_only(self, diamond):
        sub = diamond.subgraph(["b"])
        assert sub.ids == ["a", "b"]

    def test_subgraph_unknown_target(self, diamond):
        with pytest.raises(PlanError):
            diamond.subgraph(["nope"])

    def test_unknown_node_lookup(self, diamond):
        with pytest.raises(PlanError):
            diamond.node("nope")


class TestBindArguments:
    """Predecessor values are passed by parameter name."""

    def test_binds_by_name(self):
        node = Node.target("sum", add, ["a", "b"])
        args, kwargs = bind_arguments(node, {"a": 1, "b": 2})
        assert args == ()
        assert kwargs == {"a": 1, "b": 2}

    def test_var_keyword_receives_remaining(self):
        def collect(a, **rest):
            return a, rest

        node = Node.target("c", collect, ["a", "b", "not-an-identifier"])
        args, kwargs = bind_arguments(node, {"a": 1, "b": 2, "not-an-identifier": 3})
        assert kwargs == {"a": 1, "b": 2}

    def test_positional_only(self):
        def first(a, /):
            return a

        node = Node.target("f", first, ["a"])
        args, kwargs = bind_arguments(node, {"a": 7})
        assert args == (7,)
        assert kwargs == {}
