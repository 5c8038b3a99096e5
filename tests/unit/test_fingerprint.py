"""
Unit tests for FingerprintStore and function canonicalization.
"""

import functools
import importlib.util
import os
import subprocess
import sys
import threading
from pathlib import Path

import pytest

from drover.core.exceptions import SerializationError
from drover.core.models.node import Fingerprint, Node
from drover.engine.fingerprint import canonical_source, serialize_value

REPO_ROOT = Path(__file__).resolve().parents[2]


def _load_function(path, source, name="step"):
    path.write_text(source)
    spec = importlib.util.spec_from_file_location(path.stem, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return getattr(module, name)


def scale(x, factor):
    return x * factor


class Unreducible:
    def __reduce__(self):
        raise ValueError("cannot reduce")


class CallableStep:
    def __init__(self, offset):
        self.offset = offset

    def __call__(self, x):
        return x + self.offset


class TestValueFingerprints:
    def test_short_and_long(self, store):
        fp = store.value_fingerprint({"a": 1})
        assert len(fp.short) == 16
        assert len(fp.long) == 64  # sha256

    def test_dict_order_does_not_matter(self, store):
        assert store.value_fingerprint({"a": 1, "b": 2}) == store.value_fingerprint(
            {"b": 2, "a": 1}
        )

    def test_type_matters(self, store):
        assert store.value_fingerprint(1) != store.value_fingerprint("1")
        assert store.value_fingerprint([1, 2]) != store.value_fingerprint((1, 2))

    def test_unserializable_value(self, store):
        with pytest.raises(SerializationError):
            store.value_fingerprint(threading.Lock())

    def test_set_order_does_not_matter(self, store):
        assert store.value_fingerprint({"beta", "alpha"}) == store.value_fingerprint(
            {"alpha", "beta"}
        )
        assert store.value_fingerprint({"a"}) != store.value_fingerprint(frozenset({"a"}))

    def test_sets_encode_identically_across_hash_seeds(self):
        script = (
            "from drover.engine.fingerprint import serialize_value\n"
            "tags = {'alpha', 'beta', 'gamma', 'delta', 'epsilon'}\n"
            "print(serialize_value([tags, frozenset(tags), {'k': tags}]).hex())\n"
        )
        outputs = set()
        for seed in ("1", "2", "3"):
            env = dict(os.environ, PYTHONHASHSEED=seed, PYTHONPATH=str(REPO_ROOT))
            result = subprocess.run(
                [sys.executable, "-c", script],
                env=env,
                capture_output=True,
                text=True,
                check=True,
            )
            outputs.add(result.stdout.strip())
        assert len(outputs) == 1

    def test_pickling_errors_become_serialization_errors(self):
        with pytest.raises(SerializationError):
            serialize_value(Unreducible())

    def test_deep_nesting_becomes_serialization_error(self):
        nested: list = []
        for _ in range(100_000):
            nested = [nested]
        with pytest.raises(SerializationError):
            serialize_value(nested)


class TestFunctionFingerprints:
    def test_reformatting_is_not_a_change(self, store, tmp_path):
        compact = _load_function(tmp_path / "compact.py", "def step(x):\n    return x+1\n")
        spaced = _load_function(
            tmp_path / "spaced.py",
            "def step(x):\n    # add one\n\n    return (x + 1)\n",
        )
        assert store.function_fingerprint(compact) == store.function_fingerprint(spaced)

    def test_body_change_is_a_change(self, store, tmp_path):
        one = _load_function(tmp_path / "one.py", "def step(x):\n    return x + 1\n")
        two = _load_function(tmp_path / "two.py", "def step(x):\n    return x + 2\n")
        assert store.function_fingerprint(one) != store.function_fingerprint(two)

    def test_lambdas(self, store):
        assert store.function_fingerprint(lambda a: a + 1) != store.function_fingerprint(
            lambda a: a + 2
        )

    def test_partial_arguments_count(self, store):
        assert store.function_fingerprint(functools.partial(scale, factor=2)) != (
            store.function_fingerprint(functools.partial(scale, factor=3))
        )

    def test_builtin(self):
        assert canonical_source(len) == "builtin:builtins.len"

    def test_callable_instance_state_counts(self, store):
        assert store.function_fingerprint(CallableStep(1)) != store.function_fingerprint(
            CallableStep(2)
        )


class TestFileFingerprints:
    def test_missing_file_is_absent(self, store):
        assert store.file_fingerprint("nope.txt") is Fingerprint.ABSENT

    def test_relative_paths_resolve_against_root(self, store, run_ctx):
        (run_ctx.root / "data.txt").write_text("hello")
        assert store.file_fingerprint("data.txt") == store.file_fingerprint(
            str(run_ctx.root / "data.txt")
        )

    def test_same_size_rewrite_is_detected(self, store, tmp_path):
        """Entries recorded within the racy window are re-hashed."""
        path = tmp_path / "data.txt"
        path.write_text("aaaa")
        first = store.file_fingerprint(str(path))
        path.write_text("bbbb")
        assert store.file_fingerprint(str(path)) != first


class TestNodeFingerprints:
    def test_dependency_fingerprint_is_order_independent(self, store):
        node = Node.target("t", lambda a, b: a, ["a", "b"])
        current = {"a": store.value_fingerprint(1), "b": store.value_fingerprint(2)}
        reordered = dict(reversed(list(current.items())))
        assert store.dependency_fingerprint_of(node, current) == store.dependency_fingerprint_of(
            node, reordered
        )

    def test_missing_predecessor_counts_as_absent(self, store):
        node = Node.target("t", lambda a: a, ["a"])
        assert store.dependency_fingerprint_of(node, {}) == store.dependency_fingerprint_of(
            node, {"a": Fingerprint.ABSENT}
        )

    def test_function_import_includes_its_imports(self, store):
        helper = Node.import_function("helper", scale, ["factor"])
        first = store.fingerprint_of(helper, {"factor": store.value_fingerprint(2)})
        second = store.fingerprint_of(helper, {"factor": store.value_fingerprint(3)})
        assert first != second

    def test_fingerprinting_does_not_write(self, store, run_ctx):
        store.fingerprint_of(Node.import_object("a", 1))
        for namespace in ("objects", "kernels", "meta", "progress"):
            assert run_ctx.cache.list_keys(namespace) == []
