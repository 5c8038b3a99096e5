"""
Content fingerprints for plan nodes.

FingerprintStore computes short/long fingerprint pairs for values, files
and functions, and is the engine's single gateway to the cache backend:
every get/put/exists by (key, namespace) goes through it so the run's
Inventory stays current.

Computing a fingerprint never changes build state. File digests are
memoized in the hash cache, which only records file content.
"""

from __future__ import annotations

import ast
import functools
import hashlib
import inspect
import json
import pickle
import textwrap
import types
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..core.context import RunContext
from ..core.exceptions import CorruptEntryError, SerializationError
from ..core.interfaces.cache import KERNELS, OBJECTS
from ..core.models.node import Fingerprint, Node, NodeKind
from .inventory import Inventory

PICKLE_PROTOCOL = 4

_JSON_SCALARS = (str, int, float, bool, type(None))


def _frame(tag: bytes, parts: Iterable[bytes]) -> bytes:
    parts = list(parts)
    body = b"".join(len(part).to_bytes(8, "big") + part for part in parts)
    return tag + len(parts).to_bytes(8, "big") + body


def _canonical(value: Any) -> bytes:
    kind = type(value)
    if kind in _JSON_SCALARS:
        return b"j" + json.dumps(value).encode()
    if kind is list or kind is tuple:
        return _frame(b"L" if kind is list else b"T", (_canonical(v) for v in value))
    if kind is dict:
        # Sorted so equal dicts hash equally regardless of insertion order
        items = (_frame(b"I", (_canonical(k), _canonical(v))) for k, v in value.items())
        return _frame(b"D", sorted(items))
    if kind is set or kind is frozenset:
        # Iteration order of sets depends on PYTHONHASHSEED
        return _frame(b"S" if kind is set else b"F", sorted(_canonical(v) for v in value))
    return b"p" + pickle.dumps(value, protocol=PICKLE_PROTOCOL)


def serialize_value(value: Any) -> bytes:
    """
    Serialize a value for hashing.

    Builtin containers (list, tuple, dict, set, frozenset) and JSON
    scalars get a canonical encoding: dict items and set members are
    sorted by their own encoding, so the result does not depend on
    insertion order or on the interpreter's hash seed. Anything else is
    pickled.

    Raises:
        SerializationError: If the value cannot be encoded
    """
    try:
        return _canonical(value)
    except Exception as e:
        raise SerializationError(
            f"Cannot serialize value of type {type(value).__name__}: {e}", cause=e
        ) from e


def _code_signature(code: types.CodeType) -> str:
    consts = tuple(
        _code_signature(c) if isinstance(c, types.CodeType) else repr(c) for c in code.co_consts
    )
    return repr((code.co_code.hex(), code.co_names, code.co_varnames, consts))


def canonical_source(func: Callable[..., Any]) -> str:
    """
    Canonical text of a function for fingerprinting.

    Named functions are parsed and dumped as an AST, so whitespace,
    comments and line breaks do not count. Lambdas and functions
    without retrievable source fall back to their code object.

    Raises:
        SerializationError: If no representation can be derived
    """
    if isinstance(func, functools.partial):
        bound = hashlib.sha256(serialize_value([list(func.args), func.keywords])).hexdigest()
        return f"partial({canonical_source(func.func)}, {bound})"

    if getattr(func, "__name__", None) != "<lambda>":
        try:
            source = inspect.getsource(func)
        except (OSError, TypeError):
            source = None
        if source is not None:
            try:
                return ast.dump(ast.parse(textwrap.dedent(source)))
            except SyntaxError:
                pass

    code = getattr(inspect.unwrap(func), "__code__", None)
    if code is not None:
        return "code:" + _code_signature(code)

    if isinstance(func, (types.BuiltinFunctionType, types.WrapperDescriptorType, types.MethodWrapperType)):
        return f"builtin:{getattr(func, '__module__', None)}.{getattr(func, '__qualname__', func)}"

    call = getattr(type(func), "__call__", None)
    if isinstance(call, types.FunctionType):
        # Callable instance: its __call__ body plus its state
        return f"instance({canonical_source(call)}, {serialize_value(func).hex()})"

    raise SerializationError(f"Cannot derive source for {func!r}")


def describe_command(func: Callable[..., Any]) -> str:
    """Human-readable command text recorded in metadata."""
    try:
        return textwrap.dedent(inspect.getsource(func)).strip()
    except (OSError, TypeError):
        return getattr(func, "__qualname__", None) or repr(func)


class FingerprintStore:
    """
    Fingerprints and cache access for one run.

    Example:
        store = FingerprintStore(ctx)
        fp = store.value_fingerprint({"a": 1})
        fp.short   # 16 hex chars of blake3
        fp.long    # full sha256
    """

    def __init__(self, ctx: RunContext, inventory: Inventory | None = None):
        self._ctx = ctx
        self._registry = ctx.registry
        self._short = ctx.config.hash.short
        self._short_length = ctx.config.hash.short_length
        self._long = ctx.config.hash.long
        self.inventory = inventory or Inventory(ctx.cache)
        # Fail on misconfigured algorithms before any node runs
        self._registry.require(self._short)
        self._registry.require(self._long)

    # -------------------------------------------------------------------------
    # Fingerprints
    # -------------------------------------------------------------------------

    def digest(self, chunks: bytes | Iterable[bytes]) -> Fingerprint:
        """Fingerprint raw bytes."""
        if isinstance(chunks, bytes):
            chunks = [chunks]
        digests = self._registry.compute_hashes({self._short, self._long}, chunks)
        return Fingerprint(
            short=digests[self._short][: self._short_length],
            long=digests[self._long],
        )

    def value_fingerprint(self, value: Any) -> Fingerprint:
        return self.digest(serialize_value(value))

    def file_fingerprint(self, path: str) -> Fingerprint:
        """
        Fingerprint a file's bytes, or Fingerprint.ABSENT if it does not exist.

        Raises:
            FileFingerprintError: If the file exists but cannot be read
            BackendUnavailableError: If the hash cache cannot be queried
        """
        resolved = str(self._ctx.resolve_path(path))
        digests = self._ctx.hashing.compute_hashes(resolved, sorted({self._short, self._long}))
        if digests is None:
            return Fingerprint.ABSENT
        return Fingerprint(
            short=digests[self._short][: self._short_length],
            long=digests[self._long],
        )

    def function_fingerprint(self, func: Callable[..., Any]) -> Fingerprint:
        return self.digest(canonical_source(func).encode())

    def dependency_fingerprint_of(
        self, node: Node, current: Mapping[str, Fingerprint]
    ) -> Fingerprint:
        """
        Combined fingerprint of a node's predecessors.

        Args:
            node: Node whose predecessors are combined
            current: Current fingerprints by node id (imports: content,
                targets: recorded value fingerprint)
        """
        lines = [
            f"{pid}:{current.get(pid, Fingerprint.ABSENT).long}" for pid in sorted(node.predecessors)
        ]
        return self.digest("\n".join(lines).encode())

    def fingerprint_of(
        self, node: Node, current: Mapping[str, Fingerprint] | None = None
    ) -> Fingerprint:
        """
        Current fingerprint of a node's own content.

        Targets fingerprint their command; function imports combine their
        source with their predecessors' fingerprints.

        Raises:
            FileFingerprintError: File import exists but is unreadable
            SerializationError: Object import cannot be serialized
        """
        if node.kind is NodeKind.IMPORT_OBJECT:
            return self.value_fingerprint(node.value)
        if node.kind is NodeKind.IMPORT_FILE:
            return self.file_fingerprint(node.path)  # type: ignore[arg-type]
        if node.kind is NodeKind.IMPORT_FUNCTION:
            source = self.function_fingerprint(node.func)  # type: ignore[arg-type]
            if not node.predecessors:
                return source
            deps = self.dependency_fingerprint_of(node, current or {})
            return self.digest(f"{source.long}\n{deps.long}".encode())
        return self.function_fingerprint(node.command)  # type: ignore[arg-type]

    # -------------------------------------------------------------------------
    # Cache access
    # -------------------------------------------------------------------------

    def get(self, key: str, namespace: str) -> bytes | None:
        return self._ctx.cache.get(namespace, key)

    def put(self, key: str, namespace: str, data: bytes) -> None:
        self._ctx.cache.put(namespace, key, data)
        self.inventory.add(namespace, key)

    def exists(self, key: str, namespace: str) -> bool:
        return self.inventory.contains(namespace, key)

    def hash(self, key: str, namespace: str) -> str | None:
        return self._ctx.cache.hash(namespace, key)

    def delete(self, key: str, namespace: str) -> bool:
        existed = self._ctx.cache.delete(namespace, key)
        self.inventory.discard(namespace, key)
        return existed

    def store_value(self, node_id: str, value: Any) -> None:
        """
        Persist a target's value.

        Raises:
            SerializationError: If the value cannot be pickled
        """
        try:
            data = pickle.dumps(value, protocol=PICKLE_PROTOCOL)
        except Exception as e:
            raise SerializationError(
                f"Cannot store value of type {type(value).__name__}: {e}",
                node_id=node_id,
                cause=e,
            ) from e
        self.put(node_id, OBJECTS, data)

    def load_value(self, node_id: str) -> Any:
        """
        Load a target's cached value.

        Raises:
            KeyError: If no value is cached
            CorruptEntryError: If the stored bytes cannot be unpickled
        """
        data = self.get(node_id, OBJECTS)
        if data is None:
            raise KeyError(node_id)
        try:
            return pickle.loads(data)
        except Exception as e:
            raise CorruptEntryError(
                f"Cannot decode cached value: {e}", namespace=OBJECTS, key=node_id, cause=e
            ) from e

    def has_value(self, node_id: str) -> bool:
        return self.exists(node_id, OBJECTS)

    def store_kernel(self, node_id: str, fingerprint: Fingerprint) -> None:
        """Record the fingerprint of a target's value."""
        self.put(node_id, KERNELS, json.dumps(fingerprint.to_dict()).encode())

    def load_kernel(self, node_id: str) -> Fingerprint | None:
        """
        Recorded fingerprint of a target's value, or None.

        Raises:
            CorruptEntryError: If the stored record is malformed
        """
        data = self.get(node_id, KERNELS)
        if data is None:
            return None
        try:
            return Fingerprint.from_dict(json.loads(data))
        except (ValueError, KeyError, TypeError) as e:
            raise CorruptEntryError(
                f"Malformed kernel record: {e}", namespace=KERNELS, key=node_id, cause=e
            ) from e
