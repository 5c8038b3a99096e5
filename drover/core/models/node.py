"""
Plan node models.

A plan is a list of Node records: targets built by running a command and
imports (objects, files, functions) the targets depend on. Nodes hold
live Python callables, so they are plain dataclasses; NodeSpec is the
Pydantic descriptor used when a plan arrives as data.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal

from pydantic import Field

from ..exceptions import PlanError, UnknownTriggerError
from .base import ImmutableModel


class NodeKind(str, Enum):
    """Kind of a plan node."""

    TARGET = "target"
    IMPORT_OBJECT = "import-object"
    IMPORT_FILE = "import-file"
    IMPORT_FUNCTION = "import-function"


class Trigger(str, Enum):
    """Staleness policy of a node."""

    ALWAYS = "always"
    ANY = "any"
    COMMAND = "command"
    DEPENDS = "depends"
    FILE = "file"
    MISSING = "missing"

    @classmethod
    def parse(cls, value: Trigger | str) -> Trigger:
        """
        Convert a trigger name to a Trigger.

        Raises:
            UnknownTriggerError: If the name is not a supported policy
        """
        if isinstance(value, Trigger):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise UnknownTriggerError(
                f"Unknown trigger '{value}'. Use one of: "
                + ", ".join(t.value for t in cls),
                trigger=str(value),
                cause=e,
            ) from e

    def components(self) -> tuple[str, ...]:
        """Return the staleness components this trigger activates, in priority order."""
        if self is Trigger.ALWAYS:
            return ("always",)
        if self is Trigger.ANY:
            return ("missing", "command", "depends", "file")
        return (self.value,)


@dataclass(frozen=True)
class Fingerprint:
    """
    Content fingerprint of a node.

    Attributes:
        short: Truncated digest, stable, used for display and key names
        long: Full digest, used for staleness bookkeeping
    """

    short: str
    long: str

    ABSENT: ClassVar[Fingerprint]

    @property
    def is_absent(self) -> bool:
        return self.long == "absent"

    def to_dict(self) -> dict[str, str]:
        return {"short": self.short, "long": self.long}

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> Fingerprint:
        return cls(short=data["short"], long=data["long"])


Fingerprint.ABSENT = Fingerprint(short="absent", long="absent")


@dataclass(frozen=True, eq=False)
class Node:
    """
    A target or import in the plan.

    Use the constructors (target, import_object, import_file,
    import_function) rather than building Nodes directly.

    Attributes:
        id: Unique name of the node
        kind: Target or one of the import kinds
        command: Work to perform (targets only)
        value: Python value (object imports only)
        path: File path (file imports only)
        func: Function (function imports only)
        output_file: File produced by the command (file-producing targets)
        predecessors: Ids of the nodes this node depends on
        trigger: Staleness policy, None for the configured default
        retries: Retry budget, None for the configured default
        timeout_cpu: CPU-time ceiling per attempt in seconds
        timeout_elapsed: Wall-clock ceiling per attempt in seconds
    """

    id: str
    kind: NodeKind
    command: Callable[..., Any] | None = None
    value: Any = None
    path: str | None = None
    func: Callable[..., Any] | None = None
    output_file: str | None = None
    predecessors: frozenset[str] = field(default_factory=frozenset)
    trigger: Trigger | None = None
    retries: int | None = None
    timeout_cpu: float | None = None
    timeout_elapsed: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise PlanError("Node id must be a non-empty string", context={"id": self.id})
        object.__setattr__(self, "kind", NodeKind(self.kind))
        object.__setattr__(self, "predecessors", frozenset(self.predecessors))
        if self.trigger is not None:
            object.__setattr__(self, "trigger", Trigger.parse(self.trigger))
        if self.kind is NodeKind.TARGET and not callable(self.command):
            raise PlanError("Target command must be callable", node_id=self.id)
        if self.kind is NodeKind.IMPORT_FUNCTION and not callable(self.func):
            raise PlanError("Function import must wrap a callable", node_id=self.id)
        if self.retries is not None and self.retries < 0:
            raise PlanError("retries must be >= 0", node_id=self.id)

    @classmethod
    def target(
        cls,
        id: str,
        command: Callable[..., Any],
        predecessors: Iterable[str] = (),
        *,
        output_file: str | None = None,
        trigger: Trigger | str | None = None,
        retries: int | None = None,
        timeout_cpu: float | None = None,
        timeout_elapsed: float | None = None,
    ) -> Node:
        """Create a target built by calling ``command`` with its predecessors' values."""
        return cls(
            id=id,
            kind=NodeKind.TARGET,
            command=command,
            output_file=output_file,
            predecessors=frozenset(predecessors),
            trigger=Trigger.parse(trigger) if trigger is not None else None,
            retries=retries,
            timeout_cpu=timeout_cpu,
            timeout_elapsed=timeout_elapsed,
        )

    @classmethod
    def import_object(cls, id: str, value: Any) -> Node:
        """Create an import wrapping a plain Python value."""
        return cls(id=id, kind=NodeKind.IMPORT_OBJECT, value=value)

    @classmethod
    def import_file(cls, id: str, path: str | None = None) -> Node:
        """Create an import tracking a file. The path defaults to the id."""
        return cls(id=id, kind=NodeKind.IMPORT_FILE, path=path or id)

    @classmethod
    def import_function(
        cls,
        id: str,
        func: Callable[..., Any],
        predecessors: Iterable[str] = (),
    ) -> Node:
        """Create an import wrapping a function and the imports it calls."""
        return cls(
            id=id,
            kind=NodeKind.IMPORT_FUNCTION,
            func=func,
            predecessors=frozenset(predecessors),
        )

    @property
    def is_target(self) -> bool:
        return self.kind is NodeKind.TARGET

    @property
    def is_import(self) -> bool:
        return self.kind is not NodeKind.TARGET

    @property
    def produces_file(self) -> bool:
        return self.output_file is not None

    def without_self_reference(self) -> Node:
        """Return this node with its own id removed from its predecessors."""
        if self.id not in self.predecessors:
            return self
        return replace(self, predecessors=self.predecessors - {self.id})


class NodeSpec(ImmutableModel):
    """Plan descriptor for a node loaded from data (TOML, JSON, etc.).

    Commands and functions are referenced by name and resolved against a
    registry with to_node().
    """

    id: Annotated[str, Field(min_length=1)]
    kind: Literal["target", "import-object", "import-file", "import-function"] = "target"
    command: str | None = None
    predecessors: list[str] = Field(default_factory=list)
    value: Any = None
    path: str | None = None
    output_file: str | None = None
    trigger: str | None = None
    retries: Annotated[int, Field(ge=0)] | None = None
    timeout_cpu: Annotated[float, Field(gt=0)] | None = None
    timeout_elapsed: Annotated[float, Field(gt=0)] | None = None

    def to_node(self, registry: Mapping[str, Callable[..., Any]]) -> Node:
        """
        Resolve this descriptor into a Node.

        Args:
            registry: Callables by name, for targets and function imports

        Raises:
            PlanError: If a referenced callable is not in the registry
        """
        if self.kind in ("target", "import-function"):
            name = self.command or self.id
            if name not in registry:
                raise PlanError(
                    f"Command '{name}' is not registered", node_id=self.id
                )
            fn = registry[name]
            if self.kind == "import-function":
                return Node.import_function(self.id, fn, self.predecessors)
            return Node.target(
                self.id,
                fn,
                self.predecessors,
                output_file=self.output_file,
                trigger=self.trigger,
                retries=self.retries,
                timeout_cpu=self.timeout_cpu,
                timeout_elapsed=self.timeout_elapsed,
            )
        if self.kind == "import-file":
            return Node.import_file(self.id, self.path)
        return Node.import_object(self.id, self.value)
