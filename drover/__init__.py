"""
drover - incremental build orchestration for Python plans.

A plan is a list of nodes: targets (callables whose values are cached)
and imports (objects, files and functions they depend on). make()
rebuilds only the targets whose trigger says they are stale.

Usage:
    from drover import Node, make

    plan = [
        Node.import_object("a", 2),
        Node.target("b", lambda a: a * 3, ["a"]),
    ]
    report = make(plan)
"""

from .core.context import RunContext
from .core.exceptions import (
    BackendError,
    BackendUnavailableError,
    ConfigurationError,
    ConfigValidationError,
    CorruptEntryError,
    CyclicDependencyError,
    DroverException,
    ExecutionFailure,
    FileFingerprintError,
    FingerprintError,
    PlanError,
    SerializationError,
    TimeoutFailure,
    UnknownTriggerError,
)
from .core.models import (
    DroverConfig,
    Fingerprint,
    Node,
    NodeKind,
    NodeMetadata,
    NodeSpec,
    RunReport,
    Trigger,
)
from .engine import DependencyGraph, cached, clean, diagnose, load, make, outdated, progress

__all__ = [
    "BackendError",
    "BackendUnavailableError",
    "ConfigValidationError",
    "ConfigurationError",
    "CorruptEntryError",
    "CyclicDependencyError",
    "DependencyGraph",
    "DroverConfig",
    "DroverException",
    "ExecutionFailure",
    "FileFingerprintError",
    "Fingerprint",
    "FingerprintError",
    "Node",
    "NodeKind",
    "NodeMetadata",
    "NodeSpec",
    "PlanError",
    "RunContext",
    "RunReport",
    "SerializationError",
    "TimeoutFailure",
    "Trigger",
    "UnknownTriggerError",
    "cached",
    "clean",
    "diagnose",
    "load",
    "make",
    "outdated",
    "progress",
]
