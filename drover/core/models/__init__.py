"""
Domain models for drover.

Pydantic models for configuration, metadata and run reports, and
dataclasses for plan nodes that carry live callables.
"""

from .base import DroverBaseModel, ImmutableModel
from .config import (
    CacheConfig,
    DroverConfig,
    ExecutionConfig,
    HashConfig,
    LoggingConfig,
    OutputConfig,
)
from .metadata import ErrorInfo, NodeMetadata, Timings
from .node import Fingerprint, Node, NodeKind, NodeSpec, Trigger
from .run import UPSTREAM_FAILURE, NodeStatus, Outcome, RunReport, StalenessDecision

__all__ = [
    "UPSTREAM_FAILURE",
    "CacheConfig",
    "DroverBaseModel",
    "DroverConfig",
    "ErrorInfo",
    "ExecutionConfig",
    "Fingerprint",
    "HashConfig",
    "ImmutableModel",
    "LoggingConfig",
    "Node",
    "NodeKind",
    "NodeMetadata",
    "NodeSpec",
    "NodeStatus",
    "Outcome",
    "OutputConfig",
    "RunReport",
    "StalenessDecision",
    "Timings",
    "Trigger",
]
