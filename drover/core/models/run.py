"""
Run/execution domain models.

Provides the staleness decision, the outcome of one node's execution,
and the per-run report consumed by presenters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import Field, computed_field

from .base import DroverBaseModel, ImmutableModel
from .metadata import ErrorInfo, Timings
from .node import Fingerprint

UPSTREAM_FAILURE = "upstream failure"


class NodeStatus(str, Enum):
    """Scheduler state of a node."""

    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


class StalenessDecision(ImmutableModel):
    """Whether a node must rebuild, and which component fired."""

    node_id: str
    stale: bool
    reason: str | None = None
    trigger: str = "any"

    def __bool__(self) -> bool:
        return self.stale


@dataclass
class Outcome:
    """
    Result of running one node under the retry/timeout envelope.

    Attributes:
        node_id: The node that ran
        success: Whether the final attempt succeeded
        value: Value returned by the command (success only)
        fingerprint: Fingerprint of the value (success only)
        file_fingerprint: Fingerprint of the output file (file targets only)
        attempts: Number of attempts made
        timings: Timing of the final attempt
        error: Error of the final attempt (failure only)
        warnings: Warnings captured during the final attempt
        messages: Standard output lines captured during the final attempt
    """

    node_id: str
    success: bool
    value: Any = None
    fingerprint: Fingerprint | None = None
    file_fingerprint: Fingerprint | None = None
    attempts: int = 0
    timings: Timings = field(default_factory=Timings)
    error: ErrorInfo | None = None
    warnings: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)


class RunReport(DroverBaseModel):
    """Per-run report of node outcomes."""

    built: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    in_progress: list[str] = Field(default_factory=list)
    statuses: dict[str, str] = Field(default_factory=dict)
    reasons: dict[str, str] = Field(default_factory=dict)
    duration: float = Field(default=0.0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return not self.failed and not self.in_progress

    def record(self, node_id: str, status: NodeStatus, reason: str | None = None) -> None:
        """Record the final status of a target."""
        self.statuses[node_id] = status.value
        if reason:
            self.reasons[node_id] = reason
        if status is NodeStatus.DONE:
            self.built.append(node_id)
        elif status is NodeStatus.SKIPPED:
            self.skipped.append(node_id)
        elif status is NodeStatus.FAILED:
            self.failed.append(node_id)
