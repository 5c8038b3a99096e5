"""
Node metadata models.

NodeMetadata is the last-recorded observation of a node. Diagnostic
fields (error, warnings, messages, timings, status) describe the most
recent attempt; fingerprint fields describe the most recent success.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from .base import DroverBaseModel, ImmutableModel

AttemptStatus = Literal["built", "failed", "imported"]


class ErrorInfo(ImmutableModel):
    """Error raised by the final attempt of a failed build."""

    type: str
    message: str
    traceback: str | None = None


class Timings(ImmutableModel):
    """Timing of the most recent attempt (partial if it failed)."""

    started_at: float | None = None
    finished_at: float | None = None
    elapsed: float = Field(default=0.0, ge=0)
    cpu: float = Field(default=0.0, ge=0)
    attempts: int = Field(default=0, ge=0)


class NodeMetadata(DroverBaseModel):
    """Persisted record of a node's last known state."""

    id: str
    kind: str
    status: AttemptStatus = "built"
    trigger: str | None = None
    fingerprint: str | None = Field(
        default=None, description="Node's own long fingerprint at last success"
    )
    dependency_fingerprint: str | None = Field(
        default=None, description="Combined predecessor fingerprint at last success"
    )
    file_fingerprint: str | None = Field(
        default=None, description="Output file fingerprint at last success"
    )
    command: str | None = Field(default=None, description="Canonical command text")
    built_at: float | None = None
    timings: Timings = Field(default_factory=Timings)
    error: ErrorInfo | None = None
    warnings: list[str] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)
    # Recomputed every run, never persisted
    missing: bool = Field(default=False, exclude=True)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> NodeMetadata:
        return cls.model_validate_json(data)
