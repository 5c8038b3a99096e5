"""
Custom exception hierarchy for drover.

Errors fall into four families that decide how far a failure reaches:

- ConfigurationError: malformed plan or settings, fatal before scheduling
- FingerprintError: content could not be hashed, local to one node
- ExecutionFailure: a node's work raised or timed out, local to one node
- BackendError: the cache is unavailable or corrupt, fatal to the run
"""

from __future__ import annotations


class DroverException(Exception):
    """
    Base exception for all drover errors.

    Attributes:
        message: Human-readable error description
        context: Additional debugging context (node ids, paths, etc.)
        exit_code: Suggested exit code for CLI (default: 1)
        recoverable: Whether the run can continue past this error
    """

    exit_code: int = 1
    recoverable: bool = True

    def __init__(
        self,
        message: str,
        *,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        if cause is not None:
            self.__cause__ = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(DroverException):
    """Base class for plan and settings errors. Always aborts the run."""

    exit_code: int = 2
    recoverable: bool = False


class PlanError(ConfigurationError):
    """
    Malformed plan.

    Raised for duplicate ids, references to unknown predecessors, and
    commands whose parameters cannot be bound to predecessors.
    """

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if node_id:
            ctx["node_id"] = node_id
        super().__init__(message, context=ctx, cause=cause)


class CyclicDependencyError(ConfigurationError):
    """The predecessor relation contains a cycle (self-loops excluded)."""

    def __init__(
        self,
        message: str,
        *,
        nodes: list[str] | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if nodes:
            ctx["nodes"] = sorted(nodes)
        super().__init__(message, context=ctx, cause=cause)


class UnknownTriggerError(ConfigurationError, ValueError):
    """A trigger name is not one of the supported policies."""

    def __init__(
        self,
        message: str,
        *,
        trigger: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if trigger is not None:
            ctx["trigger"] = trigger
        super().__init__(message, context=ctx, cause=cause)


class ConfigValidationError(ConfigurationError, ValueError):
    """
    Invalid or missing configuration value.

    Inherits from ValueError so callers validating input can catch either.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        value: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if key:
            ctx["key"] = key
        if value is not None:
            ctx["value"] = value
        super().__init__(message, context=ctx, cause=cause)


# =============================================================================
# Fingerprint Errors
# =============================================================================


class FingerprintError(DroverException):
    """Base class for content that could not be hashed."""

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if node_id:
            ctx["node_id"] = node_id
        super().__init__(message, context=ctx, cause=cause)


class FileFingerprintError(FingerprintError, OSError):
    """A file exists but could not be read for hashing."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        node_id: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if path:
            ctx["path"] = path
        super().__init__(message, node_id=node_id, context=ctx, cause=cause)


class SerializationError(FingerprintError):
    """A value could not be serialized for hashing or storage."""

    pass


# =============================================================================
# Execution Errors
# =============================================================================


class ExecutionFailure(DroverException):
    """
    A node's work raised an error or breached a ceiling.

    Retried up to the node's retry budget, then recorded as failed.
    """

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        attempt: int | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if node_id:
            ctx["node_id"] = node_id
        if attempt is not None:
            ctx["attempt"] = attempt
        super().__init__(message, context=ctx, cause=cause)


class TimeoutFailure(ExecutionFailure):
    """An attempt exceeded its wall-clock or CPU-time ceiling."""

    def __init__(
        self,
        message: str,
        *,
        limit: str | None = None,
        seconds: float | None = None,
        node_id: str | None = None,
        attempt: int | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if limit:
            ctx["limit"] = limit
        if seconds is not None:
            ctx["seconds"] = seconds
        super().__init__(message, node_id=node_id, attempt=attempt, context=ctx, cause=cause)


class AttemptTimeout(BaseException):
    """
    Injected into an abandoned attempt thread after a ceiling breach.

    Derives from BaseException so that user code catching Exception does
    not swallow it.
    """


# =============================================================================
# Backend Errors
# =============================================================================


class BackendError(DroverException):
    """Base class for cache backend errors. Always aborts the run."""

    exit_code: int = 3
    recoverable: bool = False


class BackendUnavailableError(BackendError):
    """
    The cache backend could not be opened or queried.

    Raised when the database is not connected, cannot be opened,
    or a query fails at the driver level.
    """

    def __init__(
        self,
        message: str,
        *,
        db_path: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if db_path:
            ctx["db_path"] = db_path
        super().__init__(message, context=ctx, cause=cause)


class CorruptEntryError(BackendError):
    """A stored entry could not be decoded."""

    def __init__(
        self,
        message: str,
        *,
        namespace: str | None = None,
        key: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if namespace:
            ctx["namespace"] = namespace
        if key:
            ctx["key"] = key
        super().__init__(message, context=ctx, cause=cause)
