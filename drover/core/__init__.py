"""
Core infrastructure for drover.

This module provides:
- ServiceContainer: DI container using dependency-injector
- Application bootstrap for initialization
- Protocol definitions for service interfaces
- Custom exception hierarchy
"""

from .bootstrap import bootstrap, is_initialized, reset
from .container import ServiceContainer, get_container, resolve, try_resolve
from .exceptions import (
    AttemptTimeout,
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

__all__ = [
    "AttemptTimeout",
    "BackendError",
    "BackendUnavailableError",
    "ConfigValidationError",
    "ConfigurationError",
    "CorruptEntryError",
    "CyclicDependencyError",
    "DroverException",
    "ExecutionFailure",
    "FileFingerprintError",
    "FingerprintError",
    "PlanError",
    "SerializationError",
    "ServiceContainer",
    "TimeoutFailure",
    "UnknownTriggerError",
    "bootstrap",
    "get_container",
    "is_initialized",
    "reset",
    "resolve",
    "try_resolve",
]
