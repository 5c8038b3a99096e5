"""
Shared helpers for drover commands: plan loading, run context, errors.
"""

from __future__ import annotations

import importlib
import importlib.util
import sys
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from ...core.context import RunContext
from ...core.di import resolve_or_default
from ...core.exceptions import DroverException, PlanError
from ...core.interfaces.logger import ILogger
from ...core.models.node import NodeSpec
from ...engine.graph import DependencyGraph
from ...presenters.console import ConsolePresenter
from ...services.logging import NullLogger
from ..context import DroverContext

DEFAULT_PLAN_ATTR = "plan"
COMMANDS_ATTR = "commands"


def _split_reference(reference: str) -> tuple[str, str]:
    """Split 'module_or_file:attr' into its parts; attr defaults to 'plan'."""
    module_ref, sep, attr = reference.rpartition(":")
    if sep and attr.isidentifier():
        return module_ref, attr
    return reference, DEFAULT_PLAN_ATTR


def _import_file(path: Path):
    if not path.exists():
        raise PlanError(f"Plan file not found: {path}", context={"path": str(path)})

    parent = str(path.parent)
    if parent not in sys.path:
        sys.path.insert(0, parent)

    # Registered under its stem so values of plan-defined classes unpickle later
    name = path.stem
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise PlanError(f"Cannot load plan file: {path}", context={"path": str(path)})
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(name, None)
        raise PlanError(f"Error loading plan file {path}: {e}", cause=e) from e
    return module


def _import_module(name: str, cwd: Path):
    if str(cwd) not in sys.path:
        sys.path.insert(0, str(cwd))
    try:
        return importlib.import_module(name)
    except ImportError as e:
        raise PlanError(f"Cannot import plan module '{name}': {e}", cause=e) from e


def load_plan(reference: str, cwd: Path) -> tuple[Any, Mapping[str, Callable[..., Any]] | None]:
    """
    Load a plan from 'path/to/file.py[:attr]' or 'package.module[:attr]'.

    The attribute may be a list of Node or NodeSpec entries, a list of
    dicts (validated as NodeSpec), a DependencyGraph, or a callable
    returning one of those. A module-level ``commands`` mapping resolves
    NodeSpec command names.

    Returns:
        Tuple of (plan, commands)

    Raises:
        PlanError: If the plan cannot be loaded
    """
    module_ref, attr = _split_reference(reference)
    if module_ref.endswith(".py") or "/" in module_ref:
        path = Path(module_ref)
        module = _import_file(path if path.is_absolute() else cwd / path)
    else:
        module = _import_module(module_ref, cwd)

    if not hasattr(module, attr):
        raise PlanError(f"Plan module '{module_ref}' has no attribute '{attr}'")
    plan = getattr(module, attr)
    if callable(plan) and not isinstance(plan, DependencyGraph):
        plan = plan()

    if not isinstance(plan, DependencyGraph):
        try:
            plan = [
                NodeSpec.model_validate(entry) if isinstance(entry, dict) else entry
                for entry in plan
            ]
        except TypeError as e:
            raise PlanError(f"Plan '{reference}' is not a list of nodes", cause=e) from e
        except ValidationError as e:
            raise PlanError(f"Invalid node in plan '{reference}': {e}", cause=e) from e

    commands = getattr(module, COMMANDS_ATTR, None)
    if commands is not None and not isinstance(commands, Mapping):
        commands = None
    return plan, commands


def open_run_context(obj: DroverContext) -> RunContext:
    """Open a RunContext rooted at the CLI working directory."""
    return RunContext.open(
        root=obj.cwd,
        config=obj.config,
        logger=resolve_or_default(ILogger, NullLogger),  # type: ignore[type-abstract]
    )


def presenter() -> ConsolePresenter:
    from ...core.container import try_resolve
    from ...core.interfaces.presenter import IPresenter

    resolved = try_resolve(IPresenter)  # type: ignore[type-abstract]
    if isinstance(resolved, ConsolePresenter):
        return resolved
    return ConsolePresenter()


@contextmanager
def cli_errors() -> Iterator[None]:
    """Turn drover errors into Click errors carrying their exit code."""
    try:
        yield
    except DroverException as e:
        error = click.ClickException(str(e))
        error.exit_code = e.exit_code
        raise error from e
