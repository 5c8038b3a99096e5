"""
Shared pytest fixtures for drover tests.

This module provides:
- run_ctx: RunContext backed by a SQLite cache in a temporary directory
- make_ctx: Factory for RunContexts with configuration overrides
- store: FingerprintStore over run_ctx
"""

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from drover.core.bootstrap import reset as reset_services
from drover.core.context import RunContext
from drover.core.models.config import DroverConfig
from drover.engine.fingerprint import FingerprintStore


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep tests away from ~/.drover and from the developer's DROVER_* settings."""
    import os

    for name in list(os.environ):
        if name.startswith("DROVER_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("DROVER_LOGGING__FILE", "false")
    reset_services()
    yield
    reset_services()


def _config(**sections: dict[str, Any]) -> DroverConfig:
    data: dict[str, Any] = {"logging": {"file": False, "console": False}}
    for section, values in sections.items():
        data.setdefault(section, {}).update(values)
    return DroverConfig.from_dict(data)


@pytest.fixture
def make_ctx(tmp_path: Path) -> Iterator[Callable[..., RunContext]]:
    """
    Provide a factory for RunContexts rooted at tmp_path.

    Usage:
        ctx = make_ctx(execution={"jobs": 2, "keep_going": True})
    """
    opened: list[RunContext] = []

    def factory(**sections: dict[str, Any]) -> RunContext:
        ctx = RunContext.open(root=tmp_path, config=_config(**sections))
        opened.append(ctx)
        return ctx

    yield factory

    for ctx in opened:
        ctx.close()


@pytest.fixture
def run_ctx(make_ctx: Callable[..., RunContext]) -> RunContext:
    """RunContext with default configuration."""
    return make_ctx()


@pytest.fixture
def store(run_ctx: RunContext) -> FingerprintStore:
    """FingerprintStore over run_ctx."""
    return FingerprintStore(run_ctx)
