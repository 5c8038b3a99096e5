"""Tests for application bootstrap and service resolution."""

import pytest

from drover.core import bootstrap, get_container, is_initialized, reset, resolve, try_resolve
from drover.core.di import resolve_or_default
from drover.core.interfaces.logger import ILogger
from drover.core.interfaces.presenter import IPresenter
from drover.core.models.config import LoggingConfig
from drover.presenters.console import ConsolePresenter
from drover.services.logging import DroverLogger, NullLogger


def test_unbootstrapped_container_falls_back():
    assert not is_initialized()
    assert try_resolve(ILogger) is None
    assert isinstance(resolve_or_default(ILogger, NullLogger), NullLogger)
    with pytest.raises(KeyError):
        resolve(ILogger)


def test_bootstrap_registers_singletons():
    container = bootstrap(LoggingConfig(file=False))
    assert is_initialized()
    assert container is get_container()

    logger = resolve(ILogger)
    assert isinstance(logger, DroverLogger)
    assert resolve(ILogger) is logger
    assert isinstance(resolve(IPresenter), ConsolePresenter)


def test_bootstrap_is_idempotent_until_reset():
    first = bootstrap(LoggingConfig(file=False))
    assert bootstrap() is first

    reset()
    assert not is_initialized()
    assert try_resolve(IPresenter) is None
