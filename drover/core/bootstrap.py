"""
Application bootstrap for drover.

Initializes the DI container with process-wide services.
This module should be called once at application startup.
"""

from .container import ServiceContainer, get_container
from .interfaces.logger import ILogger
from .interfaces.presenter import IPresenter
from .models.config import LoggingConfig

_initialized = False


def bootstrap(logging_config: LoggingConfig | None = None) -> ServiceContainer:
    """
    Bootstrap the drover application.

    Registers the console presenter and a logger configured from
    ``logging_config`` (defaults when omitted).

    Returns:
        Initialized ServiceContainer
    """
    global _initialized

    container = get_container()

    if _initialized:
        return container

    _register_core_services(container, logging_config or LoggingConfig())

    _initialized = True
    return container


def _register_core_services(container: ServiceContainer, logging_config: LoggingConfig) -> None:
    """Register core application services."""
    from ..presenters.console import ConsolePresenter
    from ..services.logging import DroverLogger

    container.register_singleton(IPresenter, implementation=ConsolePresenter())  # type: ignore[type-abstract]

    def create_logger() -> ILogger:
        return DroverLogger(
            level=logging_config.level,
            console_enabled=logging_config.console,
            file_enabled=logging_config.file,
        )

    container.register_singleton(ILogger, factory=create_logger)  # type: ignore[type-abstract]


def reset() -> None:
    """
    Reset the application state.

    Useful for testing to ensure clean state between tests.
    """
    global _initialized
    ServiceContainer.reset()
    _initialized = False


def is_initialized() -> bool:
    """Check if the application has been bootstrapped."""
    return _initialized
