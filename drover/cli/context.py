"""
Click context extension for drover CLI.

Provides DroverContext dataclass that holds drover-specific data
passed through the Click command chain via ctx.obj.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from ..core.models.config import DroverConfig


@dataclass
class DroverContext:
    """Extended context passed through Click command chain.

    Attributes:
        drover_dir: Path to .drover directory (may not exist if not initialized)
        cwd: Current working directory, the project root for plan paths
        is_interactive: Whether stdin is a TTY (for prompts)
        config: Effective configuration
        config_error: Why the config file could not be used, if it could not
    """

    drover_dir: Path
    cwd: Path
    is_interactive: bool
    config: DroverConfig = field(default_factory=DroverConfig)
    config_error: str | None = None

    @classmethod
    def create(cls, cwd: Path | None = None) -> DroverContext:
        """Create a DroverContext for the current environment.

        Args:
            cwd: Working directory override (defaults to Path.cwd())

        Returns:
            Configured DroverContext instance
        """
        if cwd is None:
            cwd = Path.cwd()

        config, error = cls._load_config(cwd)
        return cls(
            drover_dir=cwd / ".drover",
            cwd=cwd,
            is_interactive=sys.stdin.isatty(),
            config=config,
            config_error=error,
        )

    @staticmethod
    def _load_config(start_dir: Path) -> tuple[DroverConfig, str | None]:
        """Load drover configuration, falling back to defaults on invalid files."""
        from ..core.settings import load_settings

        try:
            settings = load_settings(start_dir=str(start_dir))
        except ValidationError as e:
            return DroverConfig(), f"Invalid configuration: {e}"
        return settings.to_config(), settings._config_error

    @property
    def is_initialized(self) -> bool:
        """Check if drover is initialized (has .drover directory)."""
        return self.drover_dir.exists()
