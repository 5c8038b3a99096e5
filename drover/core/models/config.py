"""
Configuration models.

Provides Pydantic models for drover configuration with validation.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import ConfigDict, Field, field_validator

from .base import DroverBaseModel

# Type aliases
HashAlgorithm = Literal["blake3", "sha256", "sha512", "md5"]
LogLevel = Literal["debug", "info", "warning", "error"]
TriggerName = Literal["always", "any", "command", "depends", "file", "missing"]
MemoryStrategy = Literal["lookahead", "keep"]


class ConfigBaseModel(DroverBaseModel):
    """Base model for config sections with relaxed strict mode for TOML loading."""

    model_config = ConfigDict(
        strict=False,  # Allow coercion from TOML and env types
        validate_assignment=True,
        extra="ignore",  # Ignore unknown fields in config files
        populate_by_name=True,
        use_enum_values=True,
        revalidate_instances="never",
    )


class ExecutionConfig(ConfigBaseModel):
    """Execution configuration section.

    Per-node overrides on a Node take precedence over these values.
    """

    jobs: Annotated[int, Field(ge=1)] = 1
    retries: Annotated[int, Field(ge=0)] = 0
    timeout_cpu: Annotated[float, Field(gt=0)] | None = None
    timeout_elapsed: Annotated[float, Field(gt=0)] | None = None
    retry_backoff: Annotated[float, Field(ge=0)] = 0.0
    keep_going: bool = False
    trigger: TriggerName = "any"
    memory_strategy: MemoryStrategy = "lookahead"

    @field_validator("timeout_cpu", "timeout_elapsed", mode="before")
    @classmethod
    def parse_optional_timeout(cls, v: Any) -> Any:
        """Treat empty strings and zero as 'no limit'."""
        if v in ("", 0, "0", None):
            return None
        return v


class HashConfig(ConfigBaseModel):
    """Hash algorithm configuration section.

    The short fingerprint is for display and key names, the long one for
    staleness bookkeeping. The two are configured independently.
    """

    short: HashAlgorithm = "blake3"
    short_length: Annotated[int, Field(ge=8, le=64)] = 16
    long: HashAlgorithm = "sha256"


class CacheConfig(ConfigBaseModel):
    """Cache location configuration section."""

    path: str = ".drover/cache.db"


class LoggingConfig(ConfigBaseModel):
    """Logging configuration section."""

    level: LogLevel = "warning"
    console: bool = False
    file: bool = True


class OutputConfig(ConfigBaseModel):
    """Output configuration section."""

    quiet: bool = False


class DroverConfig(ConfigBaseModel):
    """Complete drover configuration.

    This model represents the full configuration with all sections.
    It can be loaded from TOML files or constructed programmatically.
    """

    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    hash: HashConfig = Field(default_factory=HashConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    def get(self, key: str, default: Any = None) -> Any:
        """Get config value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., 'execution.jobs')
            default: Default value if key not found

        Returns:
            Config value or default
        """
        parts = key.split(".")
        obj: Any = self
        for part in parts:
            if hasattr(obj, part):
                obj = getattr(obj, part)
            elif isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def set(self, key: str, value: Any) -> None:
        """Set config value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., 'execution.retries')
            value: Value to set

        Raises:
            ValueError: If key path is invalid
        """
        parts = key.split(".")
        if len(parts) < 2:
            raise ValueError(f"Invalid config key: {key}")

        obj: Any = self
        for part in parts[:-1]:
            if not hasattr(obj, part):
                raise ValueError(f"Unknown config path: {key}")
            obj = getattr(obj, part)

        field = parts[-1]
        if not hasattr(obj, field):
            raise ValueError(f"Unknown config field: {key}")

        setattr(obj, field, value)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DroverConfig:
        """Create config from dictionary."""
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a nested dictionary."""
        return self.model_dump()
