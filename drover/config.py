"""Configuration loading and management for drover."""

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .core.exceptions import ConfigValidationError
from .core.settings import find_config_file, load_settings

# Valid hash algorithms
VALID_HASH_ALGORITHMS = {"blake3", "sha256", "sha512", "md5"}

VALID_TRIGGERS = {"always", "any", "command", "depends", "file", "missing"}

# Config keys that can be set via `drover config`
CONFIGURABLE_KEYS: dict[str, dict[str, Any]] = {
    "execution.jobs": {
        "type": int,
        "default": 1,
        "description": "Number of targets built in parallel",
    },
    "execution.retries": {
        "type": int,
        "default": 0,
        "description": "Retries after a failed attempt (attempts = retries + 1)",
    },
    "execution.timeout_cpu": {
        "type": float,
        "default": None,
        "description": "CPU-time limit per attempt in seconds (0 = no limit)",
    },
    "execution.timeout_elapsed": {
        "type": float,
        "default": None,
        "description": "Wall-clock limit per attempt in seconds (0 = no limit)",
    },
    "execution.retry_backoff": {
        "type": float,
        "default": 0.0,
        "description": "Seconds to wait between attempts",
    },
    "execution.keep_going": {
        "type": bool,
        "default": False,
        "description": "Build downstream of failures using last-good values",
    },
    "execution.trigger": {
        "type": str,
        "choices": VALID_TRIGGERS,
        "default": "any",
        "description": "Default trigger (always, any, command, depends, file, missing)",
    },
    "execution.memory_strategy": {
        "type": str,
        "choices": {"lookahead", "keep"},
        "default": "lookahead",
        "description": "Drop values once all successors are built (lookahead) or keep them",
    },
    "hash.short": {
        "type": str,
        "choices": VALID_HASH_ALGORITHMS,
        "default": "blake3",
        "description": "Algorithm for short fingerprints (display, key names)",
    },
    "hash.short_length": {
        "type": int,
        "default": 16,
        "description": "Hex characters kept in short fingerprints",
    },
    "hash.long": {
        "type": str,
        "choices": VALID_HASH_ALGORITHMS,
        "default": "sha256",
        "description": "Algorithm for long fingerprints (staleness bookkeeping)",
    },
    "cache.path": {
        "type": str,
        "default": ".drover/cache.db",
        "description": "Cache database location, relative to the project root",
    },
    "output.quiet": {
        "type": bool,
        "default": False,
        "description": "Suppress the run report after make",
    },
    "logging.level": {
        "type": str,
        "choices": {"debug", "info", "warning", "error"},
        "default": "warning",
        "description": "Log level (debug, info, warning, error)",
    },
    "logging.console": {
        "type": bool,
        "default": False,
        "description": "Output debug logs to stderr",
    },
    "logging.file": {
        "type": bool,
        "default": True,
        "description": "Output debug logs to ~/.drover/drover.log",
    },
}


def _get_default_config() -> dict:
    """Get default config from Pydantic models."""
    from .core.models.config import DroverConfig

    return DroverConfig().to_dict()


def _get_nested(d: dict, key: str, default=None):
    """Get a nested key like 'execution.jobs'."""
    parts = key.split(".")
    for part in parts:
        if isinstance(d, dict) and part in d:
            d = d[part]
        else:
            return default
    return d


def _set_nested(d: dict, key: str, value):
    """Set a nested key like 'execution.jobs'."""
    parts = key.split(".")
    for part in parts[:-1]:
        if part not in d:
            d[part] = {}
        d = d[part]
    d[parts[-1]] = value


def load_config(config_path: Path | None = None, start_dir: str | None = None) -> dict:
    """
    Load configuration from file.

    Args:
        config_path: Explicit path to config file
        start_dir: Directory to start searching from (if config_path not given)

    Returns:
        Configuration dict with defaults applied
    """
    settings = load_settings(config_path=config_path, start_dir=start_dir)
    return settings.to_dict()


def get_drover_dir(start_dir: str | None = None) -> Path:
    """
    Get the .drover directory path, creating it if needed.

    Returns:
        Path to .drover directory in start_dir or cwd.
    """
    base = Path(start_dir) if start_dir else Path.cwd()
    drover_dir = base / ".drover"
    drover_dir.mkdir(exist_ok=True)
    return drover_dir


def get_config_path_for_write(start_dir: str | None = None) -> Path:
    """
    Get the path where config should be written.

    Prefers existing .drover/config.toml, otherwise creates one in start_dir or cwd.
    """
    existing = find_config_file(start_dir)
    if existing and existing.name == "config.toml":
        return existing

    return get_drover_dir(start_dir) / "config.toml"


def _toml_value(val: Any) -> str:
    if isinstance(val, bool):
        return str(val).lower()
    if isinstance(val, str):
        escaped = val.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(val, list):
        return "[" + ", ".join(_toml_value(v) for v in val) + "]"
    return str(val)


def save_config(config: dict, config_path: Path) -> None:
    """
    Save configuration to .drover/config.toml.

    Only saves non-default values.
    """
    defaults = _get_default_config()
    lines: list[str] = []

    for section, values in config.items():
        if section.startswith("_") or not isinstance(values, dict):
            continue
        section_lines = []
        for key, val in values.items():
            if val is None or val == defaults.get(section, {}).get(key):
                continue
            section_lines.append(f"{key} = {_toml_value(val)}")
        if section_lines:
            lines.append(f"[{section}]")
            lines.extend(section_lines)
            lines.append("")

    config_path.write_text("\n".join(lines))


def parse_value(key: str, value: str) -> Any:
    """
    Parse a command-line value for a configurable key.

    Raises:
        ConfigValidationError: Unknown key or invalid value
    """
    if key not in CONFIGURABLE_KEYS:
        raise ConfigValidationError(
            f"Unknown config key: {key}. Valid keys: {', '.join(CONFIGURABLE_KEYS.keys())}",
            key=key,
        )

    key_info = CONFIGURABLE_KEYS[key]
    kind = key_info["type"]

    if kind is bool:
        if value.lower() in ("true", "1", "yes", "on"):
            return True
        if value.lower() in ("false", "0", "no", "off"):
            return False
        raise ConfigValidationError(f"Invalid boolean value: {value}", key=key, value=value)

    if kind in (int, float):
        try:
            number = kind(value)
        except ValueError as e:
            raise ConfigValidationError(
                f"Invalid {kind.__name__} value: {value}", key=key, value=value, cause=e
            ) from e
        if key_info["default"] is None and number == 0:
            return None
        return number

    choices = key_info.get("choices")
    if choices and value not in choices:
        raise ConfigValidationError(
            f"Invalid value for {key}: {value}. Valid values: {', '.join(sorted(choices))}",
            key=key,
            value=value,
        )
    return value


def config_get(key: str, start_dir: str | None = None):
    """Get a config value."""
    config = load_config(start_dir=start_dir)
    return _get_nested(config, key)


def config_set(key: str, value: str, start_dir: str | None = None):
    """
    Set a config value and save to .drover/config.toml.

    Raises:
        ConfigValidationError: Unknown key or invalid value
    """
    from .core.models.config import DroverConfig

    typed_value = parse_value(key, value)

    config = load_config(start_dir=start_dir)
    _set_nested(config, key, typed_value)
    try:
        DroverConfig.from_dict({k: v for k, v in config.items() if not k.startswith("_")})
    except ValidationError as e:
        raise ConfigValidationError(
            f"Invalid value for {key}: {value}", key=key, value=value, cause=e
        ) from e

    config_path = get_config_path_for_write(start_dir)
    save_config(config, config_path)

    return config_path, typed_value


def config_list():
    """List all configurable keys with descriptions."""
    return CONFIGURABLE_KEYS
