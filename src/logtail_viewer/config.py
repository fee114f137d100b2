# Copyright (c) 2025 Stephen Clau

# This file is part of Logtail Viewer.

# Logtail Viewer is dual-licensed:

# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms

# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com

# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""
Configuration module for Logtail Viewer.

Sources, lowest priority first:
- logtail.yml in CONFIG_DIR (optional)
- environment variables
- command-line overrides
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any
import os
import re
import yaml
import structlog

logger = structlog.get_logger()

CONFIG_FILE_NAME = "logtail.yml"

# config key -> environment variable
ENV_VARS: Dict[str, str] = {
    "log_path": "LOGTAIL_PATH",
    "poll_interval": "POLL_INTERVAL",
    "use_notifier": "USE_NOTIFIER",
    "max_lines": "MAX_LINES",
    "settings_path": "SETTINGS_PATH",
    "crash_log_path": "CRASH_LOG_PATH",
    "health_check_enabled": "HEALTH_CHECK_ENABLED",
    "health_check_host": "HEALTH_CHECK_HOST",
    "health_check_port": "HEALTH_CHECK_PORT",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
}


def get_config_value(
    env_var: str,
    required: bool = False,
    default: Optional[str] = None,
) -> Optional[str]:
    """
    Get configuration value from the environment.

    Args:
        env_var: Environment variable name (e.g., 'LOGTAIL_PATH')
        required: If True, raises ValueError when value not found
        default: Default value if not set

    Returns:
        Configuration value from env var or default

    Raises:
        ValueError: If required=True and value not found
    """
    env_value = os.getenv(env_var)
    if env_value is not None:
        logger.debug("config_value_loaded_from_env", source="environment", var=env_var)
        return env_value

    if default is not None:
        logger.debug("config_value_loaded_from_default", source="default", var=env_var)
        return default

    if required:
        raise ValueError(
            f"Required configuration value not found for '{env_var}'. "
            f"Checked: environment variable '{env_var}'"
        )

    return None


def _safe_int(value: Any, field_name: str, default: Optional[int]) -> Optional[int]:
    """
    Safely convert value to int with proper type checking.

    Args:
        value: Value to convert (can be None, int, or str)
        field_name: Field name for error messages
        default: Default value if None

    Returns:
        Converted int value

    Raises:
        ValueError: If conversion fails
    """
    if value is None:
        return default

    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {field_name} to int: bool")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Invalid integer for {field_name}: {value}")

    raise ValueError(f"Cannot convert {field_name} to int: {type(value).__name__}")


def _safe_float(value: Any, field_name: str, default: float) -> float:
    """
    Safely convert value to float with proper type checking.

    Raises:
        ValueError: If conversion fails
    """
    if value is None:
        return default

    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {field_name} to float: bool")

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"Invalid float for {field_name}: {value}")

    raise ValueError(f"Cannot convert {field_name} to float: {type(value).__name__}")


def _safe_bool(value: Any, field_name: str, default: bool) -> bool:
    """Accepts bools and the usual true/false spellings."""
    if value is None:
        return default

    if isinstance(value, bool):
        return value

    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False

    raise ValueError(f"Invalid boolean for {field_name}: {value}")


def _expand_env_vars(value: Any) -> Any:
    """
    Expand environment variables in a string.

    Supports ${VAR_NAME} syntax.
    Falls back to original string if variable not found.
    """
    if not isinstance(value, str):
        return value

    def replace_var(match: Any) -> str:
        var_name = match.group(1)
        return os.getenv(var_name, match.group(0))  # Fall back to original if not found

    return re.sub(r'\$\{([^}]+)\}', replace_var, value)


@dataclass
class Config:
    """Main application configuration."""

    log_path: Path
    """Log file to follow. Need not exist yet."""

    poll_interval: float = 0.1
    """Timer period in seconds. Default: 0.1 (100ms)"""

    use_notifier: bool = True
    """React to filesystem notifications in addition to the timer."""

    max_lines: Optional[int] = None
    """Keep at most this many lines in memory (None = unbounded)."""

    settings_path: Path = field(default_factory=lambda: Path("settings.yml"))
    """Where viewer settings (filter, exclude, strip prefix) are persisted."""

    crash_log_path: Path = field(default_factory=lambda: Path("crash.log"))
    """File unhandled exceptions are appended to."""

    # Status server configuration
    health_check_enabled: bool = False
    """Serve /health and /status over HTTP."""

    health_check_host: str = "127.0.0.1"
    """Host to bind status server to. Default: 127.0.0.1"""

    health_check_port: int = 8080
    """Port to bind status server to. Default: 8080"""

    # Logging configuration
    log_level: str = "info"
    """Logging level: debug, info, warning, error. Default: info"""

    log_format: str = "console"
    """Logging format: console or json. Default: console"""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.log_path:
            raise ValueError("log_path is REQUIRED")

        if not isinstance(self.log_path, Path):
            self.log_path = Path(self.log_path)
        if not isinstance(self.settings_path, Path):
            self.settings_path = Path(self.settings_path)
        if not isinstance(self.crash_log_path, Path):
            self.crash_log_path = Path(self.crash_log_path)

        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")

        if self.max_lines is not None and self.max_lines <= 0:
            raise ValueError(f"max_lines must be > 0, got {self.max_lines}")

        valid_levels = {"debug", "info", "warning", "error"}
        if self.log_level.lower() not in valid_levels:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )

        if not 1 <= self.health_check_port <= 65535:
            raise ValueError(
                f"Invalid health_check_port: {self.health_check_port}. Must be 1-65535"
            )

        valid_formats = {"console", "json"}
        if self.log_format.lower() not in valid_formats:
            raise ValueError(
                f"Invalid log_format '{self.log_format}'. Must be one of: {', '.join(sorted(valid_formats))}"
            )


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Read logtail.yml; a missing file yields an empty mapping."""
    if not path.exists():
        return {}

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")

    unknown = set(data) - set(ENV_VARS)
    if unknown:
        logger.warning("config_unknown_keys", path=str(path), keys=sorted(unknown))

    return data


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Config:
    """
    Load configuration from logtail.yml, environment variables and overrides.

    Priority order for each config value:
    1. Explicit override (command line), when not None
    2. Environment variable
    3. logtail.yml in CONFIG_DIR
    4. Hardcoded defaults

    Returns:
        Fully populated Config object with validation

    Raises:
        ValueError: If required config values missing or invalid
        yaml.YAMLError: If logtail.yml is invalid YAML
    """
    config_dir = os.getenv("CONFIG_DIR", ".")
    raw: Dict[str, Any] = dict(_load_yaml_file(Path(config_dir) / CONFIG_FILE_NAME))

    for key, env_var in ENV_VARS.items():
        env_value = get_config_value(env_var)
        if env_value is not None:
            raw[key] = env_value

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    log_path = _expand_env_vars(raw.get("log_path"))
    if not log_path:
        raise ValueError(
            "No log file configured. Pass a path, set LOGTAIL_PATH, "
            f"or add 'log_path' to {CONFIG_FILE_NAME}."
        )

    config = Config(
        log_path=Path(log_path),
        poll_interval=_safe_float(raw.get("poll_interval"), "poll_interval", 0.1),
        use_notifier=_safe_bool(raw.get("use_notifier"), "use_notifier", True),
        max_lines=_safe_int(raw.get("max_lines"), "max_lines", None),
        settings_path=Path(_expand_env_vars(raw.get("settings_path") or "settings.yml")),
        crash_log_path=Path(_expand_env_vars(raw.get("crash_log_path") or "crash.log")),
        health_check_enabled=_safe_bool(
            raw.get("health_check_enabled"), "health_check_enabled", False
        ),
        health_check_host=str(raw.get("health_check_host") or "127.0.0.1"),
        health_check_port=_safe_int(raw.get("health_check_port"), "health_check_port", 8080) or 8080,
        log_level=str(raw.get("log_level") or "info"),
        log_format=str(raw.get("log_format") or "console"),
    )

    return config


def validate_config(config: Config) -> bool:
    """
    Validate a Config object for completeness.

    Returns:
        True if config is valid, False otherwise
    """
    try:
        if not config.log_path:
            logger.error("config_validation_failed_no_log_path")
            return False

        if config.log_path.exists() and config.log_path.is_dir():
            logger.error("config_validation_failed_log_path_is_dir", path=str(config.log_path))
            return False

        # Missing file or directory is fine: the tailer waits for it
        if not config.log_path.parent.exists():
            logger.warning(
                "config_log_dir_missing",
                path=str(config.log_path),
                message="Filesystem notifications disabled; polling only",
            )

        return True

    except Exception as e:
        logger.error("config_validation_error", error=str(e))
        return False
