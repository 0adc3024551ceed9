"""
cronkeep Configuration Management.

Handles loading and validating configuration from various sources:
- Default values
- Configuration file (TOML)
- Environment variables
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "cronkeep"
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "cronkeep"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ValidationError:
    """Validation error for configuration."""
    field: str
    message: str
    severity: str  # "error" or "warning"

    def __str__(self) -> str:
        return f"[{self.severity.upper()}] {self.field}: {self.message}"


@dataclass
class SchedulerConfig:
    """Configuration for the scheduler and its record store."""

    # Run records older than this are removed by `cronkeep history prune`
    history_retention_days: int = 30

    # SQLite busy timeout in seconds
    sqlite_timeout: float = 30.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None


@dataclass
class CronkeepConfig:
    """Main configuration container for cronkeep."""

    # Paths
    config_dir: Path = DEFAULT_CONFIG_DIR
    data_dir: Path = DEFAULT_DATA_DIR

    # Sub-configurations
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Database
    database_url: str = ""

    def __post_init__(self):
        """Derive the database URL from the data directory if unset."""
        if not self.database_url:
            self.database_url = f"sqlite:///{self.data_dir}/cronkeep.db"

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


def load_config(
    config_path: Optional[Path] = None,
    env_prefix: str = "CRONKEEP_"
) -> CronkeepConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Default values

    Args:
        config_path: Path to config file (default: ~/.config/cronkeep/config.toml)
        env_prefix: Prefix for environment variables

    Returns:
        Loaded configuration
    """
    config = CronkeepConfig()

    # Determine config file path
    if config_path is None:
        env_config_dir = os.environ.get(f"{env_prefix}CONFIG_DIR")
        if env_config_dir:
            config_path = Path(env_config_dir) / DEFAULT_CONFIG_FILE
        else:
            config_path = DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE

    if config_path.exists():
        config = _load_from_file(config_path, config)

    # Override with environment variables
    config = _load_from_env(config, env_prefix)

    return config


def _load_from_file(path: Path, config: CronkeepConfig) -> CronkeepConfig:
    """Load configuration from a TOML file."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        return config

    if "scheduler" in data:
        for key, value in data["scheduler"].items():
            if hasattr(config.scheduler, key):
                setattr(config.scheduler, key, value)

    if "logging" in data:
        for key, value in data["logging"].items():
            if key == "file" and value:
                config.logging.file = Path(value)
            elif hasattr(config.logging, key):
                setattr(config.logging, key, value)

    # Top-level settings
    if "config_dir" in data:
        config.config_dir = Path(data["config_dir"])
    if "data_dir" in data:
        config.data_dir = Path(data["data_dir"])
        if "database_url" not in data:
            config.database_url = f"sqlite:///{config.data_dir}/cronkeep.db"
    if "database_url" in data:
        config.database_url = data["database_url"]

    return config


def _load_from_env(config: CronkeepConfig, prefix: str) -> CronkeepConfig:
    """Load configuration from environment variables."""

    # Paths
    if env_val := os.environ.get(f"{prefix}CONFIG_DIR"):
        config.config_dir = Path(env_val)
    if env_val := os.environ.get(f"{prefix}DATA_DIR"):
        config.data_dir = Path(env_val)
        if not os.environ.get(f"{prefix}DATABASE_URL"):
            config.database_url = f"sqlite:///{config.data_dir}/cronkeep.db"
    if env_val := os.environ.get(f"{prefix}DATABASE_URL"):
        config.database_url = env_val

    # Scheduler settings
    if env_val := os.environ.get(f"{prefix}HISTORY_RETENTION_DAYS"):
        try:
            config.scheduler.history_retention_days = int(env_val)
        except ValueError:
            logger.warning(f"Ignoring non-integer {prefix}HISTORY_RETENTION_DAYS={env_val!r}")

    # Logging settings
    if env_val := os.environ.get(f"{prefix}LOG_LEVEL"):
        config.logging.level = env_val.upper()
    if env_val := os.environ.get(f"{prefix}LOG_FILE"):
        config.logging.file = Path(env_val)

    return config


def ensure_directories(config: CronkeepConfig) -> None:
    """Ensure all required directories exist."""
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.data_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance (lazy-loaded)
_global_config: Optional[CronkeepConfig] = None


def get_config() -> CronkeepConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def set_config(config: CronkeepConfig) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def clear_config_cache() -> None:
    """Clear the global configuration cache."""
    global _global_config
    _global_config = None


def validate_config(config: Optional[CronkeepConfig] = None) -> List[ValidationError]:
    """
    Validate a configuration.

    Args:
        config: Configuration to validate (uses global if not provided)

    Returns:
        List of validation errors and warnings (empty if valid)
    """
    if config is None:
        config = get_config()

    errors: List[ValidationError] = []

    if not config.database_url:
        errors.append(ValidationError("database_url", "Database URL is empty", "error"))
    elif "://" not in config.database_url:
        errors.append(ValidationError(
            "database_url",
            f"Not a database URL: {config.database_url}",
            "error",
        ))

    if config.scheduler.history_retention_days < 1:
        errors.append(ValidationError(
            "scheduler.history_retention_days",
            "Retention must be at least 1 day",
            "error",
        ))

    if config.scheduler.sqlite_timeout <= 0:
        errors.append(ValidationError(
            "scheduler.sqlite_timeout",
            "Timeout must be positive",
            "error",
        ))

    if config.logging.level.upper() not in _LOG_LEVELS:
        errors.append(ValidationError(
            "logging.level",
            f"Unknown log level '{config.logging.level}', expected one of {', '.join(_LOG_LEVELS)}",
            "warning",
        ))

    return errors


def config_to_dict(config: CronkeepConfig) -> dict[str, Any]:
    """Convert configuration to a plain dictionary."""
    return {
        "config_dir": str(config.config_dir),
        "data_dir": str(config.data_dir),
        "database_url": config.database_url,
        "scheduler": {
            "history_retention_days": config.scheduler.history_retention_days,
            "sqlite_timeout": config.scheduler.sqlite_timeout,
        },
        "logging": {
            "level": config.logging.level,
            "format": config.logging.format,
            "file": str(config.logging.file) if config.logging.file else None,
        },
    }
