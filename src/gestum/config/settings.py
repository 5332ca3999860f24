"""Centralized configuration.

Loads configuration from a .env file and the environment and provides typed
access to settings. Every value has a working default, so a fresh checkout
runs without any .env at all; invalid values fail loudly with ``ConfigError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ..core.time import validate_timezone
from ..rollups.filters import DEFAULT_LOW_STOCK_THRESHOLD
from ..rollups.time_windows import DEFAULT_TIMEZONE

__all__ = [
    "ConfigError",
    "LOG_LEVELS",
    "Settings",
    "generate_example_env",
    "get_settings",
    "load_env_file",
    "load_settings",
]

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """Settings for the metrics engine.

    Attributes
    ----------
    default_timezone : str
        Business timezone used for calendar windows (default: UTC)
    low_stock_threshold : int
        Inclusive quantity at or below which a product is low on stock
    snapshot_path : Path | None
        Default snapshot file read by the CLI
    log_level : str
        Logging level
    log_dir : Path | None
        Directory for JSONL log files (console only if not set)
    """

    default_timezone: str = DEFAULT_TIMEZONE
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    snapshot_path: Path | None = None

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.snapshot_path and isinstance(self.snapshot_path, str):
            self.snapshot_path = Path(self.snapshot_path)
        if self.log_dir and isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

        try:
            validate_timezone(self.default_timezone)
        except ValueError as exc:
            raise ConfigError(
                f"GESTUM_DEFAULT_TZ is not a known timezone: {self.default_timezone!r}. "
                "Use an IANA name such as UTC or America/Sao_Paulo"
            ) from exc

        if self.low_stock_threshold < 0:
            raise ConfigError(
                f"GESTUM_LOW_STOCK_THRESHOLD must be >= 0, got {self.low_stock_threshold}"
            )

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"GESTUM_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

    @classmethod
    def from_env(cls, env_file: Path | str | None = None) -> Settings:
        """Load settings from environment.

        Loads from .env file if present, then reads os.environ.

        Parameters
        ----------
        env_file
            Path to .env file (default: .env in current directory)

        Returns
        -------
        Settings
            Loaded settings

        Raises
        ------
        ConfigError
            If a setting is invalid
        """
        if env_file is None:
            env_file = Path(".env")

        if isinstance(env_file, str):
            env_file = Path(env_file)

        if env_file.exists():
            load_env_file(env_file)

        try:
            return cls(
                default_timezone=os.environ.get("GESTUM_DEFAULT_TZ", DEFAULT_TIMEZONE),
                low_stock_threshold=int(
                    os.environ.get("GESTUM_LOW_STOCK_THRESHOLD", str(DEFAULT_LOW_STOCK_THRESHOLD))
                ),
                snapshot_path=Path(os.environ["GESTUM_SNAPSHOT_PATH"])
                if os.environ.get("GESTUM_SNAPSHOT_PATH")
                else None,
                log_level=os.environ.get("GESTUM_LOG_LEVEL", "INFO"),
                log_dir=Path(os.environ["GESTUM_LOG_DIR"]) if os.environ.get("GESTUM_LOG_DIR") else None,
            )

        except ValueError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_env_file(env_file: Path) -> None:
    """Load environment variables from .env file.

    Parameters
    ----------
    env_file
        Path to .env file
    """
    with open(env_file) as f:
        for line in f:
            line = line.strip()

            # Skip comments and empty lines
            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                os.environ[key] = value


# Global settings instance
_settings: Settings | None = None


def load_settings(env_file: Path | str | None = None) -> Settings:
    """(Re)load settings from .env and the environment and cache them.

    Raises
    ------
    ConfigError
        If a setting is invalid
    """
    global _settings
    _settings = Settings.from_env(env_file)
    return _settings


def get_settings() -> Settings:
    """Get current settings, loading them on first use."""
    if _settings is None:
        return load_settings()
    return _settings


def generate_example_env(output_path: Path | None = None) -> str:
    """Generate example .env file with all settings.

    Parameters
    ----------
    output_path
        Optional path to write .env file

    Returns
    -------
    str
        Example .env contents
    """
    example = """# Gestum metrics configuration
# Copy this to .env and adjust values

# Business timezone for day/month windows (optional, default: UTC)
# Examples: UTC, America/Sao_Paulo, America/New_York
GESTUM_DEFAULT_TZ=UTC

# Quantity at or below which a product is reported as low stock (default: 10)
GESTUM_LOW_STOCK_THRESHOLD=10

# Snapshot file read by the CLI when --snapshot is not given (optional)
# GESTUM_SNAPSHOT_PATH=data/snapshot.json

# Log level (optional, default: INFO)
# Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
GESTUM_LOG_LEVEL=INFO

# Directory for JSONL logs (optional, console only if not set)
# GESTUM_LOG_DIR=logs
"""

    if output_path:
        output_path.write_text(example)

    return example
