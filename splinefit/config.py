"""
Configuration management for splinefit.

This module provides:
- SplineFitConfig: Typed configuration dataclass
- ConfigManager: Central configuration management with environment support
- create_default_config: Factory function for the default configuration
- load_config: Load configuration from YAML files
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from splinefit.exceptions import ConfigNotFoundError, ConfigValidationError

DEFAULT_PIVOT_TOLERANCE = 1e-12


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class SolverConfig:
    """Banded solver configuration."""

    pivot_tolerance: float = DEFAULT_PIVOT_TOLERANCE

    def validate(self) -> None:
        """Validate solver configuration."""
        if not math.isfinite(self.pivot_tolerance) or self.pivot_tolerance < 0:
            raise ConfigValidationError(
                "solver.pivot_tolerance", "must be a finite value >= 0", self.pivot_tolerance
            )


@dataclass
class FitterConfig:
    """Spline fitter configuration."""

    check_finite: bool = True

    def validate(self) -> None:
        """Validate fitter configuration."""
        if not isinstance(self.check_finite, bool):
            raise ConfigValidationError(
                "fitter.check_finite", "must be a boolean", self.check_finite
            )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "default"
    file: Optional[str] = None

    def validate(self) -> None:
        """Validate logging configuration."""
        if not isinstance(logging.getLevelName(str(self.level).upper()), int):
            raise ConfigValidationError("logging.level", "unknown log level", self.level)
        if self.format not in ("default", "json"):
            raise ConfigValidationError(
                "logging.format", "must be one of {'default', 'json'}", self.format
            )
        if self.file is not None and not isinstance(self.file, str):
            raise ConfigValidationError("logging.file", "must be a path string", self.file)

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Defaults overridden by SPLINEFIT_LOGGING_LEVEL, _FORMAT and _FILE."""
        prefix = f"{ConfigManager.ENV_PREFIX}_LOGGING_"
        return cls(
            level=os.environ.get(prefix + "LEVEL", "INFO"),
            format=os.environ.get(prefix + "FORMAT", "default"),
            file=os.environ.get(prefix + "FILE") or None,
        )


@dataclass
class SplineFitConfig:
    """Complete splinefit configuration."""

    solver: SolverConfig = field(default_factory=SolverConfig)
    fitter: FitterConfig = field(default_factory=FitterConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Validate all configuration settings."""
        self.solver.validate()
        self.fitter.validate()
        self.logging.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return {
            "solver": {
                "pivot_tolerance": self.solver.pivot_tolerance,
            },
            "fitter": {
                "check_finite": self.fitter.check_finite,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file": self.logging.file,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SplineFitConfig":
        """Create SplineFitConfig from dictionary.

        Raises:
            ConfigValidationError: A section is not a mapping or a numeric
                setting cannot be read as a number.
        """
        solver_data = _section(data, "solver")
        fitter_data = _section(data, "fitter")
        logging_data = _section(data, "logging")

        return cls(
            solver=SolverConfig(
                pivot_tolerance=_number(
                    solver_data, "solver.pivot_tolerance", DEFAULT_PIVOT_TOLERANCE
                ),
            ),
            fitter=FitterConfig(
                check_finite=fitter_data.get("check_finite", True),
            ),
            logging=LoggingConfig(
                level=str(logging_data.get("level", "INFO")),
                format=str(logging_data.get("format", "default")),
                file=logging_data.get("file"),
            ),
        )


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigValidationError(name, "section must be a mapping", section)
    return section


def _number(section: Dict[str, Any], key: str, default: float) -> float:
    value = section.get(key.rpartition(".")[2], default)
    if isinstance(value, bool):
        raise ConfigValidationError(key, "must be a number", value)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(key, "must be a number", value) from None


# =============================================================================
# Configuration Manager
# =============================================================================


class ConfigManager:
    """Central configuration management with environment variable support.

    Environment variables take precedence over config files.
    Config files take precedence over defaults.

    Environment variable format: SPLINEFIT_<SECTION>_<KEY>
    Example: SPLINEFIT_SOLVER_PIVOT_TOLERANCE=1e-10
    """

    ENV_PREFIX = "SPLINEFIT"
    SECTIONS = ("solver", "fitter", "logging")

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self._config: Optional[SplineFitConfig] = None
        self._config_path = Path(config_path) if config_path else None
        self._raw_config: Dict[str, Any] = {}

    def load(self, validate: bool = True) -> SplineFitConfig:
        """Load and return configuration.

        Args:
            validate: Whether to validate configuration after loading.
        """
        self._raw_config = create_default_config()

        if self._config_path:
            self._load_from_file(self._config_path)

        self._load_from_env()

        self._config = SplineFitConfig.from_dict(self._raw_config)

        if validate:
            self._config.validate()

        return self._config

    def _load_from_file(self, path: Path) -> None:
        """Load configuration from YAML file."""
        if not path.exists():
            raise ConfigNotFoundError(str(path))

        with open(path, "r") as f:
            file_config = yaml.safe_load(f)

        if file_config is None:
            return
        if not isinstance(file_config, dict):
            raise ConfigValidationError(str(path), "top level must be a mapping")
        self._deep_update(self._raw_config, file_config)

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        prefix = f"{self.ENV_PREFIX}_"
        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue
            section, _, name = key[len(prefix):].lower().partition("_")
            if section not in self.SECTIONS or not name:
                continue
            target = self._raw_config.setdefault(section, {})
            if not isinstance(target, dict):
                raise ConfigValidationError(section, "section must be a mapping", target)
            target[name] = self._parse_value(value)

    @staticmethod
    def _parse_value(value: str) -> Any:
        """Parse string value to appropriate Python type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    @staticmethod
    def _deep_update(base: dict, update: dict) -> dict:
        """Deep merge update into base dictionary."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                ConfigManager._deep_update(base[key], value)
            else:
                base[key] = value
        return base

    @property
    def config(self) -> SplineFitConfig:
        """Get current configuration (loads if not already loaded)."""
        if self._config is None:
            self.load()
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dotted key path (e.g. "solver.pivot_tolerance")."""
        value = self._raw_config
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value


# =============================================================================
# Factory Functions
# =============================================================================


def create_default_config() -> Dict[str, Any]:
    """Create default configuration dictionary."""
    return {
        "solver": {
            "pivot_tolerance": DEFAULT_PIVOT_TOLERANCE,
        },
        "fitter": {
            "check_finite": True,
        },
        "logging": {
            "level": "INFO",
            "format": "default",
            "file": None,
        },
    }


def load_config(path: Union[str, Path], validate: bool = True) -> SplineFitConfig:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML configuration file.
        validate: Whether to validate configuration.
    """
    return ConfigManager(path).load(validate=validate)


_global_config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get global configuration manager instance."""
    global _global_config
    if _global_config is None:
        _global_config = ConfigManager()
    return _global_config


def init_config(path: Optional[Union[str, Path]] = None) -> ConfigManager:
    """Initialize global configuration from file and apply its logging section."""
    from splinefit.logging import setup_logging

    global _global_config
    _global_config = ConfigManager(path)
    setup_logging(_global_config.load().logging, force=True)
    return _global_config
