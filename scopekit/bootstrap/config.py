"""
bootstrap/config.py - Configuration

Module 3: Bootstrap Layer

Configuration from defaults, SCOPEKIT_* environment variables and an
optional JSON file. File contents are validated before they are applied.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors.taxonomy import ConfigurationError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_history(name: str, default: str = "100") -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ConfigurationError(
            f"{name} must be at least 1, got {value}",
            context={"variable": name, "value": raw},
        )
    return value


@dataclass
class ResourceConfig:
    """Scoped resource settings."""

    max_history: int = 100
    temp_prefix: str = "scopekit-"
    raise_on_release_failure: bool = True

    @classmethod
    def from_env(cls) -> "ResourceConfig":
        return cls(
            max_history=_env_history("SCOPEKIT_RESOURCE_HISTORY"),
            temp_prefix=os.getenv("SCOPEKIT_TEMP_PREFIX", "scopekit-"),
            raise_on_release_failure=_env_bool("SCOPEKIT_RAISE_ON_RELEASE_FAILURE", "true"),
        )


@dataclass
class RecoveryConfig:
    """Recoverable operation settings."""

    max_history: int = 100
    log_recovered: bool = True

    @classmethod
    def from_env(cls) -> "RecoveryConfig":
        return cls(
            max_history=_env_history("SCOPEKIT_RECOVERY_HISTORY"),
            log_recovered=_env_bool("SCOPEKIT_LOG_RECOVERED", "true"),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("SCOPEKIT_LOG_LEVEL", "INFO"),
            format=os.getenv("SCOPEKIT_LOG_FORMAT", DEFAULT_LOG_FORMAT),
            log_file=os.getenv("SCOPEKIT_LOG_FILE"),
            json_logs=_env_bool("SCOPEKIT_JSON_LOGS", "false"),
        )


# =============================================================================
# File schema
# =============================================================================

class ResourceSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_history: Optional[int] = Field(None, ge=1)
    temp_prefix: Optional[str] = Field(None, min_length=1)
    raise_on_release_failure: Optional[bool] = None


class RecoverySection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_history: Optional[int] = Field(None, ge=1)
    log_recovered: Optional[bool] = None


class LoggingSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Optional[str] = None
    format: Optional[str] = None
    log_file: Optional[str] = None
    json_logs: Optional[bool] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        if v is None:
            return v
        if v.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Valid: {list(LOG_LEVELS)}")
        return v.upper()


class ConfigFile(BaseModel):
    """Shape of a scopekit JSON config file. Every key is optional."""

    model_config = ConfigDict(extra="forbid")

    environment: Optional[str] = None
    debug: Optional[bool] = None
    version: Optional[str] = None
    resources: ResourceSection = Field(default_factory=ResourceSection)
    recovery: RecoverySection = Field(default_factory=RecoverySection)
    logging: LoggingSection = Field(default_factory=LoggingSection)
    settings: Dict[str, Any] = Field(default_factory=dict)


@dataclass
class ScopeKitConfig:
    """Root configuration."""

    environment: str = "development"
    debug: bool = False
    version: str = "0.1.0"

    resources: ResourceConfig = field(default_factory=ResourceConfig)
    recovery: RecoveryConfig = field(default_factory=RecoveryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Additional settings
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "ScopeKitConfig":
        """Create configuration from environment variables."""
        try:
            return cls(
                environment=os.getenv("SCOPEKIT_ENVIRONMENT", "development"),
                debug=_env_bool("SCOPEKIT_DEBUG", "false"),
                resources=ResourceConfig.from_env(),
                recovery=RecoveryConfig.from_env(),
                logging=LoggingConfig.from_env(),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}") from e

    @classmethod
    def from_file(cls, filepath: str) -> "ScopeKitConfig":
        """Load configuration from a JSON file layered over the environment."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Config file {filepath} is not valid JSON: {e}",
                context={"path": str(path)},
            ) from e

        return cls._from_dict(data, source=str(path))

    @classmethod
    def _from_dict(cls, data: Dict[str, Any], source: str = "<dict>") -> "ScopeKitConfig":
        """Validate data and apply it on top of the environment config."""
        try:
            parsed = ConfigFile.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {source}: {e}",
                context={"source": source, "errors": e.errors(include_url=False)},
            ) from e

        config = cls.from_env()

        if parsed.environment is not None:
            config.environment = parsed.environment
        if parsed.debug is not None:
            config.debug = parsed.debug
        if parsed.version is not None:
            config.version = parsed.version

        for section_name in ("resources", "recovery", "logging"):
            section = getattr(parsed, section_name)
            target = getattr(config, section_name)
            for key, value in section.model_dump(exclude_none=True).items():
                setattr(target, key, value)

        config.settings.update(parsed.settings)
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "version": self.version,
            "resources": {
                "max_history": self.resources.max_history,
                "temp_prefix": self.resources.temp_prefix,
                "raise_on_release_failure": self.resources.raise_on_release_failure,
            },
            "recovery": {
                "max_history": self.recovery.max_history,
                "log_recovered": self.recovery.log_recovered,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
            "settings": dict(self.settings),
        }


# Global config instance
_config: Optional[ScopeKitConfig] = None


def load_config(filepath: str = None) -> ScopeKitConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        ScopeKitConfig instance
    """
    global _config

    if filepath:
        _config = ScopeKitConfig.from_file(filepath)
    else:
        default_paths = [
            "./scopekit.json",
            "./config/scopekit.json",
            os.path.expanduser("~/.scopekit/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = ScopeKitConfig.from_file(path)
                return _config

        _config = ScopeKitConfig.from_env()

    logger.info(f"Configuration loaded: environment={_config.environment}")
    return _config


def get_config() -> ScopeKitConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the loaded configuration."""
    global _config
    _config = None
