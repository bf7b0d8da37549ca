"""
Configuration

Centralized configuration for the container and its observability stack.
Uses environment variables with sensible defaults.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from enum import Enum

from dotenv import load_dotenv

from observability.logging import LoggingConfig
from observability.tracing import TracingConfig

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class ContainerConfig:
    """Container behaviour switches."""
    # Lock the binding table once boot() has run every provider
    lock_on_boot: bool = field(default_factory=lambda: _env_flag("CONTAINER_LOCK_ON_BOOT", "false"))
    # Open a span around every factory invocation
    trace_resolutions: bool = field(default_factory=lambda: _env_flag("CONTAINER_TRACE_RESOLUTIONS", "true"))


@dataclass
class Config:
    """Main configuration container."""
    environment: Environment = field(
        default_factory=lambda: Environment(os.getenv("ENVIRONMENT", "development"))
    )
    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", "false"))

    container: ContainerConfig = field(default_factory=ContainerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)

    def __post_init__(self) -> None:
        self.logging.environment = self.environment.value
        self.tracing.environment = self.environment.value
        if self.debug:
            self.logging.level = "DEBUG"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "environment": self.environment.value,
            "debug": self.debug,
            "container": {
                "lock_on_boot": self.container.lock_on_boot,
                "trace_resolutions": self.container.trace_resolutions,
            },
            "logging": {
                "level": self.logging.level,
                "json_format": self.logging.json_format,
            },
            "tracing": {
                "enabled": self.tracing.enabled,
                "service_name": self.tracing.service_name,
                "sample_rate": self.tracing.sample_rate,
            },
        }


# Singleton configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment."""
    global _config
    load_dotenv(override=True)
    _config = Config()
    return _config
