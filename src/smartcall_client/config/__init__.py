"""Configuration loading and validation."""

from .loader import load_config, load_config_or_defaults
from .schema import (
    ApiConfig,
    ClientConfig,
    FileLoggingConfig,
    LoggingConfig,
    PollingConfig,
    RetryConfig,
    StorageConfig,
    TicketConfig,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_or_defaults",
    # Root config
    "ClientConfig",
    # Sections
    "ApiConfig",
    "PollingConfig",
    "TicketConfig",
    "StorageConfig",
    "LoggingConfig",
    "FileLoggingConfig",
    "RetryConfig",
]
