"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiConfig(BaseModel):
    """SmartCall REST API configuration."""

    base_url: str = "http://localhost:8000/api"
    # Creating a ticket or sending a message waits for the AI reply
    timeout: float = Field(30.0, ge=5.0, le=120.0)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Only accept absolute http(s) URLs."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Invalid API base URL: {v}")
        return v.rstrip("/")


class PollingConfig(BaseModel):
    """Chat polling configuration."""

    warmup_delay: float = Field(2.0, ge=0.0, le=60.0)
    interval: float = Field(2.0, gt=0.0, le=60.0)


class TicketConfig(BaseModel):
    """Ticket creation rules."""

    min_description_length: int = Field(10, ge=1, le=1000)


class StorageConfig(BaseModel):
    """Local credential storage."""

    credentials_path: Path = Path("~/.smartcall/credentials.json")

    @field_validator("credentials_path")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        """Expand ~ in the configured path."""
        return v.expanduser()


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("~/.smartcall/client.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: Literal["json", "console"] = "console"
    file: FileLoggingConfig = FileLoggingConfig()


class RetryConfig(BaseModel):
    """Retry configuration for idempotent reads."""

    max_attempts: int = Field(3, ge=1, le=10)
    initial_delay: float = Field(1.0, ge=0.0, le=10.0)
    max_delay: float = Field(30.0, ge=0.0, le=300.0)


class ClientConfig(BaseSettings):
    """Root configuration for the SmartCall client."""

    api: ApiConfig = ApiConfig()
    polling: PollingConfig = PollingConfig()
    tickets: TicketConfig = TicketConfig()
    storage: StorageConfig = StorageConfig()
    logging: LoggingConfig = LoggingConfig()
    retry: RetryConfig = RetryConfig()

    model_config = SettingsConfigDict(
        env_prefix="SMARTCALL_",
        env_nested_delimiter="__",
    )
