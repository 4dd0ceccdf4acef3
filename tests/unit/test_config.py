"""Tests for configuration loading and validation."""

import os
from pathlib import Path
from tempfile import NamedTemporaryFile

import pytest
from pydantic import ValidationError

from smartcall_client.config.loader import (
    load_config,
    load_config_or_defaults,
    substitute_env_vars,
    validate_config,
)
from smartcall_client.config.schema import (
    ApiConfig,
    ClientConfig,
    PollingConfig,
    RetryConfig,
    StorageConfig,
    TicketConfig,
)


class TestSubstituteEnvVars:
    """Test environment variable substitution."""

    def test_substitute_single_var(self):
        """Test substituting a single environment variable."""
        os.environ["TEST_VAR"] = "test_value"
        result = substitute_env_vars("Value is ${TEST_VAR}")
        assert result == "Value is test_value"
        del os.environ["TEST_VAR"]

    def test_missing_env_var_raises(self):
        """Test that missing environment variables raise ValueError."""
        with pytest.raises(ValueError, match="Environment variable MISSING not found"):
            substitute_env_vars("Value is ${MISSING}")

    def test_no_substitution_needed(self):
        result = substitute_env_vars("plain text without vars")
        assert result == "plain text without vars"


class TestApiConfig:
    """Test ApiConfig validation."""

    def test_defaults(self):
        config = ApiConfig()
        assert config.timeout == 30.0
        assert config.base_url.startswith("http")

    def test_trailing_slash_removed(self):
        assert ApiConfig(base_url="https://smartcall.example.com/api/").base_url == (
            "https://smartcall.example.com/api"
        )

    def test_invalid_scheme(self):
        with pytest.raises(ValidationError, match="Invalid API base URL"):
            ApiConfig(base_url="ftp://smartcall.example.com")

    def test_timeout_range(self):
        with pytest.raises(ValidationError):
            ApiConfig(timeout=1)
        with pytest.raises(ValidationError):
            ApiConfig(timeout=600)


class TestOtherSections:
    def test_polling_defaults(self):
        config = PollingConfig()
        assert config.warmup_delay == 2.0
        assert config.interval == 2.0

    def test_polling_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            PollingConfig(interval=0)

    def test_ticket_minimum(self):
        assert TicketConfig().min_description_length == 10
        with pytest.raises(ValidationError):
            TicketConfig(min_description_length=0)

    def test_storage_path_expanded(self):
        config = StorageConfig(credentials_path=Path("~/creds.json"))
        assert "~" not in str(config.credentials_path)

    def test_retry_bounds(self):
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=0)


class TestLoadConfig:
    """Test loading YAML files."""

    def test_load_valid_config(self):
        os.environ["HELPDESK_TEST_URL"] = "https://helpdesk.example.com/api"
        yaml_content = """
api:
  base_url: ${HELPDESK_TEST_URL}
  timeout: 45
polling:
  interval: 5
tickets:
  min_description_length: 20
logging:
  level: DEBUG
  format: json
"""
        with NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write(yaml_content)
            temp_path = Path(f.name)

        try:
            config = load_config(temp_path)
            assert config.api.base_url == "https://helpdesk.example.com/api"
            assert config.api.timeout == 45
            assert config.polling.interval == 5
            assert config.polling.warmup_delay == 2.0
            assert config.tickets.min_description_length == 20
            assert config.logging.level == "DEBUG"
        finally:
            temp_path.unlink()
            del os.environ["HELPDESK_TEST_URL"]

    def test_load_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        config = load_config(path)
        assert config.api.timeout == 30.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        config = load_config_or_defaults(tmp_path / "missing.yaml")
        assert isinstance(config, ClientConfig)
        assert config.polling.interval == 2.0

    def test_environment_overrides_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SMARTCALL_API__TIMEOUT", "60")
        config = load_config_or_defaults(tmp_path / "missing.yaml")
        assert config.api.timeout == 60


class TestValidateConfig:
    """Test cross-field validation."""

    def test_retry_delays(self):
        config = ClientConfig(retry=RetryConfig(initial_delay=10, max_delay=5))
        with pytest.raises(ValueError, match="max_delay"):
            validate_config(config)

    def test_poll_interval_above_timeout(self):
        config = ClientConfig(
            api=ApiConfig(timeout=10),
            polling=PollingConfig(interval=30),
        )
        with pytest.raises(ValueError, match="polling.interval"):
            validate_config(config)

    def test_defaults_are_valid(self):
        validate_config(ClientConfig())
