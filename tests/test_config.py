"""
Tests for configuration loading from the environment.
"""

import logging

import pytest

from tts_backend.config import (
    Config,
    DatabaseConfig,
    RetryConfig,
    load_environment,
    log_configuration_summary,
)
from tts_backend.shared import ConfigurationError

REQUIRED_ENV = {
    "PG_HOST": "db.example.test",
    "PG_USER": "tts",
    "PG_PASSWORD": "super-secret-password",
    "PG_DATABASE": "tts",
}

OPTIONAL_ENV = (
    "PG_PORT", "PG_SSL", "PG_TRUST_SERVER_CERTIFICATE", "PG_CONNECT_TIMEOUT",
    "PG_COMMAND_TIMEOUT", "PG_POOL_MIN", "PG_POOL_MAX", "PG_POOL_IDLE_TIMEOUT",
    "DB_RETRY_MAX_RETRIES", "DB_RETRY_BASE_DELAY", "SCHEMA_INIT_MAX_ATTEMPTS",
    "SCHEMA_INIT_BASE_DELAY", "LOG_LEVEL",
)


@pytest.fixture
def env(monkeypatch):
    for name in OPTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


class TestDatabaseConfig:

    def test_defaults(self, env):
        config = DatabaseConfig.from_env()

        assert config.host == "db.example.test"
        assert config.port == 5432
        assert config.ssl is True
        assert config.trust_server_certificate is False
        assert config.pool_min_size == 0
        assert config.pool_max_size == 10
        assert config.pool_idle_timeout == 30.0
        assert config.connect_timeout == 30.0
        assert config.command_timeout == 30.0

    def test_overrides(self, env):
        env.setenv("PG_PORT", "6543")
        env.setenv("PG_SSL", "false")
        env.setenv("PG_TRUST_SERVER_CERTIFICATE", "true")
        env.setenv("PG_POOL_MIN", "2")
        env.setenv("PG_POOL_MAX", "20")
        env.setenv("PG_COMMAND_TIMEOUT", "12.5")

        config = DatabaseConfig.from_env()

        assert config.port == 6543
        assert config.ssl is False
        assert config.trust_server_certificate is True
        assert (config.pool_min_size, config.pool_max_size) == (2, 20)
        assert config.command_timeout == 12.5

    @pytest.mark.parametrize("missing", sorted(REQUIRED_ENV))
    def test_missing_required(self, env, missing):
        env.delenv(missing)

        with pytest.raises(ConfigurationError, match=missing):
            DatabaseConfig.from_env()

    def test_invalid_integer(self, env):
        env.setenv("PG_PORT", "not-a-port")

        with pytest.raises(ConfigurationError, match="PG_PORT"):
            DatabaseConfig.from_env()

    def test_pool_bounds_validated(self, env):
        env.setenv("PG_POOL_MIN", "15")
        env.setenv("PG_POOL_MAX", "5")

        with pytest.raises(ConfigurationError):
            DatabaseConfig.from_env()


class TestRetryConfig:

    def test_defaults_keep_distinct_backoff_bases(self, env):
        config = RetryConfig.from_env()

        assert config.max_retries == 2
        assert config.base_delay == 0.5
        assert config.schema_max_attempts == 3
        assert config.schema_base_delay == 1.0

    def test_negative_retries_rejected(self, env):
        env.setenv("DB_RETRY_MAX_RETRIES", "-1")

        with pytest.raises(ConfigurationError):
            RetryConfig.from_env()


class TestConfig:

    def test_from_env(self, env):
        env.setenv("LOG_LEVEL", "debug")

        config = Config.from_env()

        assert config.database.user == "tts"
        assert config.retry.max_retries == 2
        assert config.log_level == "DEBUG"

    def test_summary_masks_password(self, env, caplog, monkeypatch):
        # setup_logging stops propagation; caplog listens on the root logger
        monkeypatch.setattr(logging.getLogger("tts_backend"), "propagate", True)
        caplog.set_level(logging.INFO, logger="tts_backend")

        log_configuration_summary(Config.from_env())

        assert "super-secret-password" not in caplog.text
        assert "tts@db.example.test:5432/tts" in caplog.text


class TestLoadEnvironment:

    def test_loads_env_file(self, env, tmp_path):
        env.delenv("PG_HOST")
        env_file = tmp_path / ".env"
        env_file.write_text("PG_HOST=from-dotenv.example.test\n")

        assert load_environment(env_file) is True
        assert DatabaseConfig.from_env().host == "from-dotenv.example.test"

    def test_process_environment_wins(self, env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("PG_HOST=from-dotenv.example.test\n")

        load_environment(env_file)

        assert DatabaseConfig.from_env().host == "db.example.test"

    def test_missing_file(self, tmp_path):
        assert load_environment(tmp_path / "absent.env") is False
