"""
Configuration classes for the TTS backend.
Provides type-safe configuration with validation.
"""

import os
from dataclasses import dataclass

from tts_backend.config.constants import (
    DB_RETRY_BASE_DELAY_SECONDS,
    DB_RETRY_MAX_RETRIES,
    DEFAULT_COMMAND_TIMEOUT_SECONDS,
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_POOL_IDLE_TIMEOUT_SECONDS,
    DEFAULT_POOL_MAX_SIZE,
    DEFAULT_POOL_MIN_SIZE,
    SCHEMA_INIT_BASE_DELAY_SECONDS,
    SCHEMA_INIT_MAX_ATTEMPTS,
)
from tts_backend.shared.errors import ConfigurationError


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"{name} environment variable is required")
    return value


@dataclass
class DatabaseConfig:
    """PostgreSQL database and connection pool configuration."""

    host: str
    user: str
    password: str
    database: str
    port: int = 5432
    ssl: bool = True
    trust_server_certificate: bool = False
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT_SECONDS
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT_SECONDS
    pool_min_size: int = DEFAULT_POOL_MIN_SIZE
    pool_max_size: int = DEFAULT_POOL_MAX_SIZE
    pool_idle_timeout: float = DEFAULT_POOL_IDLE_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.pool_min_size < 0:
            raise ConfigurationError("PG_POOL_MIN must not be negative")
        if self.pool_max_size < 1:
            raise ConfigurationError("PG_POOL_MAX must be at least 1")
        if self.pool_min_size > self.pool_max_size:
            raise ConfigurationError(
                f"PG_POOL_MIN ({self.pool_min_size}) exceeds PG_POOL_MAX ({self.pool_max_size})"
            )

    @classmethod
    def from_env(cls) -> 'DatabaseConfig':
        """Load and validate database configuration from environment."""
        return cls(
            host=_require("PG_HOST"),
            user=_require("PG_USER"),
            password=_require("PG_PASSWORD"),
            database=_require("PG_DATABASE"),
            port=_env_int("PG_PORT", 5432),
            ssl=_env_bool("PG_SSL", "true"),
            trust_server_certificate=_env_bool("PG_TRUST_SERVER_CERTIFICATE", "false"),
            connect_timeout=_env_float("PG_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT_SECONDS),
            command_timeout=_env_float("PG_COMMAND_TIMEOUT", DEFAULT_COMMAND_TIMEOUT_SECONDS),
            pool_min_size=_env_int("PG_POOL_MIN", DEFAULT_POOL_MIN_SIZE),
            pool_max_size=_env_int("PG_POOL_MAX", DEFAULT_POOL_MAX_SIZE),
            pool_idle_timeout=_env_float("PG_POOL_IDLE_TIMEOUT", DEFAULT_POOL_IDLE_TIMEOUT_SECONDS),
        )


@dataclass
class RetryConfig:
    """Retry tuning for queries and for schema initialization."""

    max_retries: int = DB_RETRY_MAX_RETRIES
    base_delay: float = DB_RETRY_BASE_DELAY_SECONDS
    schema_max_attempts: int = SCHEMA_INIT_MAX_ATTEMPTS
    schema_base_delay: float = SCHEMA_INIT_BASE_DELAY_SECONDS

    @classmethod
    def from_env(cls) -> 'RetryConfig':
        """Load retry configuration from environment."""
        config = cls(
            max_retries=_env_int("DB_RETRY_MAX_RETRIES", DB_RETRY_MAX_RETRIES),
            base_delay=_env_float("DB_RETRY_BASE_DELAY", DB_RETRY_BASE_DELAY_SECONDS),
            schema_max_attempts=_env_int("SCHEMA_INIT_MAX_ATTEMPTS", SCHEMA_INIT_MAX_ATTEMPTS),
            schema_base_delay=_env_float("SCHEMA_INIT_BASE_DELAY", SCHEMA_INIT_BASE_DELAY_SECONDS),
        )
        if config.max_retries < 0:
            raise ConfigurationError("DB_RETRY_MAX_RETRIES must not be negative")
        if config.schema_max_attempts < 1:
            raise ConfigurationError("SCHEMA_INIT_MAX_ATTEMPTS must be at least 1")
        return config


@dataclass
class Config:
    """Main application configuration."""

    database: DatabaseConfig
    retry: RetryConfig
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> 'Config':
        """Load all configuration from environment variables."""
        return cls(
            database=DatabaseConfig.from_env(),
            retry=RetryConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
