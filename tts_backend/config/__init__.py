"""
Configuration module for the TTS backend.
Provides centralized, type-safe configuration management.
"""

from .base import (
    Config,
    DatabaseConfig,
    RetryConfig,
)
from .constants import (
    TIER_FREE,
    TIER_PRO,
    TIER_PREMIUM,
    TIER_CHARACTER_LIMITS,
    FREE_MONTHLY_CHARACTER_LIMIT,
    PRO_MONTHLY_CHARACTER_LIMIT,
    PREMIUM_MONTHLY_CHARACTER_LIMIT,
    DB_RETRY_MAX_RETRIES,
    DB_RETRY_BASE_DELAY_SECONDS,
    SCHEMA_INIT_MAX_ATTEMPTS,
    SCHEMA_INIT_BASE_DELAY_SECONDS,
    DEFAULT_AUDIO_FILES_LIMIT,
    DASHBOARD_RECENT_FILES_LIMIT,
    DEFAULT_VOICE,
)
from .loaders import (
    load_environment,
    log_configuration_summary,
)

__all__ = [
    # Configuration classes
    "Config",
    "DatabaseConfig",
    "RetryConfig",
    # Constants
    "TIER_FREE",
    "TIER_PRO",
    "TIER_PREMIUM",
    "TIER_CHARACTER_LIMITS",
    "FREE_MONTHLY_CHARACTER_LIMIT",
    "PRO_MONTHLY_CHARACTER_LIMIT",
    "PREMIUM_MONTHLY_CHARACTER_LIMIT",
    "DB_RETRY_MAX_RETRIES",
    "DB_RETRY_BASE_DELAY_SECONDS",
    "SCHEMA_INIT_MAX_ATTEMPTS",
    "SCHEMA_INIT_BASE_DELAY_SECONDS",
    "DEFAULT_AUDIO_FILES_LIMIT",
    "DASHBOARD_RECENT_FILES_LIMIT",
    "DEFAULT_VOICE",
    # Loaders
    "load_environment",
    "log_configuration_summary",
]
