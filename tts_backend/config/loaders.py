"""
Environment variable loaders with validation.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_environment(env_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Load environment variables from .env file.

    Args:
        env_path: Explicit .env location (defaults to the project root)

    Returns:
        True if .env file was found and loaded, False otherwise.
    """
    if env_path is None:
        env_path = Path(__file__).parent.parent.parent / ".env"

    # Variables already present in the process environment win
    loaded = load_dotenv(env_path, override=False)

    if loaded:
        logger.info("✅ Environment variables loaded from %s", env_path)
    else:
        logger.warning("⚠️ No .env file found, using system environment variables")

    return loaded


def _mask(secret: str) -> str:
    if not secret:
        return "<unset>"
    return f"{'*' * 10}{secret[-4:]}" if len(secret) > 8 else "*" * 10


def log_configuration_summary(config) -> None:
    """
    Log configuration summary (without sensitive data).

    Args:
        config: Configuration object to log.
    """
    db = config.database
    logger.info("=" * 50)
    logger.info("CONFIGURATION SUMMARY")
    logger.info("=" * 50)

    # Database
    logger.info(f"Database: {db.user}@{db.host}:{db.port}/{db.database}")
    logger.info(f"Database Password: {_mask(db.password)}")
    logger.info(
        f"TLS: ssl={db.ssl}, trust_server_certificate={db.trust_server_certificate}"
    )
    logger.info(
        f"Pool: min={db.pool_min_size}, max={db.pool_max_size}, "
        f"idle_timeout={db.pool_idle_timeout}s, connect_timeout={db.connect_timeout}s, "
        f"command_timeout={db.command_timeout}s"
    )

    # Retry
    logger.info(
        f"Query retries: {config.retry.max_retries} (base delay {config.retry.base_delay}s)"
    )
    logger.info(
        f"Schema init attempts: {config.retry.schema_max_attempts} "
        f"(base delay {config.retry.schema_base_delay}s)"
    )

    logger.info("=" * 50)
