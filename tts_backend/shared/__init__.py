"""
Shared utilities module.
"""

from .errors import (
    TTSBackendError,
    ConfigurationError,
    DatabaseError,
    ConnectionFailedError,
    TransientQueryError,
    PermanentQueryError,
    ConflictError,
    ErrorKind,
    TRANSIENT_ERROR_KINDS,
    classify_error,
)
from .logger import setup_logging

__all__ = [
    # Errors
    "TTSBackendError",
    "ConfigurationError",
    "DatabaseError",
    "ConnectionFailedError",
    "TransientQueryError",
    "PermanentQueryError",
    "ConflictError",
    "ErrorKind",
    "TRANSIENT_ERROR_KINDS",
    "classify_error",
    # Logging
    "setup_logging",
]
