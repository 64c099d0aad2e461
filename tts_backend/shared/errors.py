"""
Custom exception classes for the TTS backend.
Provides clear error handling and categorization.
"""

import asyncio
import enum

import asyncpg


class TTSBackendError(Exception):
    """Base exception for all TTS backend errors."""
    pass


class ConfigurationError(TTSBackendError):
    """Configuration or environment variable errors."""
    pass


class DatabaseError(TTSBackendError):
    """Database operation errors."""
    pass


class ConnectionFailedError(DatabaseError):
    """The connection pool could not be created or reconnected."""
    pass


class TransientQueryError(DatabaseError):
    """
    Request-level failure worth retrying, raised by operation code.

    The driver never raises it. An operation passed to ``with_retry`` raises
    it to ask for another attempt on a fresh pool; once retries run out it
    propagates unchanged.
    """
    pass


class PermanentQueryError(DatabaseError):
    """Query failure that retrying cannot fix."""
    pass


class ConflictError(PermanentQueryError):
    """A unique or foreign key constraint rejected the write."""

    def __init__(self, message: str = "Constraint violation", constraint: str = ""):
        self.constraint = constraint
        super().__init__(message)


class ErrorKind(enum.Enum):
    """Structured failure classification used by the retry wrapper."""

    CONNECTION = "connection"
    REQUEST = "request"
    TIMEOUT = "timeout"
    CONSTRAINT = "constraint"
    OTHER = "other"

    @property
    def is_transient(self) -> bool:
        return self in TRANSIENT_ERROR_KINDS


TRANSIENT_ERROR_KINDS = frozenset({ErrorKind.CONNECTION, ErrorKind.REQUEST, ErrorKind.TIMEOUT})

# Order matters: subclasses are listed before the broader classes they extend.
_ERROR_KIND_BY_TYPE = (
    (TransientQueryError, ErrorKind.REQUEST),
    (ConnectionFailedError, ErrorKind.CONNECTION),
    (asyncpg.exceptions.IntegrityConstraintViolationError, ErrorKind.CONSTRAINT),
    (asyncpg.exceptions.QueryCanceledError, ErrorKind.TIMEOUT),
    (asyncio.TimeoutError, ErrorKind.TIMEOUT),
    (TimeoutError, ErrorKind.TIMEOUT),
    (asyncpg.exceptions.PostgresConnectionError, ErrorKind.CONNECTION),
    (asyncpg.exceptions.InterfaceError, ErrorKind.CONNECTION),
    (ConnectionError, ErrorKind.CONNECTION),
    (OSError, ErrorKind.CONNECTION),
    (asyncpg.exceptions.OperatorInterventionError, ErrorKind.REQUEST),
    (asyncpg.exceptions.InsufficientResourcesError, ErrorKind.REQUEST),
    (asyncpg.exceptions.TransactionRollbackError, ErrorKind.REQUEST),
)


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Map an exception to an ErrorKind by its type.

    Args:
        exc: Exception raised by the driver or the pool manager

    Returns:
        The matching ErrorKind, OTHER when nothing matches
    """
    for error_type, kind in _ERROR_KIND_BY_TYPE:
        if isinstance(exc, error_type):
            return kind
    return ErrorKind.OTHER
