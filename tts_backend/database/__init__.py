"""
Database module with connection pooling, retries and repositories.
Provides clean data access layer with type safety.
"""

from .connection import DatabasePool, test_connection
from .models import (
    User,
    UserLoginHistory,
    UserSubscription,
    NewAudioFile,
    AudioFile,
    QuotaCheck,
    UsageSummary,
    UserSummary,
    UserDashboard,
    SynthesisRecord,
    ConnectionCheck,
    get_character_limit,
)
from .retry import with_retry
from .schema import initialize_database, create_tables
from .repositories import (
    UserRepository,
    AudioFileRepository,
    DashboardRepository,
    generate_audio_id,
    normalize_email,
)

__all__ = [
    # Connection
    "DatabasePool",
    "test_connection",
    # Models
    "User",
    "UserLoginHistory",
    "UserSubscription",
    "NewAudioFile",
    "AudioFile",
    "QuotaCheck",
    "UsageSummary",
    "UserSummary",
    "UserDashboard",
    "SynthesisRecord",
    "ConnectionCheck",
    "get_character_limit",
    # Retry
    "with_retry",
    # Schema
    "initialize_database",
    "create_tables",
    # Repositories
    "UserRepository",
    "AudioFileRepository",
    "DashboardRepository",
    "generate_audio_id",
    "normalize_email",
]
