"""
Database models and data classes.
Type-safe representations of database entities and read models.
"""

import json
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from tts_backend.config.constants import (
    FREE_MONTHLY_CHARACTER_LIMIT,
    TIER_CHARACTER_LIMITS,
    TIER_FREE,
)


def get_character_limit(subscription_status: Optional[str]) -> int:
    """Monthly character limit for a tier; unknown or missing tiers get the free limit."""
    return TIER_CHARACTER_LIMITS.get(subscription_status or TIER_FREE, FREE_MONTHLY_CHARACTER_LIMIT)


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


class RowModel:
    """Mixin for dataclasses built from asyncpg records."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {f.name: _serialize(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]):
        """Create the model from a database row, ignoring unknown columns."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in dict(row).items() if k in names})


@dataclass
class User(RowModel):
    """Full user account row."""

    id: str
    email: str
    name: str
    password: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    login_count: int = 0
    subscription_status: str = TIER_FREE
    monthly_usage: int = 0
    usage_reset_date: Optional[datetime] = None


@dataclass
class UserLoginHistory(RowModel):
    """Login tracking projection of a user."""

    id: str
    email: str
    name: str
    last_login_at: Optional[datetime] = None
    login_count: int = 0
    created_at: Optional[datetime] = None


@dataclass
class UserSubscription(RowModel):
    """Subscription and usage projection of a user."""

    id: str
    email: str
    name: str
    subscription_status: str = TIER_FREE
    monthly_usage: int = 0
    usage_reset_date: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    login_count: int = 0
    created_at: Optional[datetime] = None


@dataclass
class NewAudioFile:
    """Audio file data to be saved."""

    user_id: str
    filename: str
    text: str
    voice: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None
    audio_url: Optional[str] = None
    file_size: Optional[int] = None

    def settings_json(self) -> Optional[str]:
        """Settings in their stored text form, or None when absent."""
        if self.settings is None:
            return None
        return json.dumps(self.settings)


@dataclass
class AudioFile(RowModel):
    """Stored audio file row (without the owning user id)."""

    id: str
    filename: str
    text: str
    voice: Optional[str] = None
    settings: Optional[str] = None
    audio_url: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def settings_dict(self) -> Optional[Dict[str, Any]]:
        """Decoded synthesis settings."""
        if self.settings is None:
            return None
        return json.loads(self.settings)


@dataclass
class QuotaCheck:
    """Result of a usage check. can_use=False is the quota-exceeded signal."""

    can_use: bool
    current_usage: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(self.limit - self.current_usage, 0)

    def to_dict(self, needed: Optional[int] = None) -> Dict[str, Any]:
        result = {
            "can_use": self.can_use,
            "current": self.current_usage,
            "limit": self.limit,
            "remaining": self.remaining,
        }
        if needed is not None:
            result["needed"] = needed
        return result


@dataclass
class UsageSummary:
    """Current usage against the tier limit."""

    current: int
    limit: int

    @property
    def remaining(self) -> int:
        return self.limit - self.current

    def to_dict(self) -> Dict[str, Any]:
        return {"current": self.current, "limit": self.limit, "remaining": self.remaining}


@dataclass
class UserSummary:
    """User block of the dashboard read model."""

    id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    subscription_status: str = TIER_FREE
    monthly_usage: int = 0
    usage_reset_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "subscription_status": self.subscription_status,
            "monthly_usage": self.monthly_usage,
            "usage_reset_date": _serialize(self.usage_reset_date),
        }


@dataclass
class UserDashboard:
    """User summary, usage summary and most recent audio files."""

    user: UserSummary
    usage: UsageSummary
    recent_files: List[AudioFile] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user.to_dict(),
            "usage": self.usage.to_dict(),
            "recent_files": [f.to_dict() for f in self.recent_files],
        }


@dataclass
class SynthesisRecord:
    """Outcome of accounting for a finished synthesis."""

    audio_id: Optional[str]
    characters: int
    usage: UsageSummary


@dataclass
class ConnectionCheck:
    """Result of a database round-trip check."""

    success: bool
    server_time: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "server_time": _serialize(self.server_time),
            "error": self.error,
        }
