"""
Runtime constants for the TTS backend.
Subscription tiers, quota limits, retry tuning and other fixed values.
"""

# Subscription Tiers
TIER_FREE = "free"
TIER_PRO = "pro"
TIER_PREMIUM = "premium"

# Monthly character quota per tier
FREE_MONTHLY_CHARACTER_LIMIT = 5000
PRO_MONTHLY_CHARACTER_LIMIT = 100000
PREMIUM_MONTHLY_CHARACTER_LIMIT = 500000

TIER_CHARACTER_LIMITS = {
    TIER_FREE: FREE_MONTHLY_CHARACTER_LIMIT,
    TIER_PRO: PRO_MONTHLY_CHARACTER_LIMIT,
    TIER_PREMIUM: PREMIUM_MONTHLY_CHARACTER_LIMIT,
}

# Query retry wrapper (2 retries after the first attempt = 3 total)
DB_RETRY_MAX_RETRIES = 2
DB_RETRY_BASE_DELAY_SECONDS = 0.5

# Schema initialization has its own, slower loop
SCHEMA_INIT_MAX_ATTEMPTS = 3
SCHEMA_INIT_BASE_DELAY_SECONDS = 1.0

# Pool defaults
DEFAULT_POOL_MIN_SIZE = 0
DEFAULT_POOL_MAX_SIZE = 10
DEFAULT_POOL_IDLE_TIMEOUT_SECONDS = 30.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 30.0
DEFAULT_COMMAND_TIMEOUT_SECONDS = 30.0

# Audio history
DEFAULT_AUDIO_FILES_LIMIT = 10
DASHBOARD_RECENT_FILES_LIMIT = 5
DEFAULT_VOICE = "en-US-JennyNeural"
AUDIO_ID_PREFIX = "audio"
AUDIO_ID_RANDOM_LENGTH = 9
