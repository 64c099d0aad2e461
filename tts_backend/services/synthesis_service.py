"""
Usage accounting around a speech synthesis request.
The synthesis itself happens elsewhere; this service gates it on the quota
and records the outcome once audio was produced.
"""

import logging
from typing import Any, Dict, Optional

from tts_backend.config import RetryConfig
from tts_backend.config.constants import DEFAULT_VOICE
from tts_backend.database import (
    AudioFileRepository,
    DatabasePool,
    NewAudioFile,
    QuotaCheck,
    SynthesisRecord,
)
from tts_backend.services.usage_service import UsageQuotaService
from tts_backend.utils.timezone import epoch_millis

logger = logging.getLogger(__name__)


class SynthesisAccountingService:
    """Quota gate and bookkeeping for synthesis requests."""

    def __init__(self, db: DatabasePool, retry: Optional[RetryConfig] = None):
        self.db = db
        self.usage_service = UsageQuotaService(db, retry)
        self.audio_repo = AudioFileRepository(db, retry)

    async def authorize(self, user_id: str, text: str, is_preview: bool = False) -> QuotaCheck:
        """
        Decide whether a synthesis of ``text`` may start.

        Previews are free and never checked against the quota.
        """
        characters = len(text)
        if is_preview:
            summary = await self.usage_service.get_usage_summary(user_id)
            return QuotaCheck(can_use=True, current_usage=summary.current, limit=summary.limit)
        return await self.usage_service.can_use_characters(user_id, characters)

    async def record_success(
        self,
        user_id: str,
        text: str,
        voice: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
        file_size: Optional[int] = None,
        audio_url: Optional[str] = None,
        is_preview: bool = False,
    ) -> SynthesisRecord:
        """
        Bill the characters and store the audio record for a finished synthesis.

        Previews are neither billed nor stored.

        Returns:
            SynthesisRecord with the new audio ID (None for previews) and refreshed usage
        """
        characters = len(text)
        audio_id = None

        if not is_preview:
            await self.usage_service.update_usage(user_id, characters)
            audio_id = await self.audio_repo.save_audio_file(
                NewAudioFile(
                    user_id=user_id,
                    filename=f"tts_{epoch_millis()}.mp3",
                    text=text,
                    voice=voice or DEFAULT_VOICE,
                    settings=settings,
                    audio_url=audio_url,
                    file_size=file_size,
                )
            )
            logger.info(f"Billed {characters} characters to user {user_id} (audio {audio_id})")

        usage = await self.usage_service.get_usage_summary(user_id)
        return SynthesisRecord(audio_id=audio_id, characters=characters, usage=usage)
