"""
Services module for the TTS backend.
Provides organized access to quota enforcement and synthesis accounting.
"""

from .usage_service import UsageQuotaService
from .synthesis_service import SynthesisAccountingService

__all__ = [
    "UsageQuotaService",
    "SynthesisAccountingService",
]
