"""TTS (Text-to-Speech) package for hookvoice.

Shared result models, the exception hierarchy and the bounded retry loop
used by every provider.
"""

from .errors import (
    NoProviderAvailableError,
    ProviderRegistrationError,
    TTSAPIError,
    TTSAuthError,
    TTSError,
    UnknownProviderError,
)
from .models import ProviderInfo, SpeakResult, Voice

__all__ = [
    "NoProviderAvailableError",
    "ProviderInfo",
    "ProviderRegistrationError",
    "SpeakResult",
    "TTSAPIError",
    "TTSAuthError",
    "TTSError",
    "UnknownProviderError",
    "Voice",
]
