"""ElevenLabs text-to-speech provider implementation."""

import asyncio
import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from elevenlabs.client import ElevenLabs

from ..audio.player import AudioPlayer
from ..cache.audio_cache import AudioCache
from ..tts.errors import TTSAPIError, TTSAuthError, TTSError
from ..tts.models import ProviderInfo, Voice
from ..tts.retry import RetryPolicy
from .base import CloudTTSProvider

logger = logging.getLogger(__name__)

# Range accepted by ElevenLabs voice_settings.speed
MIN_SPEED = 0.7
MAX_SPEED = 1.2


@dataclass
class ElevenLabsConfig:
    """ElevenLabs provider settings.

    Args:
        api_key: ElevenLabs API key (falls back to ELEVENLABS_API_KEY)
        voice_id: Voice to synthesize with (falls back to ELEVENLABS_VOICE_ID)
        model_id: ElevenLabs model ID
        output_format: Codec, sample rate and bitrate, e.g. "mp3_44100_128"
        speed: Speaking speed (0.7-1.2, clamped)
        stability: Voice stability (0.0-1.0)
        similarity_boost: Voice similarity boost (0.0-1.0)
    """

    api_key: str = ""
    voice_id: str = ""
    model_id: str = "eleven_multilingual_v2"
    output_format: str = "mp3_44100_128"
    speed: float = 1.0
    stability: float = 0.5
    similarity_boost: float = 0.75


class ElevenLabsProvider(CloudTTSProvider):
    """ElevenLabs TTS provider implementation.

    Requires both an API key and a voice ID. The SDK streams audio chunks;
    they are collected into a single buffer before caching and playback.
    """

    config_class = ElevenLabsConfig

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        cache: AudioCache | None = None,
        player: AudioPlayer | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize ElevenLabs provider.

        Args:
            options: ElevenLabsConfig fields. api_key and voice_id default to
                the ELEVENLABS_API_KEY and ELEVENLABS_VOICE_ID environment
                variables.
            cache: Audio cache (a default on-disk cache when omitted)
            player: Audio player used for playback
            retry_policy: Attempt ceiling and backoff for API calls
        """
        super().__init__(
            options, cache=cache, player=player, retry_policy=retry_policy
        )
        if not self._config.api_key:
            self._config.api_key = os.getenv("ELEVENLABS_API_KEY", "")
        if not self._config.voice_id:
            self._config.voice_id = os.getenv("ELEVENLABS_VOICE_ID", "")

        self._client: ElevenLabs | None = None
        self._client_key: str | None = None

        # Cache for voices to avoid repeated API calls
        self._voices_cache: list[Voice] | None = None

    @property
    def audio_format(self) -> str:
        return self._config.output_format.split("_", 1)[0]

    def get_provider_info(self) -> ProviderInfo:
        return ProviderInfo(
            name="elevenlabs",
            display_name="ElevenLabs",
            version="1.0.0",
            requires_api_key=True,
            supported_features=("speak", "voices", "speed", "cache"),
        )

    def _normalize(self, config: ElevenLabsConfig) -> ElevenLabsConfig:
        for name in ("stability", "similarity_boost"):
            value = getattr(config, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0")
        speed = max(MIN_SPEED, min(MAX_SPEED, float(config.speed)))
        return dataclasses.replace(config, speed=speed)

    def _check_ready(self) -> TTSError | None:
        if not self._config.api_key:
            return TTSAuthError(
                "ElevenLabs API key not configured. Set ELEVENLABS_API_KEY "
                "or provide api_key."
            )
        if not self._config.voice_id:
            return TTSError(
                "ElevenLabs voiceId not configured. Set ELEVENLABS_VOICE_ID "
                "or provide voice_id."
            )
        return None

    def _cache_parameters(self) -> tuple[str, str, float]:
        return self._config.model_id, self._config.voice_id, self._config.speed

    def _cache_metadata(self) -> dict[str, Any]:
        return {
            "provider": "elevenlabs",
            "voice": self._config.voice_id,
            "model": self._config.model_id,
            "speed": self._config.speed,
            "format": self.audio_format,
        }

    def _get_client(self) -> ElevenLabs:
        if self._client is None or self._client_key != self._config.api_key:
            try:
                self._client = ElevenLabs(api_key=self._config.api_key)
            except Exception as e:
                raise TTSAuthError(
                    f"Failed to initialize ElevenLabs client: {e}", e
                ) from e
            self._client_key = self._config.api_key
        return self._client

    async def _request_audio(self, text: str) -> bytes:
        client = self._get_client()
        config = self._config

        # Run synchronous ElevenLabs client in thread to avoid blocking event loop
        def _sync_convert() -> bytes:
            audio_stream = client.text_to_speech.convert(
                voice_id=config.voice_id,
                text=text,
                model_id=config.model_id,
                output_format=config.output_format,
                voice_settings={
                    "stability": config.stability,
                    "similarity_boost": config.similarity_boost,
                    "speed": config.speed,
                },
                # Retries are driven by run_with_retry, not the SDK
                request_options={"max_retries": 0},
            )
            # Collect all audio chunks
            return b"".join(audio_stream)

        audio = await asyncio.to_thread(_sync_convert)
        if not audio:
            raise TTSAPIError("No audio data received from API")
        return audio

    async def get_voices(self) -> list[Voice]:
        """Get list of account voices.

        Results are cached after the first successful call. Failures are
        logged and produce an empty list.
        """
        if self._voices_cache is not None:
            return self._voices_cache
        if not self._config.api_key:
            return []

        client = self._get_client()

        def _sync_get_voices() -> list[Voice]:
            response = client.voices.get_all()
            voices = []
            for voice in response.voices:
                labels = getattr(voice, "labels", None) or {}
                voices.append(
                    Voice(
                        id=voice.voice_id,
                        name=voice.name or voice.voice_id,
                        language=labels.get("language", "en"),
                        gender=labels.get("gender"),
                        description=getattr(voice, "description", None),
                    )
                )
            return voices

        try:
            voices = await asyncio.to_thread(_sync_get_voices)
        except Exception as e:
            logger.error(f"Failed to list ElevenLabs voices: {e}")
            return []

        self._voices_cache = voices
        return voices
