"""OpenAI text-to-speech provider implementation."""

import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import openai
from openai import AsyncOpenAI

from ..audio.player import AudioPlayer
from ..cache.audio_cache import AudioCache
from ..tts.errors import TTSAuthError, TTSError
from ..tts.models import ProviderInfo, Voice
from ..tts.retry import ErrorKind, RetryPolicy, classify_error
from .base import CloudTTSProvider

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 4096
TRUNCATION_MARKER = "..."
MIN_SPEED = 0.25
MAX_SPEED = 4.0

# Accepted format option -> OpenAI response_format
RESPONSE_FORMATS = {
    "mp3": "mp3",
    "opus": "opus",
    "ogg": "opus",
    "aac": "aac",
    "flac": "flac",
    "wav": "wav",
    "pcm": "pcm",
}

OPENAI_VOICES = [
    Voice("alloy", "Alloy", "en-US", "neutral", "Neutral and balanced"),
    Voice("echo", "Echo", "en-US", "male", "Warm and conversational"),
    Voice("fable", "Fable", "en-US", "neutral", "Expressive and dynamic"),
    Voice("onyx", "Onyx", "en-US", "male", "Deep and authoritative"),
    Voice("nova", "Nova", "en-US", "female", "Friendly and upbeat"),
    Voice("shimmer", "Shimmer", "en-US", "female", "Soft and pleasant"),
]


@dataclass
class OpenAIConfig:
    """OpenAI provider settings.

    Args:
        api_key: OpenAI API key (falls back to OPENAI_API_KEY)
        model: Speech model, e.g. "tts-1" or "tts-1-hd"
        voice: Voice name
        speed: Playback speed multiplier (0.25-4.0, clamped)
        format: Output format (mp3, opus, aac, flac, wav, pcm)
        timeout: Per-request timeout in seconds
    """

    api_key: str = ""
    model: str = "tts-1"
    voice: str = "alloy"
    speed: float = 1.0
    format: str = "mp3"
    timeout: float = 30.0


class OpenAIProvider(CloudTTSProvider):
    """OpenAI TTS provider implementation.

    Synthesizes speech with the OpenAI audio API, caches the result and
    plays it through the system audio player.
    """

    config_class = OpenAIConfig

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        cache: AudioCache | None = None,
        player: AudioPlayer | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize OpenAI provider.

        Args:
            options: OpenAIConfig fields. api_key defaults to the
                OPENAI_API_KEY environment variable.
            cache: Audio cache (a default on-disk cache when omitted)
            player: Audio player used for playback
            retry_policy: Attempt ceiling and backoff for API calls
        """
        super().__init__(
            options, cache=cache, player=player, retry_policy=retry_policy
        )
        if not self._config.api_key:
            self._config.api_key = os.getenv("OPENAI_API_KEY", "")
        self._client: AsyncOpenAI | None = None
        self._client_key: str | None = None

    @property
    def audio_format(self) -> str:
        return self._config.format

    def get_provider_info(self) -> ProviderInfo:
        return ProviderInfo(
            name="openai",
            display_name="OpenAI TTS",
            version="1.0.0",
            requires_api_key=True,
            supported_features=("speak", "voices", "speed", "formats", "cache"),
        )

    async def get_voices(self) -> list[Voice]:
        return list(OPENAI_VOICES)

    def _normalize(self, config: OpenAIConfig) -> OpenAIConfig:
        fmt = str(config.format).lower()
        if fmt not in RESPONSE_FORMATS:
            raise ValueError(
                f"Unsupported OpenAI format '{config.format}'. "
                f"Choose one of: {', '.join(sorted(RESPONSE_FORMATS))}"
            )
        speed = max(MIN_SPEED, min(MAX_SPEED, float(config.speed)))
        return dataclasses.replace(config, format=fmt, speed=speed)

    def _check_ready(self) -> TTSError | None:
        if not self._config.api_key:
            return TTSAuthError(
                "OpenAI API key not configured. Set OPENAI_API_KEY or provide api_key."
            )
        return None

    def _prepare_text(self, text: str) -> str:
        if len(text) <= MAX_INPUT_CHARS:
            return text
        logger.info(f"Truncating {len(text)} characters to {MAX_INPUT_CHARS}")
        return text[: MAX_INPUT_CHARS - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER

    def _cache_parameters(self) -> tuple[str, str, float]:
        return self._config.model, self._config.voice, self._config.speed

    def _cache_metadata(self) -> dict[str, Any]:
        return {
            "provider": "openai",
            "voice": self._config.voice,
            "model": self._config.model,
            "speed": self._config.speed,
            "format": self._config.format,
        }

    def _classify(self, error: BaseException) -> ErrorKind:
        # APITimeoutError is a subclass of APIConnectionError
        if isinstance(error, openai.APIConnectionError):
            return ErrorKind.NETWORK
        return classify_error(error)

    def _get_client(self) -> AsyncOpenAI:
        # Retries are driven by run_with_retry, not the SDK
        if self._client is None or self._client_key != self._config.api_key:
            self._client = AsyncOpenAI(
                api_key=self._config.api_key,
                max_retries=0,
                timeout=self._config.timeout,
            )
            self._client_key = self._config.api_key
        return self._client

    async def _request_audio(self, text: str) -> bytes:
        logger.debug(
            f"Requesting OpenAI speech: model={self._config.model} "
            f"voice={self._config.voice} speed={self._config.speed}"
        )
        response = await self._get_client().audio.speech.create(
            model=self._config.model,
            input=text,
            voice=self._config.voice,
            speed=self._config.speed,
            response_format=RESPONSE_FORMATS[self._config.format],
        )
        return response.content
