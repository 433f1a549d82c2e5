"""Abstract base classes for text-to-speech providers.

This module defines the interface that all TTS providers must implement,
ensuring consistent behavior across different TTS backends, plus the shared
cache/retry/playback flow used by the network providers.
"""

import dataclasses
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from ..audio.player import AudioPlayer
from ..cache.audio_cache import AudioCache
from ..tts.errors import TTSAPIError, TTSAuthError, TTSError
from ..tts.models import ProviderInfo, SpeakResult, Voice
from ..tts.retry import (
    AttemptResult,
    ErrorKind,
    RetryPolicy,
    classify_error,
    run_with_retry,
    status_code_of,
)

logger = logging.getLogger(__name__)


class TTSProvider(ABC):
    """Abstract base class for text-to-speech providers.

    All TTS providers must inherit from this class and implement the
    required methods. Expected failures (bad credentials, rate limits,
    missing configuration, empty text) are reported through the returned
    SpeakResult; speak() does not raise for them.

    is_available() must agree with speak(): a provider reports itself
    available exactly when speak() would get past its own precondition
    checks.
    """

    @abstractmethod
    async def speak(self, text: str) -> SpeakResult:
        """Synthesize and play `text`.

        Empty or whitespace-only text yields a failed result without any
        backend request or spawned process.
        """
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True when speak() can reach its backend."""
        pass

    @abstractmethod
    def get_provider_info(self) -> ProviderInfo:
        """Return the static provider description."""
        pass

    @abstractmethod
    def configure(self, config: Mapping[str, Any]) -> None:
        """Merge `config` into the current configuration."""
        pass

    @abstractmethod
    def get_configuration(self) -> dict[str, Any]:
        """Return a copy of the current configuration."""
        pass

    async def get_voices(self) -> list[Voice]:
        """Return available voices for this provider."""
        return []

    async def preload_audio(self, text: str) -> None:
        """Warm the audio cache for `text`. Best-effort; never raises."""
        return None

    def cancel_speech(self) -> bool:
        """Stop in-flight local playback.

        Returns:
            True if something was stopped
        """
        return False


class BaseTTSProvider(TTSProvider):
    """Provider with a dataclass-backed configuration record.

    Subclasses set `config_class` and may override `_normalize()` to clamp
    or validate fields whenever configuration changes.
    """

    config_class: type

    def __init__(self, options: Mapping[str, Any] | None = None) -> None:
        self._config = self._normalize(self.config_class())
        if options:
            self.configure(options)

    def configure(self, config: Mapping[str, Any]) -> None:
        """Merge known fields into the configuration.

        Raises:
            ValueError: If `config` names a field this provider does not have
        """
        known = {f.name for f in dataclasses.fields(self._config)}
        unknown = sorted(set(config) - known)
        if unknown:
            raise ValueError(
                f"Unknown {self.get_provider_info().name} option(s): "
                f"{', '.join(unknown)}"
            )
        self._config = self._normalize(dataclasses.replace(self._config, **config))

    def get_configuration(self) -> dict[str, Any]:
        return dataclasses.asdict(self._config)

    def _normalize(self, config: Any) -> Any:
        return config

    @staticmethod
    def _validate_text(text: str | None) -> str | None:
        if not text or not text.strip():
            return None
        return text.strip()

    def _success(self, **kwargs: Any) -> SpeakResult:
        return SpeakResult(success=True, provider=self.get_provider_info().name, **kwargs)

    def _failure(self, error: str) -> SpeakResult:
        return SpeakResult(
            success=False, provider=self.get_provider_info().name, error=error
        )


class CloudTTSProvider(BaseTTSProvider):
    """Shared flow for paid network providers.

    speak() runs: validate text -> check credentials -> cache lookup ->
    backend call through the bounded retry loop -> cache store -> playback.
    Playback failures are logged and do not affect the result.
    """

    #: Message used for results of empty input
    EMPTY_TEXT_ERROR = "Empty text: nothing to speak"

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        cache: AudioCache | None = None,
        player: AudioPlayer | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        super().__init__(options)
        self._cache = cache if cache is not None else AudioCache()
        self._player = player if player is not None else AudioPlayer()
        self.retry_policy = retry_policy or RetryPolicy()

    @abstractmethod
    def _check_ready(self) -> TTSError | None:
        """Return the error speak() would fail with before any request, if any."""

    @abstractmethod
    def _cache_parameters(self) -> tuple[str, str, float]:
        """Return (model, voice, speed) for cache key generation."""

    @abstractmethod
    def _cache_metadata(self) -> dict[str, Any]:
        """Return metadata stored alongside cached audio."""

    @abstractmethod
    async def _request_audio(self, text: str) -> bytes:
        """Perform a single backend request."""

    @property
    def audio_format(self) -> str:
        return "mp3"

    async def is_available(self) -> bool:
        return self._check_ready() is None

    def _prepare_text(self, text: str) -> str:
        return text

    def _classify(self, error: BaseException) -> ErrorKind:
        return classify_error(error)

    async def speak(self, text: str) -> SpeakResult:
        start = time.monotonic()

        clean_text = self._validate_text(text)
        if clean_text is None:
            return self._failure(self.EMPTY_TEXT_ERROR)

        not_ready = self._check_ready()
        if not_ready is not None:
            return self._failure(str(not_ready))

        try:
            audio, cached = await self._fetch_audio(self._prepare_text(clean_text))
        except TTSError as e:
            logger.error(f"{self.get_provider_info().display_name} failed: {e}")
            return self._failure(str(e))

        await self._play(audio)

        return self._success(
            cached=cached, duration_ms=int((time.monotonic() - start) * 1000)
        )

    async def synthesize(self, text: str) -> bytes:
        """Return audio bytes for `text` without playing them.

        Raises:
            ValueError: If text is empty
            TTSAuthError: If credentials are missing or rejected
            TTSAPIError: If the backend call fails
            TTSError: If required configuration is missing
        """
        clean_text = self._validate_text(text)
        if clean_text is None:
            raise ValueError("Text cannot be empty")

        not_ready = self._check_ready()
        if not_ready is not None:
            raise not_ready

        audio, _ = await self._fetch_audio(self._prepare_text(clean_text))
        return audio

    async def preload_audio(self, text: str) -> None:
        try:
            await self.synthesize(text)
        except Exception as e:
            logger.warning(f"Preload failed for '{text[:30]}': {e}")

    def cancel_speech(self) -> bool:
        return self._player.stop()

    async def _fetch_audio(self, text: str) -> tuple[bytes, bool]:
        """Return (audio, cached) for prepared text."""
        model, voice, speed = self._cache_parameters()
        key = self._cache.generate_key(text, model, voice, speed)

        try:
            entry = await self._cache.get(key)
        except Exception as e:
            logger.error(f"Cache lookup failed: {e}")
            entry = None

        if entry is not None:
            logger.debug(f"Cache hit for '{text[:30]}' ({len(entry.data)} bytes)")
            return entry.data, True

        result = await run_with_retry(
            lambda: self._request_audio(text), self.retry_policy, self._classify
        )
        if not result.ok or not result.value:
            raise self._error_for(result)

        audio = result.value
        try:
            await self._cache.set(key, audio, self._cache_metadata())
        except Exception as e:
            logger.error(f"Failed to cache audio: {e}")

        return audio, False

    def _error_for(self, result: AttemptResult[bytes]) -> TTSError:
        error = result.error
        if error is None:
            return TTSAPIError("No audio data received from API")

        tries = f"after {result.attempts} attempt{'s' if result.attempts != 1 else ''}"
        status = status_code_of(error)

        if result.kind is ErrorKind.AUTH:
            return TTSAuthError(f"Invalid API key: {error}", error)
        if result.kind is ErrorKind.RATE_LIMIT:
            return TTSAPIError(f"Rate limit exceeded {tries}", 429, error)
        if result.kind is ErrorKind.SERVER:
            return TTSAPIError(f"Server error - try again later ({tries})", status, error)
        if result.kind is ErrorKind.NETWORK:
            return TTSAPIError(f"Network error - check connection ({tries})", None, error)
        if isinstance(error, TTSError):
            return error
        return TTSAPIError(f"API call failed: {error}", status, error)

    async def _play(self, audio: bytes) -> None:
        try:
            await self._player.play_bytes_async(audio, suffix=f".{self.audio_format}")
        except Exception as e:
            logger.warning(f"Audio playback failed, synthesis succeeded: {e}")
