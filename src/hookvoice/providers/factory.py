"""Provider construction, auto-detection and primary/secondary fallback."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..audio.player import AudioPlayer
from ..cache.audio_cache import AudioCache
from ..tts.errors import NoProviderAvailableError
from ..tts.models import ProviderInfo, SpeakResult, Voice
from . import ProviderRegistry, default_registry
from .base import CloudTTSProvider, TTSProvider

logger = logging.getLogger(__name__)

AUTO = "auto"
NO_FALLBACK = "none"

# Cloud tiers probed by auto-detection, best first
DETECTION_PRIORITY = ("elevenlabs", "openai")
DEFAULT_FINAL_TIER = "macos"


@dataclass
class FactoryConfig:
    """Provider selection handed to ProviderFactory.

    Args:
        provider: Provider name, or "auto" to pick the best available one
        fallback_provider: Secondary provider name, or "none"/None for no fallback
        provider_options: Provider name -> options passed to its constructor
    """

    provider: str = AUTO
    fallback_provider: str | None = None
    provider_options: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def has_fallback(self) -> bool:
        return bool(self.fallback_provider) and self.fallback_provider != NO_FALLBACK

    def options_for(self, name: str) -> dict[str, Any]:
        return dict(self.provider_options.get(name) or {})


class FallbackProvider(TTSProvider):
    """Wraps a primary provider with at most one secondary.

    A failed or raising primary speak() is re-dispatched to the secondary
    once; the secondary's result is returned as-is.
    """

    def __init__(
        self, primary: TTSProvider, secondary: TTSProvider | None = None
    ) -> None:
        self.primary = primary
        self.secondary = secondary

    async def speak(self, text: str) -> SpeakResult:
        primary_name = self.primary.get_provider_info().name
        result = None
        try:
            result = await self.primary.speak(text)
        except Exception as e:
            logger.warning(f"Primary provider {primary_name} raised: {e}")
            primary_error = str(e)
        else:
            if result.success:
                return result
            primary_error = result.error or "unknown error"
            logger.info(f"Primary provider {primary_name} failed: {primary_error}")

        if self.secondary is None:
            if result is not None:
                return result
            return SpeakResult(
                success=False,
                provider=primary_name,
                error=f"All providers failed: {primary_error}",
            )

        secondary_name = self.secondary.get_provider_info().name
        logger.info(f"Falling back to {secondary_name}")
        try:
            return await self.secondary.speak(text)
        except Exception as e:
            logger.error(f"Fallback provider {secondary_name} raised: {e}")
            return SpeakResult(
                success=False,
                provider=secondary_name,
                error=f"All providers failed: {primary_error}; {e}",
            )

    async def is_available(self) -> bool:
        if await self.primary.is_available():
            return True
        if self.secondary is not None:
            return await self.secondary.is_available()
        return False

    def get_provider_info(self) -> ProviderInfo:
        return self.primary.get_provider_info()

    def configure(self, config: Mapping[str, Any]) -> None:
        self.primary.configure(config)

    def get_configuration(self) -> dict[str, Any]:
        return self.primary.get_configuration()

    async def get_voices(self) -> list[Voice]:
        return await self.primary.get_voices()

    async def preload_audio(self, text: str) -> None:
        await self.primary.preload_audio(text)

    def cancel_speech(self) -> bool:
        return self.primary.cancel_speech()


class ProviderFactory:
    """Creates providers from a FactoryConfig.

    Cloud providers built by one factory share its audio cache and player.
    """

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        cache: AudioCache | None = None,
        player: AudioPlayer | None = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self._cache = cache
        self._player = player

    def register_provider(self, name: str, provider_class: type[TTSProvider]) -> None:
        self.registry.register(name, provider_class)

    def available_providers(self) -> list[str]:
        return self.registry.names()

    def _instantiate(self, name: str, config: FactoryConfig) -> TTSProvider:
        provider_class = self.registry.get(name)
        options = config.options_for(name)
        if issubclass(provider_class, CloudTTSProvider):
            return provider_class(options, cache=self._cache, player=self._player)
        return provider_class(options)  # type: ignore[call-arg]

    def create(self, config: FactoryConfig) -> TTSProvider:
        """Instantiate the provider named by config.provider.

        Raises:
            ValueError: If config.provider is "auto"
            UnknownProviderError: If the name is not registered
        """
        if config.provider == AUTO:
            raise ValueError("Use detect_best_provider() for auto mode")
        return self._instantiate(config.provider, config)

    def _detection_order(self, config: FactoryConfig) -> list[str]:
        final_tier = config.fallback_provider if config.has_fallback else None
        order = list(DETECTION_PRIORITY)
        order.append(final_tier or DEFAULT_FINAL_TIER)
        # Keep the first occurrence of each name
        return list(dict.fromkeys(order))

    async def detect_best_provider(self, config: FactoryConfig) -> TTSProvider:
        """Return the first available provider in priority order.

        Raises:
            NoProviderAvailableError: If no registered provider is available
        """
        for name in self._detection_order(config):
            if name not in self.registry:
                continue
            provider = self._instantiate(name, config)
            if await provider.is_available():
                logger.debug(f"Auto-detected provider: {name}")
                return provider
            logger.debug(f"Provider {name} not available")
        raise NoProviderAvailableError("No TTS provider available")

    async def create_with_fallback(self, config: FactoryConfig) -> TTSProvider:
        """Create the configured provider wrapped with its fallback.

        Raises:
            UnknownProviderError: If a named provider is not registered
            NoProviderAvailableError: If "auto" finds nothing and no fallback is set
        """
        fallback_name = config.fallback_provider if config.has_fallback else None

        if config.provider == AUTO:
            try:
                primary = await self.detect_best_provider(config)
            except NoProviderAvailableError:
                if fallback_name is None:
                    raise
                logger.info(f"No provider detected, using fallback {fallback_name}")
                return FallbackProvider(self._instantiate(fallback_name, config))
        else:
            primary = self.create(config)

        secondary = None
        if fallback_name and fallback_name != primary.get_provider_info().name:
            secondary = self._instantiate(fallback_name, config)

        return FallbackProvider(primary, secondary)
