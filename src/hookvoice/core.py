"""Core functionality for hookvoice - orchestrates providers, cache and playback."""

import dataclasses
import logging

from .audio.player import AudioPlayer
from .cache.audio_cache import AudioCache
from .cache.models import CacheStats
from .config import HookvoiceConfig
from .providers.base import CloudTTSProvider, TTSProvider
from .providers.factory import AUTO, FactoryConfig, ProviderFactory
from .tts.models import SpeakResult, Voice

logger = logging.getLogger(__name__)

# Provider name -> option holding its voice
VOICE_OPTIONS = {
    "openai": "voice",
    "elevenlabs": "voice_id",
    "macos": "voice",
}


def resolve_factory_config(
    config: HookvoiceConfig,
    provider: str | None = None,
    voice: str | None = None,
) -> FactoryConfig:
    """Apply command-line overrides to the configured provider selection.

    Raises:
        ValueError: If a voice is given without a concrete provider
    """
    factory_config = config.factory
    if provider:
        factory_config = dataclasses.replace(factory_config, provider=provider)

    if voice:
        name = factory_config.provider
        if name == AUTO:
            raise ValueError("A voice can only be set together with a provider")
        options = {k: dict(v) for k, v in factory_config.provider_options.items()}
        options.setdefault(name, {})[VOICE_OPTIONS.get(name, "voice")] = voice
        factory_config = dataclasses.replace(factory_config, provider_options=options)

    return factory_config


def build_factory(
    config: HookvoiceConfig,
    cache: bool = True,
    player: AudioPlayer | None = None,
) -> ProviderFactory:
    """Create a factory whose cloud providers share one audio cache."""
    cache_config = config.cache
    if not cache:
        cache_config = dataclasses.replace(cache_config, enabled=False)
    return ProviderFactory(cache=AudioCache(cache_config), player=player)


async def _resolve_provider(
    factory: ProviderFactory, factory_config: FactoryConfig
) -> TTSProvider:
    if factory_config.provider == AUTO:
        return await factory.detect_best_provider(factory_config)
    return factory.create(factory_config)


async def speak_text(
    text: str,
    config: HookvoiceConfig,
    provider: str | None = None,
    voice: str | None = None,
    output_file: str | None = None,
    cache: bool = True,
) -> SpeakResult:
    """Convert text to speech and play or save the audio.

    Playback goes through the configured fallback chain. Saving to a file
    needs the audio bytes, so it uses a single cloud provider and no fallback.

    Args:
        text: Text to convert to speech
        config: Loaded configuration
        provider: Provider name overriding the configured one
        voice: Voice overriding the provider's configured voice
        output_file: Optional file path to save audio instead of playing
        cache: Whether to use the audio cache

    Returns:
        SpeakResult of the provider that handled the text

    Raises:
        TTSError: If saving and synthesis fails or no provider is usable
        ValueError: If saving with a provider that produces no audio bytes
        OSError: If file save fails
    """
    factory_config = resolve_factory_config(config, provider, voice)
    player = AudioPlayer()
    factory = build_factory(config, cache=cache, player=player)

    if output_file:
        instance = await _resolve_provider(factory, factory_config)
        if not isinstance(instance, CloudTTSProvider):
            raise ValueError(
                f"Provider {instance.get_provider_info().name} cannot save audio to a file"
            )
        audio = await instance.synthesize(text)
        player.save_to_file(audio, output_file)
        logger.debug(f"Saved {len(audio)} bytes to {output_file}")
        return SpeakResult(success=True, provider=instance.get_provider_info().name)

    instance = await factory.create_with_fallback(factory_config)
    logger.debug(f"Speaking with {instance.get_provider_info().name}")
    return await instance.speak(text)


async def list_available_voices(
    config: HookvoiceConfig, provider: str | None = None
) -> list[Voice]:
    """List voices of the named (or auto-detected) provider.

    Raises:
        UnknownProviderError: If provider not found
        NoProviderAvailableError: If auto-detection finds nothing
    """
    factory_config = resolve_factory_config(config, provider)
    factory = build_factory(config)
    instance = await _resolve_provider(factory, factory_config)
    return await instance.get_voices()


async def cache_stats(config: HookvoiceConfig) -> CacheStats:
    """Return statistics for the configured audio cache."""
    return await AudioCache(config.cache).get_stats()


async def cleanup_cache(config: HookvoiceConfig) -> int:
    """Remove expired and corrupted entries and enforce cache budgets.

    Returns:
        Number of removed entries
    """
    removed = await AudioCache(config.cache).cleanup()
    logger.info(f"Removed {removed} cache entries")
    return removed
