"""Provider abstraction for text-to-speech services.

This module provides a registry for managing TTS providers, allowing
runtime selection of different TTS backends by name.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import TTSProvider

from ..tts.errors import ProviderRegistrationError, UnknownProviderError
from .elevenlabs import ElevenLabsProvider
from .macos import MacOSProvider
from .openai import OpenAIProvider

__all__ = ["ProviderRegistry", "default_registry"]


class ProviderRegistry:
    """Registry mapping provider names to provider classes.

    Each registry is an independent instance; tests build their own and
    call reset() to start from an empty table.
    """

    def __init__(self) -> None:
        self._providers: dict[str, type["TTSProvider"]] = {}

    def register(self, name: str, provider_class: type["TTSProvider"]) -> None:
        """Register a TTS provider.

        Args:
            name: Name to register the provider under
            provider_class: Provider class that implements TTSProvider

        Raises:
            ProviderRegistrationError: If name is already registered
        """
        if name in self._providers:
            raise ProviderRegistrationError(f"Provider {name} is already registered")
        self._providers[name] = provider_class

    def get(self, name: str) -> type["TTSProvider"]:
        """Get a provider class by name.

        Raises:
            UnknownProviderError: If provider name not found
        """
        if name not in self._providers:
            raise UnknownProviderError(name, self.names())
        return self._providers[name]

    def names(self) -> list[str]:
        """Registered provider names in registration order."""
        return list(self._providers)

    def reset(self) -> None:
        """Remove all registered providers."""
        self._providers.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._providers


def default_registry() -> ProviderRegistry:
    """Return a new registry with the built-in providers registered."""
    registry = ProviderRegistry()
    registry.register("openai", OpenAIProvider)
    registry.register("elevenlabs", ElevenLabsProvider)
    registry.register("macos", MacOSProvider)
    return registry
