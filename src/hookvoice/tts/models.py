"""TTS data models shared by all providers."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Voice:
    """Information about an available voice.

    Args:
        id: Unique identifier for the voice
        name: Human-readable name of the voice
        language: BCP 47 language tag (e.g., "en-US")
        gender: Optional voice gender
        description: Optional voice description
    """

    id: str
    name: str
    language: str
    gender: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        """Validate voice information."""
        if not self.id or not self.id.strip():
            raise ValueError("id cannot be empty")
        if not self.name or not self.name.strip():
            raise ValueError("name cannot be empty")


@dataclass(frozen=True)
class ProviderInfo:
    """Static description of a provider."""

    name: str
    display_name: str
    version: str
    requires_api_key: bool
    supported_features: tuple[str, ...] = ()


@dataclass
class SpeakResult:
    """Outcome of a single speak() call.

    Args:
        success: Whether speech was synthesized
        provider: Name of the provider that produced this result
        cached: True if the audio came from the audio cache
        duration_ms: Wall-clock time spent synthesizing and playing
        error: Human-readable failure reason when success is False
    """

    success: bool
    provider: str
    cached: bool = False
    duration_ms: int | None = None
    error: str | None = None
