"""High-level API for hookvoice library usage."""

from pathlib import Path

from .config import HookvoiceConfig, load_config
from .core import speak_text
from .tts.models import SpeakResult


async def speak(
    text: str,
    provider: str | None = None,
    voice: str | None = None,
    output: str | Path | None = None,
    cache: bool = True,
    config: HookvoiceConfig | None = None,
) -> SpeakResult:
    """Synthesize speech from text.

    Args:
        text: Text to speak
        provider: TTS provider name (configured provider if omitted)
        voice: Voice ID/name (provider-specific)
        output: File path to save audio (if None, plays audio)
        cache: Whether to use the audio cache
        config: Configuration to use instead of the config file

    Returns:
        SpeakResult describing which provider handled the text

    Raises:
        TTSError: If saving to a file and synthesis fails
        ValueError: If saving with a provider that produces no audio bytes
        OSError: If file save fails
    """
    # Convert output to string if Path
    output_str = str(output) if output else None

    return await speak_text(
        text,
        config or load_config(),
        provider=provider,
        voice=voice,
        output_file=output_str,
        cache=cache,
    )
