"""Audio playback package for hookvoice.

This package plays synthesized audio through the platform's command-line
audio player.
"""

from .player import AudioPlayer

__all__ = ["AudioPlayer"]
