"""Pytest configuration and fixtures for hookvoice tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hookvoice.cache.audio_cache import AudioCache
from hookvoice.cache.models import AudioCacheConfig
from hookvoice.tts.retry import RetryPolicy

ENV_VARS = (
    "OPENAI_API_KEY",
    "ELEVENLABS_API_KEY",
    "ELEVENLABS_VOICE_ID",
    "HOOKVOICE_PROVIDER",
    "HOOKVOICE_FALLBACK_PROVIDER",
    "HOOKVOICE_CACHE_DIR",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch) -> None:
    """Keep real API keys and hookvoice settings out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    import hookvoice.config

    monkeypatch.setattr(hookvoice.config, "_cached_config", None)


@pytest.fixture
def cache_config(tmp_path: Path) -> AudioCacheConfig:
    """Cache configuration rooted in a per-test directory."""
    return AudioCacheConfig(cache_dir=tmp_path / "cache")


@pytest.fixture
def audio_cache(cache_config: AudioCacheConfig) -> AudioCache:
    """Audio cache rooted in a per-test directory."""
    return AudioCache(cache_config)


@pytest.fixture
def fake_player() -> MagicMock:
    """Audio player that records playback instead of spawning a process."""
    player = MagicMock()
    player.play_bytes_async = AsyncMock()
    player.stop.return_value = False
    return player


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Default attempt ceiling without backoff delays."""
    return RetryPolicy(base_delay=0, max_delay=0)
