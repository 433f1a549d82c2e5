"""Unit tests for cache data models."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from hookvoice.cache.models import (
    DEFAULT_MAX_AGE_MS,
    DEFAULT_MAX_ENTRIES,
    DEFAULT_MAX_SIZE_BYTES,
    AudioCacheConfig,
    CacheRecord,
)


class TestAudioCacheConfig:
    """Test AudioCacheConfig defaults and validation."""

    def test_defaults(self) -> None:
        """Test default limits are 100 MiB, 7 days and 1000 entries."""
        config = AudioCacheConfig()

        assert config.max_size_bytes == DEFAULT_MAX_SIZE_BYTES == 100 * 1024 * 1024
        assert config.max_age_ms == DEFAULT_MAX_AGE_MS == 7 * 24 * 3600 * 1000
        assert config.max_entries == DEFAULT_MAX_ENTRIES == 1000
        assert config.enabled is True
        assert config.cache_dir is None

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_size_bytes": 0}, {"max_entries": 0}, {"max_age_ms": -1}],
    )
    def test_invalid_limits_rejected(self, kwargs: dict) -> None:
        """Test non-positive budgets are rejected."""
        with pytest.raises(ValueError):
            AudioCacheConfig(**kwargs)


class TestCacheRecord:
    """Test sidecar record parsing."""

    def valid(self) -> dict:
        return {
            "timestamp": 1700000000000,
            "metadata": {"provider": "openai", "voice": "alloy"},
            "audio_file": "abc.mp3",
        }

    def test_from_dict_round_trip(self) -> None:
        """Test a valid record parses and serializes back to the same shape."""
        record = CacheRecord.from_dict(self.valid())

        assert record.timestamp == 1700000000000.0
        assert record.to_dict() == {**self.valid(), "timestamp": 1700000000000.0}

    def test_non_object_rejected(self) -> None:
        """Test a JSON array is not a record."""
        with pytest.raises(ValueError, match="object"):
            CacheRecord.from_dict([1, 2, 3])

    def test_boolean_timestamp_rejected(self) -> None:
        """Test booleans are not accepted as timestamps."""
        data = {**self.valid(), "timestamp": True}
        with pytest.raises(ValueError, match="timestamp"):
            CacheRecord.from_dict(data)

    def test_metadata_must_name_provider_and_voice(self) -> None:
        """Test metadata without a voice is rejected."""
        data = {**self.valid(), "metadata": {"provider": "openai"}}
        with pytest.raises(ValueError, match="provider and voice"):
            CacheRecord.from_dict(data)

    @pytest.mark.parametrize("audio_file", ["", "../x.mp3", "a/b.mp3", ".hidden"])
    def test_audio_file_must_be_bare_name(self, audio_file: str) -> None:
        """Test blob names cannot be empty or point outside the audio directory."""
        data = {**self.valid(), "audio_file": audio_file}
        with pytest.raises(ValueError, match="audio_file"):
            CacheRecord.from_dict(data)
