"""Data models for the audio cache."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_MAX_SIZE_BYTES = 100 * 1024 * 1024
DEFAULT_MAX_AGE_MS = 7 * 24 * 60 * 60 * 1000
DEFAULT_MAX_ENTRIES = 1000


@dataclass(frozen=True)
class AudioCacheConfig:
    """Audio cache limits and location.

    Attributes:
        max_size_bytes: Upper bound for sidecar plus audio bytes on disk
        max_age_ms: Entries older than this are treated as absent
        max_entries: Upper bound for the number of stored entries
        enabled: When False every lookup misses and nothing is written
        cache_dir: Root directory (defaults to ~/.cache/hookvoice)
    """

    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES
    max_age_ms: int = DEFAULT_MAX_AGE_MS
    max_entries: int = DEFAULT_MAX_ENTRIES
    enabled: bool = True
    cache_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be positive")
        if self.max_age_ms < 0:
            raise ValueError("max_age_ms cannot be negative")
        if self.max_entries <= 0:
            raise ValueError("max_entries must be positive")


@dataclass
class CacheEntry:
    """Audio bytes returned from a cache hit, with the metadata stored alongside."""

    data: bytes
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class CacheRecord:
    """Sidecar record persisted as entries/<key>.json.

    Attributes:
        timestamp: Creation time in epoch milliseconds
        metadata: Provider, voice, model, speed, format of the synthesis
        audio_file: File name of the blob inside the audio/ directory
    """

    timestamp: float
    metadata: dict[str, Any]
    audio_file: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "metadata": self.metadata,
            "audio_file": self.audio_file,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CacheRecord":
        """Build a record from parsed JSON.

        Raises:
            ValueError: If the structure does not match a sidecar record
        """
        if not isinstance(data, dict):
            raise ValueError("record must be a JSON object")

        timestamp = data.get("timestamp")
        metadata = data.get("metadata")
        audio_file = data.get("audio_file")

        if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
            raise ValueError("timestamp must be a number")
        if not isinstance(metadata, dict):
            raise ValueError("metadata must be an object")
        if not isinstance(metadata.get("provider"), str) or not isinstance(
            metadata.get("voice"), str
        ):
            raise ValueError("metadata must name provider and voice")
        if not isinstance(audio_file, str) or not audio_file:
            raise ValueError("audio_file must be a non-empty string")
        if "/" in audio_file or "\\" in audio_file or audio_file.startswith("."):
            raise ValueError("audio_file must be a bare file name")

        return cls(timestamp=float(timestamp), metadata=metadata, audio_file=audio_file)


@dataclass
class CacheStats:
    """Snapshot of cache contents and lifetime hit rate."""

    entry_count: int = 0
    total_size: int = 0
    hit_rate: float = 0.0
    oldest_entry: float = 0
    newest_entry: float = 0
