"""Content-addressable audio cache for synthesized speech.

Each entry is two files under the cache directory:

    entries/<key>.json   sidecar record (timestamp, metadata, blob file name)
    audio/<key>.<ext>    raw audio bytes

Keys are SHA-256 digests of the exact synthesis parameters, so identical
requests always land in the same slot. Anything unreadable, incomplete or
expired is a cache miss and gets deleted on sight; nothing in this module
raises into the synthesis path.
"""

import dataclasses
import hashlib
import json
import logging
import os
import re
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import default_cache_dir
from .models import AudioCacheConfig, CacheEntry, CacheRecord, CacheStats

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,128}")
_EXT_PATTERN = re.compile(r"[a-z0-9]{1,8}")


@dataclass
class _ScannedEntry:
    key: str
    timestamp: float
    size: int
    audio_file: str


class AudioCache:
    """File-based cache of synthesized audio with age, count and size budgets.

    Example:
        cache = AudioCache(AudioCacheConfig(cache_dir=Path("/tmp/voices")))
        key = cache.generate_key("Build finished", "tts-1", "alloy", 1.0)

        entry = await cache.get(key)
        if entry is None:
            audio = await synthesize(...)
            await cache.set(key, audio, {"provider": "openai", "voice": "alloy"})
    """

    def __init__(
        self,
        config: AudioCacheConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache. No directories are created until the first write.

        Args:
            config: Limits and location; defaults apply when omitted
            clock: Returns the current time in epoch seconds
        """
        self.config = config or AudioCacheConfig()
        self.cache_dir = (
            Path(self.config.cache_dir).expanduser()
            if self.config.cache_dir
            else default_cache_dir()
        )
        self.entries_dir = self.cache_dir / "entries"
        self.audio_dir = self.cache_dir / "audio"
        self._clock = clock
        self.hits = 0
        self.misses = 0

    @staticmethod
    def generate_key(text: str, model: str, voice: str, speed: float) -> str:
        """Generate the cache key for one set of synthesis parameters.

        Returns:
            64-character hex SHA-256 digest
        """
        payload = f"{text}|{model}|{voice}|{speed}"
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def get_configuration(self) -> AudioCacheConfig:
        """Return a copy of the active configuration."""
        return dataclasses.replace(self.config, cache_dir=self.cache_dir)

    async def get(self, key: str) -> CacheEntry | None:
        """Look up cached audio.

        Returns:
            CacheEntry on a hit; None when disabled, unknown, corrupted,
            missing its audio blob, or older than max_age_ms
        """
        entry = self._lookup(key)
        if entry is None:
            self.misses += 1
        else:
            self.hits += 1
        return entry

    def _lookup(self, key: str) -> CacheEntry | None:
        if not self.config.enabled or not _KEY_PATTERN.fullmatch(key):
            return None

        entry_path = self._entry_path(key)
        try:
            record = self._read_record(entry_path)
        except FileNotFoundError:
            return None
        except ValueError as e:
            logger.warning(f"Removing corrupted cache entry {key[:16]}: {e}")
            self._remove_entry(key)
            return None
        except OSError as e:
            logger.warning(f"Failed to read cache entry {key[:16]}: {e}")
            return None

        age = self._now_ms() - record.timestamp
        if age > self.config.max_age_ms:
            logger.debug(f"Cache entry {key[:16]} expired ({age:.0f}ms old)")
            self._remove_entry(key, record.audio_file)
            return None

        try:
            data = (self.audio_dir / record.audio_file).read_bytes()
        except OSError as e:
            logger.warning(
                f"Cache corruption: record exists but audio is unreadable for {key[:16]}: {e}"
            )
            self._remove_entry(key, record.audio_file)
            return None

        logger.debug(f"Cache hit for {key[:16]} ({len(data)} bytes)")
        return CacheEntry(data=data, metadata=dict(record.metadata))

    async def set(self, key: str, data: bytes, metadata: dict[str, Any]) -> bool:
        """Store audio bytes and their metadata.

        Storage failures are logged and swallowed.

        Returns:
            True if the entry was written
        """
        if not self.config.enabled:
            return False
        if not _KEY_PATTERN.fullmatch(key):
            logger.warning(f"Refusing to cache under invalid key {key!r}")
            return False
        if len(data) > self.config.max_size_bytes:
            logger.debug(
                f"Not caching {len(data)} bytes: larger than max_size_bytes "
                f"({self.config.max_size_bytes})"
            )
            return False

        audio_file = f"{key}.{self._extension(metadata.get('format'))}"
        record = CacheRecord(
            timestamp=self._now_ms(), metadata=dict(metadata), audio_file=audio_file
        )

        try:
            payload = json.dumps(record.to_dict()).encode("utf-8")
            self.entries_dir.mkdir(parents=True, exist_ok=True)
            self.audio_dir.mkdir(parents=True, exist_ok=True)

            # Blob first: a sidecar on disk always points at a complete blob
            self._write_atomic(self.audio_dir / audio_file, data)
            self._write_atomic(self._entry_path(key), payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to cache audio for {key[:16]}: {e}")
            self._remove_entry(key, audio_file)
            return False

        try:
            for stale in self.audio_dir.glob(f"{key}.*"):
                if stale.name != audio_file:
                    stale.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove stale blobs for {key[:16]}: {e}")

        logger.debug(f"Cached {len(data)} bytes as {audio_file}")
        self._enforce_limits()
        return True

    async def get_stats(self) -> CacheStats:
        """Return entry count, bytes on disk, hit rate and entry age range."""
        requests = self.hits + self.misses
        hit_rate = self.hits / requests if requests else 0.0

        if not self.config.enabled:
            return CacheStats(hit_rate=hit_rate)

        entries, _ = self._scan()
        if not entries:
            return CacheStats(hit_rate=hit_rate)

        timestamps = [e.timestamp for e in entries]
        return CacheStats(
            entry_count=len(entries),
            total_size=sum(e.size for e in entries),
            hit_rate=hit_rate,
            oldest_entry=min(timestamps),
            newest_entry=max(timestamps),
        )

    async def cleanup(self) -> int:
        """Remove expired and corrupted entries, then enforce the budgets.

        Returns:
            Number of entries removed
        """
        if not self.config.enabled:
            return 0

        entries, corrupted = self._scan()
        removed = 0

        for key in corrupted:
            self._remove_entry(key)
            removed += 1

        now = self._now_ms()
        for entry in entries:
            if now - entry.timestamp > self.config.max_age_ms:
                self._remove_entry(entry.key, entry.audio_file)
                removed += 1

        removed += self._enforce_limits()
        if removed:
            logger.info(f"Cache cleanup removed {removed} entries")
        return removed

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _entry_path(self, key: str) -> Path:
        return self.entries_dir / f"{key}.json"

    @staticmethod
    def _extension(fmt: Any) -> str:
        if isinstance(fmt, str):
            ext = fmt.split("_", 1)[0].lower()
            if _EXT_PATTERN.fullmatch(ext):
                return ext
        return "mp3"

    @staticmethod
    def _read_record(path: Path) -> CacheRecord:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        return CacheRecord.from_dict(json.loads(path.read_text(encoding="utf-8")))

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _remove_entry(self, key: str, audio_file: str | None = None) -> None:
        targets = [self._entry_path(key)]
        if audio_file:
            targets.append(self.audio_dir / audio_file)
        try:
            targets.extend(self.audio_dir.glob(f"{key}.*"))
        except OSError as e:
            logger.debug(f"Failed to list audio blobs for {key[:16]}: {e}")

        for target in targets:
            try:
                target.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove cache file {target}: {e}")

    def _scan(self) -> tuple[list[_ScannedEntry], list[str]]:
        """Read every sidecar, returning valid entries and corrupted keys."""
        entries: list[_ScannedEntry] = []
        corrupted: list[str] = []

        try:
            paths = sorted(self.entries_dir.glob("*.json"))
        except OSError as e:
            logger.warning(f"Failed to list cache entries: {e}")
            return entries, corrupted

        for path in paths:
            key = path.stem
            try:
                record = self._read_record(path)
                size = path.stat().st_size
                size += (self.audio_dir / record.audio_file).stat().st_size
            except (OSError, ValueError) as e:
                logger.debug(f"Skipping unreadable cache entry {key[:16]}: {e}")
                corrupted.append(key)
                continue
            entries.append(
                _ScannedEntry(
                    key=key,
                    timestamp=record.timestamp,
                    size=size,
                    audio_file=record.audio_file,
                )
            )

        return entries, corrupted

    def _enforce_limits(self) -> int:
        """Evict oldest entries until count and size budgets hold."""
        entries, _ = self._scan()
        count = len(entries)
        total = sum(e.size for e in entries)

        if count <= self.config.max_entries and total <= self.config.max_size_bytes:
            return 0

        removed = 0
        for entry in sorted(entries, key=lambda e: e.timestamp):
            if count <= self.config.max_entries and total <= self.config.max_size_bytes:
                break
            self._remove_entry(entry.key, entry.audio_file)
            count -= 1
            total -= entry.size
            removed += 1

        logger.debug(f"Evicted {removed} cache entries ({count} left, {total} bytes)")
        return removed
