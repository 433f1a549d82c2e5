"""Configuration management for hookvoice.

Loads configuration from ~/.config/hookvoice/config.toml.
Priority chain: CLI flags > env vars > config file.
"""

import os
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .cache.models import AudioCacheConfig
from .providers.factory import FactoryConfig

CONFIG_DIR = Path.home() / ".config" / "hookvoice"
CONFIG_PATH = CONFIG_DIR / "config.toml"

PROVIDER_SECTIONS = ("openai", "elevenlabs", "macos")

DEFAULT_CONFIG = """\
# hookvoice configuration

[tts]
# Provider: "auto", "elevenlabs", "openai" or "macos"
# "auto" picks the first available of elevenlabs, openai, then the fallback
provider = "auto"

# Used when the primary provider fails; "none" disables fallback
fallback_provider = "macos"

[openai]
model = "tts-1"
voice = "alloy"
speed = 1.0
format = "mp3"

[elevenlabs]
# voice_id = ""
model_id = "eleven_multilingual_v2"
output_format = "mp3_44100_128"

[macos]
voice = "Samantha"
rate = 200

[cache]
enabled = true
# dir = "~/.cache/hookvoice"
max_size_mb = 100
max_age_days = 7
max_entries = 1000

# API keys are read from environment variables, not this file:
#   OPENAI_API_KEY      - OpenAI provider
#   ELEVENLABS_API_KEY  - ElevenLabs provider
"""


@dataclass(frozen=True)
class HookvoiceConfig:
    """Top-level hookvoice configuration."""

    factory: FactoryConfig
    cache: AudioCacheConfig


class ConfigError(ValueError):
    """Raised when a config file has missing or invalid values."""

    pass


_cached_config: HookvoiceConfig | None = None


def generate_config(path: Path = CONFIG_PATH) -> Path:
    """Generate the default config file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG)
    return path


def _provider_options(data: dict[str, Any]) -> dict[str, dict[str, Any]]:
    options: dict[str, dict[str, Any]] = {}
    for name in PROVIDER_SECTIONS:
        section = dict(data.get(name, {}))
        if "api_key" in section:
            raise ConfigError(
                f"{name}.api_key is not read from the config file; "
                "use the environment variable instead"
            )
        options[name] = section

    voice_id = os.getenv("ELEVENLABS_VOICE_ID")
    if voice_id:
        options["elevenlabs"]["voice_id"] = voice_id
    return options


def _cache_config(cache: dict[str, Any]) -> AudioCacheConfig:
    cache_dir = os.getenv("HOOKVOICE_CACHE_DIR", cache.get("dir", ""))
    try:
        return AudioCacheConfig(
            max_size_bytes=int(cache.get("max_size_mb", 100) * 1024 * 1024),
            max_age_ms=int(cache.get("max_age_days", 7) * 24 * 60 * 60 * 1000),
            max_entries=int(cache.get("max_entries", 1000)),
            enabled=bool(cache["enabled"]),
            cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid [cache] settings: {e}") from e


def parse_config(data: dict[str, Any]) -> HookvoiceConfig:
    """Build a HookvoiceConfig from parsed TOML with env var overrides.

    Raises:
        ConfigError: If required values are missing or invalid
    """
    tts = data.get("tts", {})
    cache = data.get("cache", {})

    # Validate required fields
    missing = []
    if "provider" not in tts:
        missing.append("tts.provider")
    if "enabled" not in cache:
        missing.append("cache.enabled")
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")

    # Env vars override config file values
    fallback = os.getenv("HOOKVOICE_FALLBACK_PROVIDER", tts.get("fallback_provider"))

    return HookvoiceConfig(
        factory=FactoryConfig(
            provider=os.getenv("HOOKVOICE_PROVIDER", tts["provider"]),
            fallback_provider=fallback or None,
            provider_options=_provider_options(data),
        ),
        cache=_cache_config(cache),
    )


def load_config(path: Path | None = None) -> HookvoiceConfig:
    """Load configuration from config file with env var overrides.

    On first run, generates the config file and exits so the user
    can review it before proceeding. The default file is loaded once
    and cached; an explicit `path` is always re-read.

    Returns:
        Loaded and validated HookvoiceConfig.

    Raises:
        SystemExit: If config is missing (after generating) or invalid.
    """
    global _cached_config
    if path is None and _cached_config is not None:
        return _cached_config

    config_path = path or CONFIG_PATH

    if not config_path.exists():
        generated = generate_config(config_path)
        print(
            f"No config found. Generated {generated}, review and run again.",
            file=sys.stderr,
        )
        raise SystemExit(1)

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        config = parse_config(data)
    except (tomllib.TOMLDecodeError, ConfigError) as e:
        print(f"Invalid config: {e}", file=sys.stderr)
        print(f"Edit {config_path} or delete it to regenerate.", file=sys.stderr)
        raise SystemExit(1) from e

    if path is None:
        _cached_config = config
    return config
