"""macOS TTS provider using the built-in `say` command."""

import asyncio
import contextlib
import dataclasses
import logging
import platform
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..tts.models import ProviderInfo, SpeakResult, Voice
from .base import BaseTTSProvider

logger = logging.getLogger(__name__)

MIN_RATE = 50
MAX_RATE = 500

# "Alex                en_US    # Most people recognize me by my voice."
_VOICE_LINE = re.compile(
    r"^(?P<name>\S.*?)\s{2,}(?P<lang>[a-z]{2,3}[_-][A-Za-z0-9]{2,4})\s+#\s?(?P<desc>.*)$"
)

DEFAULT_VOICES = [
    Voice("Alex", "Alex", "en-US", "male", "American English male voice"),
    Voice("Samantha", "Samantha", "en-US", "female", "American English female voice"),
    Voice("Daniel", "Daniel", "en-GB", "male", "British English male voice"),
    Voice("Karen", "Karen", "en-AU", "female", "Australian English female voice"),
    Voice("Moira", "Moira", "en-IE", "female", "Irish English female voice"),
    Voice("Tessa", "Tessa", "en-ZA", "female", "South African English female voice"),
    Voice("Victoria", "Victoria", "en-US", "female", "American English female voice"),
    Voice("Fiona", "Fiona", "en-GB", "female", "Scottish English female voice"),
]


@dataclass
class MacOSConfig:
    """macOS `say` settings.

    Args:
        voice: Voice name (e.g., "Alex", "Samantha", "Daniel")
        rate: Speech rate in words per minute (50-500, clamped)
        timeout: Seconds before a running `say` is killed; None waits forever
    """

    voice: str = "Samantha"
    rate: int = 200
    timeout: float | None = 120.0


class MacOSProvider(BaseTTSProvider):
    """macOS TTS provider.

    Speaks directly through `say`; no audio bytes are produced, so nothing
    is cached. Available only when running on macOS.
    """

    config_class = MacOSConfig

    def __init__(self, options: Mapping[str, Any] | None = None) -> None:
        super().__init__(options)
        self._process: asyncio.subprocess.Process | None = None
        self._cancelled = False

    def get_provider_info(self) -> ProviderInfo:
        return ProviderInfo(
            name="macos",
            display_name="macOS Say",
            version="1.0.0",
            requires_api_key=False,
            supported_features=("speak", "voices", "rate", "cancel"),
        )

    async def is_available(self) -> bool:
        return platform.system() == "Darwin"

    def _normalize(self, config: MacOSConfig) -> MacOSConfig:
        rate = max(MIN_RATE, min(MAX_RATE, int(config.rate)))
        timeout = config.timeout
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive or None")
        return dataclasses.replace(config, rate=rate)

    def build_command(self, text: str) -> list[str]:
        """Return the `say` argument list for `text`.

        "--" ends option parsing so text starting with "-" is spoken, not parsed.
        """
        return [
            "say",
            "-v",
            self._config.voice,
            "-r",
            str(self._config.rate),
            "--",
            text,
        ]

    async def speak(self, text: str) -> SpeakResult:
        start = time.monotonic()

        clean_text = self._validate_text(text)
        if clean_text is None:
            return self._failure("Empty text: nothing to speak")

        if not await self.is_available():
            return self._failure("macOS TTS not available on this platform")

        cmd = self.build_command(clean_text)
        self._cancelled = False

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to start say: {e}")
            return self._failure(f"Failed to run say: {e}")

        self._process = proc
        timeout = self._config.timeout
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            logger.warning(f"say did not finish within {timeout}s, killed")
            return self._failure(f"say timed out after {timeout}s")
        except asyncio.CancelledError:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
            raise
        finally:
            self._process = None

        if proc.returncode != 0:
            if self._cancelled:
                return self._failure("Speech cancelled")
            detail = stderr.decode(errors="replace").strip() if stderr else ""
            message = f"say exited with code {proc.returncode}"
            logger.error(f"{message}: {detail}")
            return self._failure(f"{message}: {detail}" if detail else message)

        return self._success(duration_ms=int((time.monotonic() - start) * 1000))

    def cancel_speech(self) -> bool:
        proc = self._process
        if proc is None or proc.returncode is not None:
            return False
        self._cancelled = True
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()
        logger.debug("Cancelled in-flight speech")
        return True

    async def get_voices(self) -> list[Voice]:
        """List installed voices from `say -v ?`.

        Falls back to a table of common macOS voices when the command is
        unavailable or its output cannot be parsed.
        """
        if not await self.is_available():
            return list(DEFAULT_VOICES)

        try:
            proc = await asyncio.create_subprocess_exec(
                "say",
                "-v",
                "?",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, _ = await proc.communicate()
        except OSError as e:
            logger.error(f"Failed to list macOS voices: {e}")
            return list(DEFAULT_VOICES)

        if proc.returncode != 0:
            logger.error(f"say -v ? exited with code {proc.returncode}")
            return list(DEFAULT_VOICES)

        voices = parse_voice_listing(stdout.decode(errors="replace"))
        return voices or list(DEFAULT_VOICES)


def parse_voice_listing(output: str) -> list[Voice]:
    """Parse the output of `say -v ?` into Voice records."""
    known = {v.id: v for v in DEFAULT_VOICES}
    voices = []
    for line in output.splitlines():
        match = _VOICE_LINE.match(line.rstrip())
        if not match:
            continue
        name = match.group("name").strip()
        voices.append(
            Voice(
                id=name,
                name=name,
                language=match.group("lang").replace("_", "-"),
                gender=known[name].gender if name in known else None,
                description=match.group("desc").strip() or None,
            )
        )
    return voices
