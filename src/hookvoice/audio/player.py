"""Audio player that hands synthesized audio to a system playback command."""

import asyncio
import contextlib
import logging
import platform
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

# Tried in order on non-macOS systems; the audio file path is appended last
LINUX_PLAYERS: tuple[tuple[str, ...], ...] = (
    ("ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"),
    ("mpg123", "-q"),
    ("paplay",),
    ("aplay", "-q"),
)


class AudioPlayer:
    """Cross-platform audio player using OS playback commands.

    Commands are always spawned with an argument list, never through a shell,
    so file paths are passed to the player verbatim.
    """

    def __init__(self, command: list[str] | None = None) -> None:
        """Initialize the audio player.

        Args:
            command: Explicit player command (file path is appended). When
                omitted the command is detected on first use.
        """
        self._command = list(command) if command else None
        self._process: asyncio.subprocess.Process | None = None

    @staticmethod
    def detect_command() -> list[str] | None:
        """Find a playback command for this platform.

        Returns:
            Command prefix, or None if no supported player is installed
        """
        if platform.system() == "Darwin":
            return ["afplay"]
        for candidate in LINUX_PLAYERS:
            if shutil.which(candidate[0]):
                return list(candidate)
        return None

    @property
    def is_playing(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def play_file(self, filepath: str | Path) -> None:
        """Play an audio file and wait for playback to finish.

        Raises:
            RuntimeError: If no player is available or playback fails
        """
        if self._command is None:
            self._command = self.detect_command()
        if not self._command:
            raise RuntimeError(
                "No audio player found (tried afplay, ffplay, mpg123, paplay, aplay)"
            )

        cmd = [*self._command, str(filepath)]
        logger.debug(f"Playing audio with {cmd[0]}: {filepath}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RuntimeError(f"Failed to start {cmd[0]}: {e}") from e

        self._process = proc
        try:
            _, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
            raise
        finally:
            self._process = None

        if proc.returncode != 0:
            message = f"{cmd[0]} exited with code {proc.returncode}"
            detail = stderr.decode(errors="replace").strip() if stderr else ""
            raise RuntimeError(f"{message}: {detail}" if detail else message)

    async def play_bytes_async(self, audio_data: bytes, suffix: str = ".mp3") -> None:
        """Play audio from bytes through system speakers.

        Args:
            audio_data: Encoded audio (MP3, WAV, ...)
            suffix: File extension hinting the format to the player

        Raises:
            ValueError: If no audio data provided
            RuntimeError: If audio playback fails
        """
        if not audio_data:
            raise ValueError("No audio data provided")

        with tempfile.NamedTemporaryFile(
            prefix="hookvoice-", suffix=suffix, delete=False
        ) as tmp:
            tmp.write(audio_data)
            tmp_path = Path(tmp.name)

        try:
            await self.play_file(tmp_path)
        finally:
            tmp_path.unlink(missing_ok=True)

    def stop(self) -> bool:
        """Terminate in-flight playback.

        Returns:
            True if a playback process was terminated
        """
        proc = self._process
        if proc is None or proc.returncode is not None:
            return False
        try:
            proc.terminate()
        except ProcessLookupError:
            return False
        logger.debug("Stopped audio playback")
        return True

    def save_to_file(self, audio_data: bytes, filepath: str | Path) -> None:
        """Save audio bytes to a file.

        Args:
            audio_data: Audio data to save.
            filepath: Path where the audio file should be saved.

        Raises:
            ValueError: If no audio data provided.
            OSError: If file cannot be written.
        """
        if not audio_data:
            raise ValueError("No audio data provided")

        filepath = Path(filepath)

        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            filepath.write_bytes(audio_data)
        except OSError as e:
            raise OSError(f"Failed to save audio to {filepath}: {e}") from e
