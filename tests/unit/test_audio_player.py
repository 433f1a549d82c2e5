"""Unit tests for AudioPlayer command detection and error handling logic."""

import asyncio
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from hookvoice.audio.player import AudioPlayer


def make_process(returncode: int | None = 0, stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(b"", stderr))
    return proc


class TestAudioPlayerDetection:
    """Test playback command detection."""

    def test_macos_uses_afplay(self) -> None:
        """Test afplay is used on macOS."""
        with patch("hookvoice.audio.player.platform.system", return_value="Darwin"):
            assert AudioPlayer.detect_command() == ["afplay"]

    def test_linux_uses_first_installed_player(self) -> None:
        """Test the first player found on PATH is chosen."""
        installed = {"paplay", "aplay"}
        with (
            patch("hookvoice.audio.player.platform.system", return_value="Linux"),
            patch(
                "hookvoice.audio.player.shutil.which",
                side_effect=lambda name: f"/usr/bin/{name}" if name in installed else None,
            ),
        ):
            assert AudioPlayer.detect_command() == ["paplay"]

    def test_no_player_found(self) -> None:
        """Test None is returned when nothing is installed."""
        with (
            patch("hookvoice.audio.player.platform.system", return_value="Linux"),
            patch("hookvoice.audio.player.shutil.which", return_value=None),
        ):
            assert AudioPlayer.detect_command() is None


class TestAudioPlayerPlayback:
    """Test spawning the player process."""

    @pytest.mark.asyncio
    async def test_play_file_appends_path_argument(self) -> None:
        """Test the file path is passed as a separate argument."""
        player = AudioPlayer(["ffplay", "-nodisp"])
        with patch(
            "hookvoice.audio.player.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=make_process()),
        ) as mock_exec:
            await player.play_file("/tmp/a file; rm -rf.mp3")

        assert mock_exec.await_args.args == ("ffplay", "-nodisp", "/tmp/a file; rm -rf.mp3")

    @pytest.mark.asyncio
    async def test_play_file_without_player_raises(self) -> None:
        """Test RuntimeError when no playback command exists."""
        player = AudioPlayer()
        with patch.object(AudioPlayer, "detect_command", return_value=None):
            with pytest.raises(RuntimeError, match="No audio player found"):
                await player.play_file("/tmp/a.mp3")

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self) -> None:
        """Test a failing player raises RuntimeError with its stderr."""
        player = AudioPlayer(["afplay"])
        with patch(
            "hookvoice.audio.player.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=make_process(1, b"bad file")),
        ):
            with pytest.raises(RuntimeError, match="afplay exited with code 1: bad file"):
                await player.play_file("/tmp/a.mp3")

    @pytest.mark.asyncio
    async def test_spawn_failure_raises_runtime_error(self) -> None:
        """Test a missing binary is reported as RuntimeError."""
        player = AudioPlayer(["afplay"])
        with patch(
            "hookvoice.audio.player.asyncio.create_subprocess_exec",
            new=AsyncMock(side_effect=FileNotFoundError("afplay")),
        ):
            with pytest.raises(RuntimeError, match="Failed to start afplay"):
                await player.play_file("/tmp/a.mp3")

    @pytest.mark.asyncio
    async def test_cancelled_playback_kills_player(self) -> None:
        """Test cancelling playback kills and reaps the player process."""
        player = AudioPlayer(["afplay"])
        proc = make_process(None)
        proc.wait = AsyncMock(return_value=-9)

        async def hang() -> tuple[bytes, bytes]:
            await asyncio.sleep(10)
            return b"", b""

        proc.communicate = hang
        with patch(
            "hookvoice.audio.player.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=proc),
        ):
            task = asyncio.create_task(player.play_file("/tmp/a.mp3"))
            for _ in range(5):
                await asyncio.sleep(0)
            task.cancel()

            with pytest.raises(asyncio.CancelledError):
                await task

        proc.kill.assert_called_once()
        proc.wait.assert_awaited_once()
        assert player.is_playing is False

    @pytest.mark.asyncio
    async def test_play_bytes_with_empty_data_raises_value_error(self) -> None:
        """Test play_bytes_async raises ValueError when audio data is empty."""
        with pytest.raises(ValueError, match="No audio data provided"):
            await AudioPlayer(["afplay"]).play_bytes_async(b"")

    @pytest.mark.asyncio
    async def test_play_bytes_removes_temp_file(self) -> None:
        """Test the temporary file is written with the suffix and deleted afterwards."""
        player = AudioPlayer(["afplay"])
        seen: list[Path] = []

        async def fake_play(path: Path) -> None:
            seen.append(path)
            assert path.read_bytes() == b"audio"

        with patch.object(player, "play_file", side_effect=fake_play):
            await player.play_bytes_async(b"audio", suffix=".wav")

        assert seen[0].suffix == ".wav"
        assert not seen[0].exists()

    @pytest.mark.asyncio
    async def test_temp_file_removed_on_failure(self) -> None:
        """Test the temporary file is deleted even when playback fails."""
        player = AudioPlayer(["afplay"])
        seen: list[Path] = []

        async def failing_play(path: Path) -> None:
            seen.append(path)
            raise RuntimeError("device busy")

        with patch.object(player, "play_file", side_effect=failing_play):
            with pytest.raises(RuntimeError):
                await player.play_bytes_async(b"audio")

        assert not seen[0].exists()

    def test_stop_without_playback(self) -> None:
        """Test stop returns False when nothing is playing."""
        player = AudioPlayer(["afplay"])

        assert player.is_playing is False
        assert player.stop() is False

    def test_stop_terminates_running_process(self) -> None:
        """Test stop terminates an in-flight player process."""
        player = AudioPlayer(["afplay"])
        proc = MagicMock()
        proc.returncode = None
        player._process = proc

        assert player.is_playing is True
        assert player.stop() is True
        proc.terminate.assert_called_once()


class TestAudioPlayerSave:
    """Test saving audio to disk."""

    def test_save_to_file_with_empty_data_raises_value_error(self) -> None:
        """Test save_to_file raises ValueError when audio data is empty."""
        with pytest.raises(ValueError, match="No audio data provided"):
            AudioPlayer().save_to_file(b"", "output.mp3")

    def test_save_to_file_creates_parent_directories(self, tmp_path: Path) -> None:
        """Test save_to_file creates missing directories and writes the bytes."""
        target = tmp_path / "nested" / "dir" / "out.mp3"

        AudioPlayer().save_to_file(b"test data", str(target))

        assert target.read_bytes() == b"test data"
