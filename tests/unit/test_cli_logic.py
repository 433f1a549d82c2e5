"""Unit tests for CLI logic functions and command wiring."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from hookvoice.cache.models import AudioCacheConfig, CacheStats
from hookvoice.cli import app, process_text_input
from hookvoice.config import HookvoiceConfig
from hookvoice.providers.factory import FactoryConfig
from hookvoice.tts.errors import NoProviderAvailableError
from hookvoice.tts.models import SpeakResult, Voice

runner = CliRunner()


@pytest.fixture
def config(tmp_path: Path) -> HookvoiceConfig:
    return HookvoiceConfig(
        factory=FactoryConfig(provider="auto", fallback_provider="macos"),
        cache=AudioCacheConfig(cache_dir=tmp_path / "cache"),
    )


@pytest.fixture
def loaded(config: HookvoiceConfig):
    with patch("hookvoice.cli.load_config", return_value=config) as mock_load:
        yield mock_load


def test_process_text_input_with_valid_text() -> None:
    """Test that process_text_input returns text when provided."""
    assert process_text_input("Hello world") == "Hello world"


def test_process_text_input_preserves_whitespace() -> None:
    """Test that process_text_input keeps surrounding whitespace."""
    assert process_text_input("  Hello   world  ") == "  Hello   world  "


def test_process_text_input_with_multiline() -> None:
    """Test that process_text_input handles multiline text."""
    text = "Line 1\nLine 2\nLine 3"
    assert process_text_input(text) == text


@pytest.mark.parametrize("text", [None, "", "   "])
def test_process_text_input_without_text_raises_value_error(text) -> None:
    """Test that process_text_input raises ValueError for missing text."""
    with pytest.raises(ValueError, match="No text provided"):
        process_text_input(text)


class TestSpeakCommand:
    """Test the speak command."""

    def test_speak_success(self, loaded, config: HookvoiceConfig) -> None:
        """Test a successful speak exits 0 and passes options through."""
        with patch(
            "hookvoice.cli.speak_text",
            new=AsyncMock(return_value=SpeakResult(True, "macos")),
        ) as mock_speak:
            result = runner.invoke(
                app, ["speak", "Build finished", "-p", "macos", "-v", "Daniel"]
            )

        assert result.exit_code == 0
        mock_speak.assert_awaited_once_with(
            "Build finished",
            config,
            provider="macos",
            voice="Daniel",
            output_file=None,
            cache=True,
        )

    def test_speak_reads_stdin(self, loaded) -> None:
        """Test text is read from stdin when no argument is given."""
        with patch(
            "hookvoice.cli.speak_text",
            new=AsyncMock(return_value=SpeakResult(True, "openai")),
        ) as mock_speak:
            result = runner.invoke(app, ["speak"], input="from stdin\n")

        assert result.exit_code == 0
        assert mock_speak.await_args.args[0] == "from stdin"

    def test_speak_reads_file(self, loaded, tmp_path: Path) -> None:
        """Test text is read from --file."""
        text_file = tmp_path / "note.txt"
        text_file.write_text("from file")
        with patch(
            "hookvoice.cli.speak_text",
            new=AsyncMock(return_value=SpeakResult(True, "openai")),
        ) as mock_speak:
            result = runner.invoke(app, ["speak", "-f", str(text_file), "--no-cache"])

        assert result.exit_code == 0
        assert mock_speak.await_args.args[0] == "from file"
        assert mock_speak.await_args.kwargs["cache"] is False

    def test_missing_file_exits_1(self, loaded, tmp_path: Path) -> None:
        """Test an unreadable --file exits with an error."""
        result = runner.invoke(app, ["speak", "-f", str(tmp_path / "nope.txt")])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_failed_result_exits_1(self, loaded) -> None:
        """Test a failed SpeakResult is reported with its provider."""
        failed = SpeakResult(False, "openai", error="Invalid API key: 401")
        with patch("hookvoice.cli.speak_text", new=AsyncMock(return_value=failed)):
            result = runner.invoke(app, ["speak", "hello"])

        assert result.exit_code == 1
        assert "openai: Invalid API key: 401" in result.output

    def test_tts_error_exits_1(self, loaded) -> None:
        """Test TTS exceptions are reported without a traceback."""
        error = NoProviderAvailableError("No TTS provider available")
        with patch("hookvoice.cli.speak_text", new=AsyncMock(side_effect=error)):
            result = runner.invoke(app, ["speak", "hello"])

        assert result.exit_code == 1
        assert "Error: No TTS provider available" in result.output

    def test_output_confirms_save(self, loaded, tmp_path: Path) -> None:
        """Test saving to a file prints a confirmation."""
        out = tmp_path / "out.mp3"
        with patch(
            "hookvoice.cli.speak_text",
            new=AsyncMock(return_value=SpeakResult(True, "openai")),
        ) as mock_speak:
            result = runner.invoke(app, ["speak", "hello", "-o", str(out)])

        assert result.exit_code == 0
        assert f"Audio saved to {out}" in result.output
        assert mock_speak.await_args.kwargs["output_file"] == str(out)

    def test_config_option_passed_to_loader(self, loaded, tmp_path: Path) -> None:
        """Test --config selects the config file."""
        path = tmp_path / "alt.toml"
        with patch(
            "hookvoice.cli.speak_text",
            new=AsyncMock(return_value=SpeakResult(True, "openai")),
        ):
            runner.invoke(app, ["--config", str(path), "speak", "hello"])

        loaded.assert_called_once_with(path)


class TestOtherCommands:
    """Test voices and cache maintenance commands."""

    def test_voices_lists_name_and_id(self, loaded) -> None:
        """Test voices prints "Name: id" lines."""
        voices = [Voice("alloy", "Alloy", "en-US"), Voice("nova", "Nova", "en-US")]
        with patch(
            "hookvoice.cli.list_available_voices", new=AsyncMock(return_value=voices)
        ):
            result = runner.invoke(app, ["voices", "-p", "openai"])

        assert result.exit_code == 0
        assert result.output.splitlines() == ["Alloy: alloy", "Nova: nova"]

    def test_cache_stats(self, loaded) -> None:
        """Test cache-stats prints entry count and hit rate."""
        stats = CacheStats(entry_count=3, total_size=2 * 1024 * 1024, hit_rate=0.5)
        with patch("hookvoice.cli.cache_stats", new=AsyncMock(return_value=stats)):
            result = runner.invoke(app, ["cache-stats"])

        assert result.exit_code == 0
        assert "Entries: 3" in result.output
        assert "Size: 2.00 MB" in result.output
        assert "Hit rate: 50.0%" in result.output

    def test_cache_cleanup(self, loaded) -> None:
        """Test cache-cleanup reports the number of removed entries."""
        with patch("hookvoice.cli.cleanup_cache", new=AsyncMock(return_value=4)):
            result = runner.invoke(app, ["cache-cleanup"])

        assert result.exit_code == 0
        assert "Removed 4 cache entries" in result.output

    def test_voices_invalid_option_exits_1(self, loaded) -> None:
        """Test a bad provider option is reported without a traceback."""
        error = ValueError("Unknown openai option: voise")
        with patch(
            "hookvoice.cli.list_available_voices", new=AsyncMock(side_effect=error)
        ):
            result = runner.invoke(app, ["voices", "-p", "openai"])

        assert result.exit_code == 1
        assert "Error: Unknown openai option: voise" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)
