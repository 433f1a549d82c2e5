"""Typer CLI definition for hookvoice."""

import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import typer

from .config import HookvoiceConfig, load_config
from .core import cache_stats, cleanup_cache, list_available_voices, speak_text
from .tts.errors import TTSError

app = typer.Typer(help="Speak text through cloud or local TTS with caching and fallback")


@dataclass
class CLIState:
    """Options shared by all commands."""

    debug: bool = False
    config_path: Path | None = None

    def load(self) -> HookvoiceConfig:
        return load_config(self.config_path)


def process_text_input(text: str | None) -> str:
    """Process text input and return the text to speak.

    Args:
        text: Optional text input from CLI argument

    Returns:
        The text to speak

    Raises:
        ValueError: If no text is provided
    """
    if text is None or not text.strip():
        raise ValueError("No text provided")

    return text


def _fail(state: CLIState, label: str, error: Exception, message: str) -> typer.Exit:
    if state.debug:
        typer.echo(f"Debug - {label}: {error!r}", err=True)
    else:
        typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


@app.callback()
def main_options(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False, "--debug", help="Show verbose error messages and cache activity"
    ),
    config_path: Path | None = typer.Option(
        None, "--config", help="Config file (default ~/.config/hookvoice/config.toml)"
    ),
) -> None:
    """Speak text through cloud or local TTS with caching and fallback."""
    # Configure logging for debug mode
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    ctx.obj = CLIState(debug=debug, config_path=config_path)


@app.command()
def speak(
    ctx: typer.Context,
    text: str | None = typer.Argument(None, help="Text to convert to speech"),
    file: Path | None = typer.Option(None, "-f", "--file", help="Read text from file"),
    output: Path | None = typer.Option(
        None, "-o", "--output", help="Save output to file instead of playing"
    ),
    voice: str | None = typer.Option(
        None, "-v", "--voice", help="Voice (requires --provider)"
    ),
    provider: str | None = typer.Option(
        None, "-p", "--provider", help="TTS provider (from config if omitted)"
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the audio cache"),
) -> None:
    """Convert text to speech."""
    state: CLIState = ctx.obj
    config = state.load()

    # Get text from argument, file, or stdin (in priority order)
    if text is None:
        if file:
            try:
                text = file.read_text()
            except FileNotFoundError as e:
                raise _fail(state, "File not found", e, f"File not found: {file}") from None
            except PermissionError as e:
                raise _fail(
                    state,
                    "Permission denied",
                    e,
                    f"Permission denied reading file: {file}",
                ) from None
            except UnicodeDecodeError as e:
                raise _fail(
                    state, "Decode error", e, f"Unable to decode file as text: {file}"
                ) from None
        elif not sys.stdin.isatty():
            text = sys.stdin.read().strip()

    try:
        speech_text = process_text_input(text)
    except ValueError as e:
        raise _fail(state, "Text processing error", e, str(e)) from None

    try:
        result = asyncio.run(
            speak_text(
                speech_text,
                config,
                provider=provider,
                voice=voice,
                output_file=str(output) if output else None,
                cache=not no_cache,
            )
        )
    except TTSError as e:
        raise _fail(state, "TTS error", e, str(e)) from None
    except OSError as e:
        raise _fail(state, "File system error", e, f"Failed to save audio file: {e}") from None
    except ValueError as e:
        raise _fail(state, "Invalid option", e, str(e)) from None

    if not result.success:
        typer.echo(f"Error: {result.provider}: {result.error}", err=True)
        raise typer.Exit(1)

    # If output was specified, confirm save
    if output:
        typer.echo(f"Audio saved to {output}")
    elif state.debug:
        source = "cache" if result.cached else "backend"
        typer.echo(f"Spoken by {result.provider} from {source}", err=True)


@app.command()
def voices(
    ctx: typer.Context,
    provider: str | None = typer.Option(
        None, "-p", "--provider", help="TTS provider (auto-detected if omitted)"
    ),
) -> None:
    """List available voices in "Name: voice_id" format."""
    state: CLIState = ctx.obj
    config = state.load()

    try:
        voice_list = asyncio.run(list_available_voices(config, provider))
    except TTSError as e:
        raise _fail(state, "Failed to list voices", e, f"Failed to list voices: {e}") from None
    except ValueError as e:
        raise _fail(state, "Invalid option", e, str(e)) from None

    for voice in voice_list:
        typer.echo(f"{voice.name}: {voice.id}")


@app.command("cache-stats")
def cache_stats_command(ctx: typer.Context) -> None:
    """Show audio cache statistics."""
    state: CLIState = ctx.obj
    stats = asyncio.run(cache_stats(state.load()))

    typer.echo("=== Cache Status ===")
    typer.echo(f"Entries: {stats.entry_count}")
    typer.echo(f"Size: {stats.total_size / (1024 * 1024):.2f} MB")
    typer.echo(f"Hit rate: {stats.hit_rate:.1%}")


@app.command("cache-cleanup")
def cache_cleanup_command(ctx: typer.Context) -> None:
    """Remove expired and corrupted cache entries."""
    state: CLIState = ctx.obj
    removed = asyncio.run(cleanup_cache(state.load()))
    typer.echo(f"Removed {removed} cache entries")
