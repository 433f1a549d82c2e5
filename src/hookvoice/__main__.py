"""Entry point for running hookvoice as a module."""

from .cli import app


def main() -> None:
    """Main entry point for the hookvoice CLI application."""
    app()


if __name__ == "__main__":
    main()
