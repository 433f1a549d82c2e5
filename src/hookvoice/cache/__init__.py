"""Audio cache for hookvoice synthesis results."""

from pathlib import Path


def default_cache_dir() -> Path:
    """Return the default cache directory, ~/.cache/hookvoice.

    The directory is not created here; AudioCache creates its entries/ and
    audio/ subdirectories on the first write.

    Returns:
        Path to the cache directory
    """
    return Path.home() / ".cache" / "hookvoice"
