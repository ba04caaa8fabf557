"""Default locations for fetched and transformed data trees."""

from pathlib import Path

OUTPUT_ROOT = Path("output")


def get_default_output_dir() -> Path:
    """Tree holding the unmodified Finicity responses."""
    return OUTPUT_ROOT / "original"


def get_default_transformed_dir() -> Path:
    """Tree holding the records reshaped for Ocrolus."""
    return OUTPUT_ROOT / "transformed"


def get_default_env_file() -> Path:
    return Path.cwd() / ".env"
