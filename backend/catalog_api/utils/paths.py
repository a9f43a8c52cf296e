"""Filesystem helpers for catalog export paths."""
from __future__ import annotations

from pathlib import Path

from platformdirs import user_data_dir


APP_NAME = "Marquee"
APP_AUTHOR = "Marquee"


def default_export_path() -> str:
    """Return the platform-appropriate default export directory."""

    base_dir = Path(user_data_dir(APP_NAME, APP_AUTHOR))
    return str(base_dir / "exports")


def ensure_directory(path: str | Path) -> Path:
    """Expand and create the directory if it does not exist."""

    resolved = Path(path).expanduser()
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved.resolve()
