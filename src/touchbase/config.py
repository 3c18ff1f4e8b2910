from __future__ import annotations

import logging
import os
from pathlib import Path

from rich.logging import RichHandler

DEFAULT_DB_PATH = Path.home() / ".touchbase" / "touchbase.db"
DEFAULT_MODEL = "claude-sonnet-4-20250514"


def db_path() -> Path:
    return Path(os.environ.get("TOUCHBASE_DB", "") or DEFAULT_DB_PATH).expanduser()


def page_size() -> int:
    try:
        return max(1, min(100, int(os.environ.get("TOUCHBASE_PAGE_SIZE", "50"))))
    except ValueError:
        return 50


def anthropic_api_key() -> str:
    return os.environ.get("ANTHROPIC_API_KEY", "")


def anthropic_model() -> str:
    return os.environ.get("TOUCHBASE_MODEL", "") or DEFAULT_MODEL


def configure_logging(level: str | None = None) -> None:
    """Send log records through rich at TOUCHBASE_LOG_LEVEL (INFO by default)."""
    level = (level or os.environ.get("TOUCHBASE_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
        force=True,
    )
