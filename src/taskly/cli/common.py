"""Shared console objects and helpers for CLI commands."""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from rich.console import Console

from taskly.core.config import ConfigManager
from taskly.tracking.platform import get_config_path

console = Console()
error_console = Console(stderr=True)

DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_data_dir(obj: Optional[dict[str, Any]]) -> Optional[Path]:
    """Data directory chosen with ``--data-dir``, if any."""
    data_dir = (obj or {}).get("data_dir")
    return Path(data_dir) if data_dir else None


def load_config(data_dir: Optional[Path] = None) -> ConfigManager:
    """Load configuration, reporting (and recovering from) an invalid file."""
    config_path = get_config_path(data_dir)
    try:
        return ConfigManager(config_path)
    except ValueError as e:
        error_console.print(f"[yellow]Warning:[/yellow] {e}")
        return ConfigManager(config_path)


def format_datetime(dt: datetime, fmt: str = DEFAULT_TIME_FORMAT) -> str:
    """Format datetime for display."""
    return dt.strftime(fmt)


def time_format(data_dir: Optional[Path] = None) -> str:
    """Datetime display format from ``display.time_format``."""
    return str(load_config(data_dir).get("display.time_format", DEFAULT_TIME_FORMAT))
