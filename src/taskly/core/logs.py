"""Logging setup shared by the CLI and the background ticker."""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    console: bool = False,
) -> logging.Logger:
    """Attach handlers to the ``taskly`` logger.

    Args:
        log_file: File to append log records to (optional)
        level: Level name, e.g. "INFO"
        console: Also log to stderr

    Returns:
        The configured ``taskly`` logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger("taskly")
    root_logger.setLevel(log_level)

    # Called once per process, but avoid stacking handlers in tests
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())

    return root_logger
