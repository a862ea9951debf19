"""Tests for logging setup."""

import logging
from pathlib import Path
from typing import Iterator

import pytest  # type: ignore[import-not-found]

from taskly.core.logs import setup_logging


@pytest.fixture(autouse=True)
def reset_taskly_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("taskly")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class TestSetupLogging:
    """Test setup_logging."""

    def test_file_handler(self, tmp_path: Path) -> None:
        """Test records are written to the log file."""
        log_file = tmp_path / "logs" / "ticker.log"

        logger = setup_logging(log_file, "DEBUG")
        logging.getLogger("taskly.tracking.ticker").info("heartbeat written")
        for handler in logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "taskly.tracking.ticker - INFO - heartbeat written" in content

    def test_level(self, tmp_path: Path) -> None:
        logger = setup_logging(tmp_path / "a.log", "warning")

        assert logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        assert setup_logging(level="LOUD").level == logging.INFO

    def test_null_handler_without_outputs(self) -> None:
        logger = setup_logging()

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.NullHandler)

    def test_handlers_are_replaced(self, tmp_path: Path) -> None:
        setup_logging(tmp_path / "a.log", console=True)
        logger = setup_logging(tmp_path / "b.log", console=True)

        assert len(logger.handlers) == 2
