"""Persistence for the tracking state document."""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

from taskly.core.storage import file_lock, read_json, write_json_atomic
from taskly.tracking.errors import CorruptStateError, StatePersistError
from taskly.tracking.models import TrackingState
from taskly.tracking.platform import get_data_dir

logger = logging.getLogger(__name__)

_TIMESTAMP = {"type": "integer", "minimum": 0}

STATE_SCHEMA = {
    "type": "object",
    "properties": {
        "active": {
            "oneOf": [
                {"type": "null"},
                {
                    "type": "object",
                    "properties": {
                        "project": {"type": "string"},
                        "startTime": _TIMESTAMP,
                        "pid": {"type": "integer", "minimum": 1},
                        "lastUpdate": {"oneOf": [{"type": "null"}, _TIMESTAMP]},
                    },
                    "required": ["project", "startTime", "pid"],
                    "additionalProperties": False,
                },
            ]
        },
        "log": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "project": {"type": "string"},
                    "startTime": _TIMESTAMP,
                    "endTime": _TIMESTAMP,
                    "duration": {"type": "string"},
                },
                "required": ["project", "startTime", "endTime", "duration"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["active", "log"],
    "additionalProperties": False,
}


class StateStore:
    """Reads and writes the tracking state file.

    Whole-document overwrites via temporary file and rename. Callers doing a
    read-modify-write should use :meth:`transaction`, which holds an advisory
    lock shared with the background ticker.
    """

    FILENAME = "timeline.json"

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize state store.

        Args:
            data_dir: Custom data directory. Defaults to ~/.taskly
        """
        self.data_dir = get_data_dir(data_dir)
        self.state_file = self.data_dir / self.FILENAME
        self.lock_file = self.data_dir / (self.FILENAME + ".lock")

    def _ensure_exists(self) -> None:
        """Create the directory and the default document if missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.state_file.exists():
            self._write(TrackingState())
            logger.info(f"Created tracking state file {self.state_file}")

    def load(self) -> TrackingState:
        """Load the tracking document, creating the default one if absent.

        Raises:
            CorruptStateError: If the file is not a valid tracking document
        """
        self._ensure_exists()

        try:
            data = read_json(self.state_file)
        except json.JSONDecodeError as e:
            logger.error(f"Tracking state is not valid JSON: {e}")
            raise CorruptStateError(self.state_file, f"invalid JSON ({e})")
        except UnicodeDecodeError as e:
            logger.error(f"Tracking state is not valid UTF-8: {e}")
            raise CorruptStateError(self.state_file, "not UTF-8 text")

        try:
            validate(instance=data, schema=STATE_SCHEMA)
        except ValidationError as e:
            logger.error(f"Tracking state has unexpected shape: {e.message}")
            raise CorruptStateError(self.state_file, e.message)

        return TrackingState.from_dict(data)

    def _write(self, state: TrackingState) -> None:
        try:
            write_json_atomic(self.state_file, state.to_dict())
        except OSError as e:
            logger.error(f"Failed to write tracking state: {e}")
            raise StatePersistError(self.state_file, e)

    def save(self, state: TrackingState) -> None:
        """Overwrite the file with ``state``. Last writer wins.

        Raises:
            StatePersistError: If the file could not be written
        """
        self._write(state)
        logger.debug(
            f"Saved tracking state (active={state.active is not None}, log={len(state.log)})"
        )

    @contextmanager
    def transaction(self) -> Iterator[TrackingState]:
        """Locked read-modify-write.

        Yields the loaded state and saves it when the block exits normally.
        Nothing is written if the block raises.

        Example:
            >>> with store.transaction() as state:
            ...     state.active = None
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with file_lock(self.lock_file):
            state = self.load()
            yield state
            self.save(state)

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store lock without loading or saving."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with file_lock(self.lock_file):
            yield

    def reset(self, backup: bool = True) -> Optional[Path]:
        """Replace the state file with the default document.

        Args:
            backup: Move the existing file aside first

        Returns:
            Path to the backup, or None if nothing was backed up
        """
        backup_path = None
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with file_lock(self.lock_file):
            if backup and self.state_file.exists():
                label = datetime.now().strftime("%Y%m%d_%H%M%S")
                backup_path = self.state_file.with_name(f"{self.FILENAME}.corrupt-{label}")
                self.state_file.replace(backup_path)
                logger.warning(f"Moved tracking state to {backup_path}")
            self.save(TrackingState())
        return backup_path
