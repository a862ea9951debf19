"""Errors raised by the time tracking subsystem."""

from pathlib import Path
from typing import Optional


class TrackingError(Exception):
    """Base class for time tracking errors."""

    pass


class AlreadyTrackingError(TrackingError):
    """A session is already active."""

    def __init__(self, existing_project: str):
        self.existing_project = existing_project
        super().__init__(f"Already tracking: {existing_project}")


class NotTrackingError(TrackingError):
    """No session is active."""

    def __init__(self) -> None:
        super().__init__("No active tracking session")


class ProcessNotFoundError(TrackingError):
    """The heartbeat process is already gone.

    Returned as a warning by ``stop``; tracking is still finalized.
    """

    def __init__(self, pid: int):
        self.pid = pid
        super().__init__(f"Process {pid} not found. It may have already stopped.")


class ProcessTerminationError(TrackingError):
    """The heartbeat process could not be terminated."""

    def __init__(self, pid: int, cause: Optional[BaseException] = None):
        self.pid = pid
        self.cause = cause
        message = f"Failed to stop tracking process {pid}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class CorruptStateError(TrackingError):
    """The state file exists but is not a valid tracking document."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Corrupt tracking state in {path}: {reason}")


class SpawnError(TrackingError):
    """The background ticker could not be launched."""

    pass


class StatePersistError(TrackingError):
    """The tracking state file could not be written."""

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write tracking state to {path}: {cause}")
