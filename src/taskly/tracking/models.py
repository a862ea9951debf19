"""Data models for time tracking state."""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def format_duration_seconds(start_ms: int, end_ms: int) -> str:
    """Format the span between two timestamps as ``"12.34 sec"``."""
    return f"{(end_ms - start_ms) / 1000:.2f} sec"


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert a millisecond timestamp to a local datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000)


@dataclass
class Session:
    """A running tracking session.

    Attributes:
        project: User supplied project label
        start_time: When tracking began (ms since epoch)
        pid: Process performing the heartbeat for this session
        last_update: Last heartbeat (ms since epoch), None before the first tick
    """

    project: str
    start_time: int
    pid: int
    last_update: Optional[int] = None

    @property
    def started_at(self) -> datetime:
        """Start time as a local datetime."""
        return ms_to_datetime(self.start_time)

    def elapsed_seconds(self, now: Optional[int] = None) -> float:
        """Seconds since the session started."""
        if now is None:
            now = now_ms()
        return max(0.0, (now - self.start_time) / 1000)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk JSON shape."""
        data: dict[str, Any] = {
            "project": self.project,
            "startTime": self.start_time,
            "pid": self.pid,
        }
        if self.last_update is not None:
            data["lastUpdate"] = self.last_update
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        """Create Session from its on-disk JSON shape."""
        return cls(
            project=data["project"],
            start_time=int(data["startTime"]),
            pid=int(data["pid"]),
            last_update=int(data["lastUpdate"]) if data.get("lastUpdate") is not None else None,
        )


@dataclass
class CompletedSession:
    """A finished tracking session as stored in the log."""

    project: str
    start_time: int
    end_time: int
    duration: str

    @classmethod
    def from_session(cls, session: Session, end_time: int) -> "CompletedSession":
        """Finalize an active session at ``end_time``."""
        return cls(
            project=session.project,
            start_time=session.start_time,
            end_time=end_time,
            duration=format_duration_seconds(session.start_time, end_time),
        )

    @property
    def duration_seconds(self) -> float:
        """Duration as a number of seconds."""
        return (self.end_time - self.start_time) / 1000

    @property
    def started_at(self) -> datetime:
        return ms_to_datetime(self.start_time)

    @property
    def ended_at(self) -> datetime:
        return ms_to_datetime(self.end_time)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk JSON shape."""
        return {
            "project": self.project,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompletedSession":
        """Create CompletedSession from its on-disk JSON shape."""
        return cls(
            project=data["project"],
            start_time=int(data["startTime"]),
            end_time=int(data["endTime"]),
            duration=data["duration"],
        )


@dataclass
class TrackingState:
    """The whole tracking document: the active session and the session log."""

    active: Optional[Session] = None
    log: list[CompletedSession] = field(default_factory=list)

    @property
    def is_tracking(self) -> bool:
        return self.active is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk JSON shape."""
        return {
            "active": self.active.to_dict() if self.active else None,
            "log": [entry.to_dict() for entry in self.log],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackingState":
        """Create TrackingState from its on-disk JSON shape."""
        active = data.get("active")
        return cls(
            active=Session.from_dict(active) if active else None,
            log=[CompletedSession.from_dict(entry) for entry in data.get("log", [])],
        )
