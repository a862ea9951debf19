"""Read-only queries over the tracking state."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import psutil  # type: ignore[import-untyped]

from taskly.tracking.models import CompletedSession, ms_to_datetime, now_ms
from taskly.tracking.store import StateStore


def format_duration(seconds: Optional[float]) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds is None:
        return "ongoing"

    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"


def process_running(pid: int) -> bool:
    """True if ``pid`` is a live process. Zombies count as exited."""
    try:
        return bool(psutil.Process(pid).status() != psutil.STATUS_ZOMBIE)
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        return True


@dataclass(frozen=True)
class ActiveSessionView:
    """Snapshot of the running session for display."""

    project: str
    start_time: int
    pid: int
    last_update: Optional[int]
    elapsed_seconds: float
    process_alive: bool

    @property
    def started_at(self) -> datetime:
        return ms_to_datetime(self.start_time)

    @property
    def last_heartbeat(self) -> Optional[datetime]:
        return ms_to_datetime(self.last_update) if self.last_update is not None else None

    @property
    def elapsed(self) -> str:
        return format_duration(self.elapsed_seconds)


class SessionInspector:
    """Status and history queries. Never writes session data."""

    def __init__(self, store: Optional[StateStore] = None):
        self.store = store or StateStore()

    def status(self, now: Optional[int] = None) -> Optional[ActiveSessionView]:
        """Describe the active session.

        Args:
            now: Reference time in ms (default: current time)

        Returns:
            View of the active session, or None if not tracking
        """
        active = self.store.load().active
        if active is None:
            return None

        return ActiveSessionView(
            project=active.project,
            start_time=active.start_time,
            pid=active.pid,
            last_update=active.last_update,
            elapsed_seconds=active.elapsed_seconds(now if now is not None else now_ms()),
            process_alive=process_running(active.pid),
        )

    def history(self) -> list[CompletedSession]:
        """Completed sessions in stored (chronological) order."""
        return list(self.store.load().log)

    def total_by_project(self) -> dict[str, float]:
        """Total tracked seconds per project, in order of first appearance."""
        totals: dict[str, float] = {}
        for entry in self.history():
            totals[entry.project] = totals.get(entry.project, 0.0) + entry.duration_seconds
        return totals
