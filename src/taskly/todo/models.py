"""Data models for the todo list."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

PRIORITIES = ("low", "medium", "high")
STATUSES = ("pending", "in-progress", "done")
DEADLINE_FORMAT = "%Y-%m-%d %H:%M"


@dataclass
class TodoTask:
    """A todo record.

    Attributes:
        id: Task number, unique within the list
        time: Creation time (ms since epoch)
        task: Task description
        status: One of pending, in-progress, done
        priority: One of low, medium, high
        last_day: Deadline as "YYYY-MM-DD HH:MM"
    """

    id: int
    time: int
    task: str
    status: str = "pending"
    priority: str = "low"
    last_day: str = ""

    @property
    def is_done(self) -> bool:
        return self.status == "done"

    @property
    def deadline(self) -> datetime:
        """Deadline parsed as a datetime."""
        return datetime.strptime(self.last_day, DEADLINE_FORMAT)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk JSON shape."""
        return {
            "id": self.id,
            "time": self.time,
            "task": self.task,
            "status": self.status,
            "priority": self.priority,
            "lastDay": self.last_day,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TodoTask":
        """Create TodoTask from its on-disk JSON shape."""
        return cls(
            id=int(data["id"]),
            time=int(data.get("time", 0)),
            task=str(data["task"]),
            status=data.get("status", "pending"),
            priority=data.get("priority", "low"),
            last_day=data.get("lastDay", ""),
        )
