"""Todo list operations over a JSON array file."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from taskly.core.storage import file_lock, read_json, write_json_atomic
from taskly.todo.models import DEADLINE_FORMAT, PRIORITIES, STATUSES, TodoTask
from taskly.todo.search import fuzzy_search
from taskly.tracking.models import now_ms
from taskly.tracking.platform import get_data_dir

logger = logging.getLogger(__name__)


class TodoError(Exception):
    """Base class for todo errors."""

    pass


class TaskNotFoundError(TodoError):
    """No task with the given id."""

    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class TodoStorageError(TodoError):
    """The task file is not a valid task list."""

    pass


def parse_deadline(value: str, now: Optional[datetime] = None) -> str:
    """Validate a deadline string.

    Args:
        value: Deadline as "YYYY-MM-DD HH:MM"
        now: Reference time (default: now)

    Returns:
        The normalized deadline string

    Raises:
        ValueError: If the format is wrong or the deadline is in the past
    """
    try:
        deadline = datetime.strptime(value.strip(), DEADLINE_FORMAT)
    except ValueError:
        raise ValueError("Enter a valid datetime in YYYY-MM-DD HH:MM format")

    if deadline < (now or datetime.now()).replace(second=0, microsecond=0):
        raise ValueError("Deadline cannot be in the past")

    return deadline.strftime(DEADLINE_FORMAT)


class TodoManager:
    """Keyed-record operations on the task list."""

    FILENAME = "task.json"

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize todo manager.

        Args:
            data_dir: Custom data directory. Defaults to ~/.taskly
        """
        self.data_dir = get_data_dir(data_dir)
        self.tasks_file = self.data_dir / self.FILENAME
        self.lock_file = self.data_dir / (self.FILENAME + ".lock")

    def _read(self) -> list[TodoTask]:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.tasks_file.exists():
            write_json_atomic(self.tasks_file, [])
            return []

        try:
            if not self.tasks_file.read_text(encoding="utf-8").strip():
                return []
            rows = read_json(self.tasks_file)
            if not isinstance(rows, list):
                raise TypeError("expected a JSON array")
            return [TodoTask.from_dict(row) for row in rows]
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError, KeyError, ValueError) as e:
            logger.error(f"Error reading {self.tasks_file}: {e}")
            raise TodoStorageError(f"Error reading {self.tasks_file}: {e}")

    def _write(self, tasks: list[TodoTask]) -> None:
        write_json_atomic(self.tasks_file, [task.to_dict() for task in tasks])

    def list_tasks(self) -> list[TodoTask]:
        """All tasks in stored order."""
        return self._read()

    def get(self, task_id: int) -> TodoTask:
        """Find a task by id.

        Raises:
            TaskNotFoundError: If no task has this id
        """
        for task in self._read():
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)

    def add(
        self,
        task: str,
        priority: str = "low",
        last_day: str = "",
        now: Optional[datetime] = None,
    ) -> TodoTask:
        """Add a pending task.

        Args:
            task: Task description
            priority: low, medium or high
            last_day: Deadline as "YYYY-MM-DD HH:MM" (optional)
            now: Reference time for deadline validation

        Returns:
            The created task

        Raises:
            ValueError: On empty text, unknown priority or invalid deadline
        """
        task = task.strip()
        if not task:
            raise ValueError("Task cannot be empty")
        if priority not in PRIORITIES:
            raise ValueError(f"Priority must be one of: {', '.join(PRIORITIES)}")
        if last_day:
            last_day = parse_deadline(last_day, now)

        with file_lock(self.lock_file):
            tasks = self._read()
            new_task = TodoTask(
                id=max((t.id for t in tasks), default=0) + 1,
                time=now_ms(),
                task=task,
                priority=priority,
                last_day=last_day,
            )
            tasks.append(new_task)
            self._write(tasks)

        logger.info(f"Added task {new_task.id}: {task!r}")
        return new_task

    def _update(self, task_id: int, **changes: str) -> TodoTask:
        with file_lock(self.lock_file):
            tasks = self._read()
            for task in tasks:
                if task.id == task_id:
                    for key, value in changes.items():
                        setattr(task, key, value)
                    self._write(tasks)
                    return task
        raise TaskNotFoundError(task_id)

    def set_status(self, task_id: int, status: str) -> TodoTask:
        """Change a task's status.

        Raises:
            ValueError: If the status is unknown
            TaskNotFoundError: If no task has this id
        """
        if status not in STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(STATUSES)}")
        return self._update(task_id, status=status)

    def mark_done(self, task_id: int) -> TodoTask:
        """Set a task's status to done."""
        return self.set_status(task_id, "done")

    def set_priority(self, task_id: int, priority: str) -> TodoTask:
        """Change a task's priority.

        Raises:
            ValueError: If the priority is unknown
            TaskNotFoundError: If no task has this id
        """
        if priority not in PRIORITIES:
            raise ValueError(f"Priority must be one of: {', '.join(PRIORITIES)}")
        return self._update(task_id, priority=priority)

    def delete(self, task_id: int) -> TodoTask:
        """Remove a task and return it."""
        with file_lock(self.lock_file):
            tasks = self._read()
            remaining = [t for t in tasks if t.id != task_id]
            if len(remaining) == len(tasks):
                raise TaskNotFoundError(task_id)
            deleted = next(t for t in tasks if t.id == task_id)
            self._write(remaining)

        logger.info(f"Deleted task {task_id}")
        return deleted

    def search(self, query: str, threshold: float = 0.3) -> list[TodoTask]:
        """Tasks matching ``query``, best match first."""
        return [task for task, _ in fuzzy_search(query, self._read(), threshold)]
