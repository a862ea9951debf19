"""Todo list management."""

from taskly.todo.manager import TaskNotFoundError, TodoError, TodoManager, TodoStorageError
from taskly.todo.models import PRIORITIES, STATUSES, TodoTask
from taskly.todo.search import fuzzy_search

__all__ = [
    "PRIORITIES",
    "STATUSES",
    "TaskNotFoundError",
    "TodoError",
    "TodoManager",
    "TodoStorageError",
    "TodoTask",
    "fuzzy_search",
]
