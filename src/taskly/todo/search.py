"""Fuzzy search over todo records."""

from difflib import SequenceMatcher
from typing import Sequence

from taskly.todo.models import TodoTask

SEARCH_KEYS = ("task", "status", "priority", "lastDay")


def _field_score(query: str, value: str) -> float:
    """Similarity between ``query`` and one field, 0..1."""
    value = value.lower()
    if not value:
        return 0.0
    if query in value:
        return 1.0

    candidates = [value] + value.split()
    return max(SequenceMatcher(None, query, candidate).ratio() for candidate in candidates)


def score_task(query: str, task: TodoTask) -> float:
    """Best field score of ``task`` for ``query``."""
    query = query.strip().lower()
    if not query:
        return 0.0
    record = task.to_dict()
    return max(_field_score(query, str(record[key])) for key in SEARCH_KEYS)


def fuzzy_search(
    query: str, tasks: Sequence[TodoTask], threshold: float = 0.3
) -> list[tuple[TodoTask, float]]:
    """Rank tasks matching ``query``.

    Args:
        query: Search text
        tasks: Tasks to search, in stored order
        threshold: 0 requires an exact substring hit, 1 matches everything

    Returns:
        (task, score) pairs, best first; ties keep stored order
    """
    minimum = 1.0 - threshold
    scored = []
    for task in tasks:
        score = score_task(query, task)
        if score > 0 and score >= minimum:
            scored.append((task, score))

    scored.sort(key=lambda item: -item[1])
    return scored
