"""Read-only views over a board: status columns, history and filtering."""

from __future__ import annotations

from dataclasses import dataclass

from .models import STATUSES, Board, Task


def columns(tasks: list[Task]) -> dict[str, list[Task]]:
    """Group one day's tasks into the four status columns, in sort order."""
    grouped: dict[str, list[Task]] = {s: [] for s in STATUSES}
    for task in sorted(tasks, key=lambda t: t.sort_order):
        grouped.setdefault(task.status, []).append(task)
    return grouped


def history(board: Board, today_key: str, limit: int | None = None) -> list[tuple[str, list[Task]]]:
    """Days before *today_key* that have tasks, newest first."""
    days = sorted((k for k, v in board.items() if k < today_key and v), reverse=True)
    if limit is not None:
        days = days[:limit]
    return [(day, board[day]) for day in days]


def people(tasks: list[Task]) -> list[str]:
    return sorted({t.person for t in tasks if t.person}, key=str.lower)


@dataclass
class TaskFilter:
    """Narrow the visible tasks; unset criteria match everything."""

    person: str | None = None
    text: str | None = None
    priority: str | None = None
    status: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.person or self.text or self.priority or self.status)

    def matches(self, task: Task) -> bool:
        if self.person and task.person.lower() != self.person.lower():
            return False
        if self.priority and task.priority != self.priority:
            return False
        if self.status and task.status != self.status:
            return False
        if self.text:
            needle = self.text.lower()
            haystack = " ".join([task.title, task.person, task.notes or ""]).lower()
            if needle not in haystack:
                return False
        return True


def filter_tasks(tasks: list[Task], task_filter: TaskFilter | None) -> list[Task]:
    if task_filter is None or task_filter.is_empty:
        return list(tasks)
    return [t for t in tasks if task_filter.matches(t)]
