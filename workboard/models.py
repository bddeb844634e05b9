"""Data models for the daily task board."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass

STATUSES: tuple[str, ...] = ("doing", "blocked", "help", "done")
STATUS_TITLES: dict[str, str] = {
    "doing": "Doing",
    "blocked": "Blocked",
    "help": "Need Help",
    "done": "Done (Today)",
}

PRIORITIES: tuple[str, ...] = ("high", "medium", "low", "none")

# Day key -> tasks for that day, in display order.
Board = dict[str, list["Task"]]


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Task:
    """A single task instance on one day's board."""

    id: str
    title: str
    person: str
    date: str
    status: str = "doing"
    notes: str | None = None
    priority: str = "none"
    sort_order: float = 0.0
    continued: bool = False
    updated_at: str = ""
    created_at: str = ""

    @property
    def is_done(self) -> bool:
        return self.status == "done"

    def to_row(self) -> dict:
        """Return the record stored remotely and locally."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict) -> Task:
        """Build a Task from a stored record.

        Older local snapshots used ``updatedAt`` and had no ``created_at``,
        ``priority`` or ``sort_order``; unknown keys are ignored.
        """
        updated_at = row.get("updated_at") or row.get("updatedAt") or ""
        status = row.get("status")
        priority = row.get("priority")
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            person=row.get("person") or "",
            date=row.get("date") or "",
            status=status if status in STATUSES else "doing",
            notes=row.get("notes") or None,
            priority=priority if priority in PRIORITIES else "none",
            sort_order=float(row.get("sort_order") or 0.0),
            continued=bool(row.get("continued", False)),
            updated_at=updated_at,
            created_at=row.get("created_at") or updated_at,
        )


@dataclass
class Activity:
    """The most recent thing that happened on the board."""

    id: str
    message: str
    created_at: str

    def to_row(self) -> dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict) -> Activity:
        return cls(
            id=str(row.get("id") or new_id()),
            message=row.get("message") or "",
            created_at=row.get("created_at") or row.get("at") or "",
        )


def group_by_date(tasks: list[Task]) -> Board:
    """Group a flat task collection into a board, keeping input order."""
    board: Board = {}
    for task in tasks:
        board.setdefault(task.date, []).append(task)
    return board


def flatten(board: Board) -> list[Task]:
    return [task for day in board.values() for task in day]


def find_task(board: Board, task_id: str) -> Task | None:
    for day in board.values():
        for task in day:
            if task.id == task_id:
                return task
    return None


def copy_board(board: Board) -> Board:
    """Shallow copy of the day lists; tasks themselves are shared."""
    return {key: list(day) for key, day in board.items()}
