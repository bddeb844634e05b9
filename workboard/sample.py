"""Sample board shown on a fresh install."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, time, timezone

from .carryover import carry_over
from .clock import Clock, shift_key
from .models import Board, Task, new_id

# (days ago, title, person, notes, status)
SAMPLE_TASKS = [
    (3, "Design new logo concepts", "Wizard", "Need 3 variations", "done"),
    (3, "Review vendor contracts", "T", None, "blocked"),
    (2, "Update product descriptions", "CS", "Focus on SEO keywords", "doing"),
    (2, "Send weekly newsletter", "Marketing", None, "done"),
    (1, "Prepare Q1 report", "Finance", None, "done"),
    (1, "Fix checkout bug", "Dev", "Payment gateway timeout issue", "blocked"),
    (0, "DNGR website edits", "Wizard", None, "doing"),
    (0, "Approve packaging colors", "T", None, "blocked"),
    (0, "Reply to customer emails", "CS", "Refund + address changes", "help"),
]

# Status changes made to carried tasks along the way: (days ago, title) -> status
SAMPLE_MOVES = {
    (1, "Review vendor contracts"): "help",
}


class _NoonClock(Clock):
    def __init__(self, day: str) -> None:
        self.day = day

    def now(self) -> datetime:
        return datetime.combine(
            datetime.fromisoformat(self.day).date(), time(12, 0), tzinfo=timezone.utc
        )


def generate_sample_data(today_key: str) -> Board:
    """Build a few days of history ending with today's fresh tasks.

    Earlier days already contain the clones the carry-over engine would
    have produced, so the history reads like real use.
    """
    board: Board = {}
    for days_ago in (3, 2, 1, 0):
        day = shift_key(today_key, -days_ago)
        clock = _NoonClock(day)
        if days_ago != 3:
            board, _ = carry_over(board, day, clock)
        stamp = clock.now_iso()
        tasks = board.setdefault(day, [])
        board[day] = [
            replace(t, status=SAMPLE_MOVES.get((days_ago, t.title), t.status))
            for t in tasks
        ]
        for i, (ago, title, person, notes, status) in enumerate(SAMPLE_TASKS):
            if ago != days_ago:
                continue
            board[day].append(
                Task(
                    id=new_id(),
                    title=title,
                    person=person,
                    date=day,
                    status=status,
                    notes=notes,
                    sort_order=float(i),
                    updated_at=stamp,
                    created_at=stamp,
                )
            )
    return board
