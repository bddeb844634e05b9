"""Sort-order arithmetic for manual ordering within a column.

A dropped task takes the midpoint of its new neighbours' sort orders, so
nothing else in the column has to be renumbered.
"""

from __future__ import annotations

from .models import Task

SORT_STEP = 1000.0


def position_between(before: float | None, after: float | None) -> float:
    """Sort order for a task placed after *before* and ahead of *after*."""
    if before is None and after is None:
        return 0.0
    if before is None:
        return after - SORT_STEP
    if after is None:
        return before + SORT_STEP
    return (before + after) / 2


def position_for_drop(
    column: list[Task], index: int, moving_id: str | None = None
) -> float:
    """Sort order for dropping a task at *index* of a column.

    Args:
        column: The target column's tasks (any order)
        index: Drop position counted over the column without the moving task
        moving_id: Id of the task being dragged, if it is already in the column
    """
    others = sorted(
        (t for t in column if t.id != moving_id), key=lambda t: t.sort_order
    )
    index = max(0, min(index, len(others)))
    before = others[index - 1].sort_order if index > 0 else None
    after = others[index].sort_order if index < len(others) else None
    return position_between(before, after)


def top_position(tasks: list[Task]) -> float:
    """Sort order that puts a new task ahead of all of *tasks*."""
    if not tasks:
        return 0.0
    return min(t.sort_order for t in tasks) - SORT_STEP
