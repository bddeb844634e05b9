"""Carry unfinished tasks from earlier days onto today's board.

A task whose most recent instance before today is not done gets exactly
one clone dated today, however many days have passed since it was last
seen. The clone's id is derived from the task's logical origin and
today's key, so running the reconciliation again for the same day adds
nothing.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from .clock import Clock, parse_timestamp
from .models import Board, Task, flatten, group_by_date
from .ordering import SORT_STEP

logger = logging.getLogger(__name__)

RE_CARRIED_SUFFIX = re.compile(r"^(.+?)(?:-carried-\d{4}-\d{2}-\d{2})+$")


def carried_id(origin: str, today_key: str) -> str:
    return f"{origin}-carried-{today_key}"


def origin_id(task_id: str) -> str:
    """Return the id of the user-created task a clone descends from."""
    m = RE_CARRIED_SUFFIX.match(task_id)
    return m.group(1) if m else task_id


def _recency(task: Task) -> tuple:
    stamp = parse_timestamp(task.updated_at)
    return (task.date, stamp.timestamp() if stamp else float("-inf"))


def _latest_by_origin(tasks: list[Task], today_key: str) -> dict[str, Task]:
    """Map each logical origin to its most recent instance before today."""
    latest: dict[str, Task] = {}
    for task in tasks:
        if not task.date or task.date >= today_key:
            continue
        origin = origin_id(task.id)
        current = latest.get(origin)
        if current is None or _recency(task) > _recency(current):
            latest[origin] = task
    return latest


def _carry(board: Board, today_key: str, clock: Clock) -> tuple[Board, list[Task]]:
    today = board.get(today_key, [])
    today_ids = {t.id for t in today}
    stamp = clock.now_iso()

    carried: list[Task] = []
    for origin, source in _latest_by_origin(flatten(board), today_key).items():
        if source.is_done:
            continue
        clone_id = carried_id(origin, today_key)
        if clone_id in today_ids:
            continue
        carried.append(
            replace(
                source,
                id=clone_id,
                date=today_key,
                continued=True,
                updated_at=stamp,
                created_at=stamp,
            )
        )

    result = dict(board)
    if not carried:
        result.setdefault(today_key, [])
        return result, []

    # Clones sort ahead of everything already on today's board.
    base = min((t.sort_order for t in today), default=0.0)
    carried = [
        replace(t, sort_order=base - SORT_STEP * (len(carried) - i))
        for i, t in enumerate(carried)
    ]
    result[today_key] = carried + list(today)
    logger.info("Carried %d unfinished task(s) into %s", len(carried), today_key)
    return result, carried


def carry_over(
    board: Board, today_key: str, clock: Clock | None = None
) -> tuple[Board, list[Task]]:
    """Carry unfinished prior-day tasks into *today_key*.

    Args:
        board: Tasks grouped by day; not modified
        today_key: The day to carry into
        clock: Source of the timestamps given to new clones

    Returns:
        The updated board (today always present, possibly empty) and the
        clones created by this run.
    """
    return _carry(board, today_key, clock or Clock())


def reconcile_day(
    tasks: list[Task], today_key: str, clock: Clock | None = None
) -> list[Task]:
    """Flat-collection form of :func:`carry_over`."""
    board, _ = _carry(group_by_date(tasks), today_key, clock or Clock())
    return flatten(board)
