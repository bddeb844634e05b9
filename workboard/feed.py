"""Change feed built from periodic snapshots of a remote table.

The remote store is read on an interval and consecutive snapshots are
compared; every difference becomes a typed change event delivered to the
subscriber's callback.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from .models import Activity, Task
from .remote import ActivityInserted, TaskChange, TaskDeleted, TaskInserted, TaskUpdated

logger = logging.getLogger(__name__)

_UNSET = object()


def diff_snapshots(before: list[Task], after: list[Task]) -> list[TaskChange]:
    """Compare two listings of the task table and describe the changes.

    Inserts and updates follow the order of *after*; deletes come last.
    """
    before_by_id = {t.id: t for t in before}
    after_ids: set[str] = set()
    events: list[TaskChange] = []

    for task in after:
        after_ids.add(task.id)
        previous = before_by_id.get(task.id)
        if previous is None:
            events.append(TaskInserted(task))
        elif previous.to_row() != task.to_row():
            logger.debug("Remote change to '%s' (%s)", task.title, task.id)
            events.append(TaskUpdated(task))

    for task in before:
        if task.id not in after_ids:
            events.append(TaskDeleted(task.id))
    return events


def diff_latest_activity(
    before: Activity | None, after: Activity | None
) -> list[ActivityInserted]:
    if after is None:
        return []
    if before is not None and before.id == after.id:
        return []
    return [ActivityInserted(after)]


class PollingFeed:
    """Background poller that turns snapshot differences into events.

    Args:
        fetch: Reads the current snapshot from the remote store
        diff: Turns (previous, current) snapshots into events
        on_change: Called once per event, on the polling thread
        interval: Seconds between polls
        baseline: Snapshot the first poll is compared against; when omitted
                  the first poll only establishes the baseline
    """

    def __init__(
        self,
        fetch: Callable[[], Any],
        diff: Callable[[Any, Any], list],
        on_change: Callable[[Any], None],
        interval: float = 5.0,
        baseline: Any = _UNSET,
        name: str = "feed",
    ) -> None:
        self._fetch = fetch
        self._diff = diff
        self._on_change = on_change
        self.interval = interval
        self.name = name
        self._has_baseline = baseline is not _UNSET
        self._snapshot = baseline if self._has_baseline else None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> PollingFeed:
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._run, name=f"workboard-{self.name}", daemon=True
            )
            self._thread.start()
            logger.debug("Started %s feed (every %.1fs)", self.name, self.interval)
        return self

    def poll_once(self) -> list:
        """Fetch one snapshot and deliver the events it produces."""
        current = self._fetch()
        if not self._has_baseline:
            self._snapshot = current
            self._has_baseline = True
            return []
        events = self._diff(self._snapshot, current)
        self._snapshot = current
        for event in events:
            self._on_change(event)
        return events

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.poll_once()
            except Exception as e:
                logger.warning("Polling %s feed failed: %s", self.name, e)

    def unsubscribe(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1.0)
            logger.debug("Stopped %s feed", self.name)
