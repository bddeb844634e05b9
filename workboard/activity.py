"""The "last activity" line shown above the board."""

from __future__ import annotations

import logging
import queue
from typing import Callable

from .clock import Clock, parse_timestamp
from .models import Activity, new_id
from .remote import ActivityInserted, ActivitySource, Subscription
from .storage import ActivityStore

logger = logging.getLogger(__name__)


def _is_newer(candidate: Activity, current: Activity | None) -> bool:
    if current is None:
        return True
    new_at = parse_timestamp(candidate.created_at)
    old_at = parse_timestamp(current.created_at)
    if new_at is None or old_at is None:
        return candidate.created_at > current.created_at
    return new_at > old_at


class ActivityLog:
    """Keeps the most recent activity, shared through the remote store when
    one is configured and in local storage otherwise."""

    def __init__(
        self,
        store: ActivityStore,
        remote: ActivitySource | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.clock = clock or Clock()
        self.last: Activity | None = None
        self.online = False
        self._inbox: queue.SimpleQueue = queue.SimpleQueue()
        self._subscription: Subscription | None = None

    @property
    def uses_remote(self) -> bool:
        return self.remote is not None and self.remote.is_configured()

    def load(self) -> Activity | None:
        """Read the newest activity, remote first."""
        latest = None
        self.online = False
        if self.uses_remote:
            try:
                latest = self.remote.latest()
                self.online = True
            except Exception as e:
                logger.error("Failed to load activity from remote store: %s", e)
        if latest is None:
            latest = self.store.load()
        self.last = latest
        return latest

    def start(self) -> None:
        """Follow activities recorded by other clients."""
        if not self.online or self._subscription is not None:
            return
        try:
            self._subscription = self.remote.subscribe(self._inbox.put, baseline=self.last)
        except Exception as e:
            logger.warning("Could not subscribe to activity changes: %s", e)

    def record(
        self,
        message: str,
        submit: Callable[..., object] | None = None,
    ) -> Activity:
        """Make *message* the latest activity and store it.

        Args:
            message: Human-readable description of what happened
            submit: Schedules the store write, e.g. on a background executor;
                    the write runs inline when omitted
        """
        activity = Activity(id=new_id(), message=message, created_at=self.clock.now_iso())
        self.last = activity
        if submit is None:
            self.write(activity)
        else:
            submit(self.write, activity)
        return activity

    def write(self, activity: Activity) -> None:
        if self.online:
            try:
                self.remote.insert(activity)
                return
            except Exception as e:
                logger.error("Failed to add activity to remote store: %s", e)
        self.store.save(activity)

    def apply_change(self, event: ActivityInserted) -> bool:
        if _is_newer(event.activity, self.last):
            self.last = event.activity
            return True
        return False

    def pump(self) -> int:
        """Apply activity events received since the last call."""
        applied = 0
        while True:
            try:
                event = self._inbox.get_nowait()
            except queue.Empty:
                return applied
            if self.apply_change(event):
                applied += 1

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
