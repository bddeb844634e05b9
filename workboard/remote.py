"""Interfaces for the shared remote store and its change feed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Union

from .models import Activity, Task


@dataclass(frozen=True)
class TaskInserted:
    task: Task


@dataclass(frozen=True)
class TaskUpdated:
    task: Task


@dataclass(frozen=True)
class TaskDeleted:
    task_id: str


@dataclass(frozen=True)
class ActivityInserted:
    activity: Activity


TaskChange = Union[TaskInserted, TaskUpdated, TaskDeleted]


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class TaskSource(Protocol):
    """CRUD access to the shared task table plus its change feed.

    Every method may raise on network or server failure. ``is_configured``
    only reports whether connection settings exist and never touches the
    network. ``subscribe`` compares the feed against *baseline* (the listing
    the caller already holds) so no change is missed between the two.
    """

    def is_configured(self) -> bool: ...

    def list(self) -> list[Task]: ...

    def insert(self, tasks: Task | list[Task]) -> None: ...

    def update(self, task_id: str, fields: dict) -> None: ...

    def delete(self, task_id: str) -> None: ...

    def subscribe(
        self,
        on_change: Callable[[TaskChange], None],
        baseline: list[Task] | None = None,
    ) -> Subscription: ...


class ActivitySource(Protocol):
    """Append-only activity table; only the newest row is ever read."""

    def is_configured(self) -> bool: ...

    def latest(self) -> Activity | None: ...

    def insert(self, activity: Activity) -> None: ...

    def subscribe(
        self,
        on_change: Callable[[ActivityInserted], None],
        baseline: Activity | None = None,
    ) -> Subscription: ...
